from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field
from models.location_models import UserId

class IntentKind(str, Enum):
    SET_LOCATION = "set_location"
    POST_MESSAGE = "post_message"
    QUERY_NEARBY = "query_nearby"
    NEW_MESSAGE_MODE = "new_message_mode"  # ignored, logged only
    UNRECOGNIZED = "unrecognized"

# --- Inbound ---
class SharedLocation(BaseModel):
    latitude: float
    longitude: float

class InboundEvent(BaseModel):
    """A chat update as delivered by the transport."""
    user_id: UserId
    chat_id: Optional[UserId] = None
    username: Optional[str] = None
    text: Optional[str] = None
    location: Optional[SharedLocation] = None

    @property
    def reply_to(self) -> UserId:
        return self.chat_id if self.chat_id is not None else self.user_id

# --- Intents ---
class SetLocationIntent(BaseModel):
    kind: Literal[IntentKind.SET_LOCATION] = IntentKind.SET_LOCATION
    user_id: UserId
    latitude: float
    longitude: float

class PostMessageIntent(BaseModel):
    kind: Literal[IntentKind.POST_MESSAGE] = IntentKind.POST_MESSAGE
    user_id: UserId
    text: str

class QueryNearbyIntent(BaseModel):
    kind: Literal[IntentKind.QUERY_NEARBY] = IntentKind.QUERY_NEARBY
    user_id: UserId

class NewMessageModeIntent(BaseModel):
    kind: Literal[IntentKind.NEW_MESSAGE_MODE] = IntentKind.NEW_MESSAGE_MODE
    user_id: UserId

class UnrecognizedIntent(BaseModel):
    kind: Literal[IntentKind.UNRECOGNIZED] = IntentKind.UNRECOGNIZED
    user_id: UserId

Intent = Union[
    SetLocationIntent,
    PostMessageIntent,
    QueryNearbyIntent,
    NewMessageModeIntent,
    UnrecognizedIntent,
]

# --- Outbound ---
class QuickAction(BaseModel):
    label: str
    command: Optional[str] = None
    request_location: bool = False

NEW_COMMAND = "/new"
ALL_COMMAND = "/all"

QUICK_ACTIONS = [
    QuickAction(label=NEW_COMMAND, command=NEW_COMMAND),
    QuickAction(label=ALL_COMMAND, command=ALL_COMMAND),
    QuickAction(label="position", request_location=True),
]

class OutboundReply(BaseModel):
    chat_id: UserId
    text: str
    quick_actions: List[QuickAction] = Field(default_factory=lambda: list(QUICK_ACTIONS))

class GatewayResponse(BaseModel):
    intent: IntentKind
    replies: List[OutboundReply]
