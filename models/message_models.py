from datetime import datetime
from pydantic import BaseModel, ConfigDict
from models.location_models import Position

class PostedMessage(BaseModel):
    """A geo-tagged note. Never changes after insert."""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    position: Position
    created_at: datetime

class NearbyMessage(PostedMessage):
    line: str

class PostMessageRequest(BaseModel):
    text: str
