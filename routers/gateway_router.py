from fastapi import APIRouter, Depends
from loguru import logger

from dependencies import get_proximity_service
from errors import ProximityError
from helpers.intent_classifier import classify
from models.intent_models import GatewayResponse, InboundEvent, IntentKind, OutboundReply
from services.proximity_service import ProximityService

router = APIRouter(tags=["gateway"])

NO_MESSAGES_TEXT = "No messages nearby"
HELP_TEXT = "Send a text to post it here, /all to read nearby messages, or share your position"

@router.post("/updates", response_model=GatewayResponse)
async def handle_update(
    event: InboundEvent,
    service: ProximityService = Depends(get_proximity_service)
):
    """Classify an inbound chat event, run it and return the replies to send back."""
    intent = classify(event)
    chat_id = event.reply_to

    def reply(text: str) -> OutboundReply:
        return OutboundReply(chat_id=chat_id, text=text)

    try:
        if intent.kind == IntentKind.SET_LOCATION:
            await service.set_location(intent.user_id, intent.latitude, intent.longitude)
            replies = [reply("Position set")]
        elif intent.kind == IntentKind.POST_MESSAGE:
            await service.post_message(intent.user_id, intent.text)
            replies = [reply("ok")]
        elif intent.kind == IntentKind.QUERY_NEARBY:
            messages = await service.query_nearby(intent.user_id)
            replies = [reply(m.line) for m in messages] or [reply(NO_MESSAGES_TEXT)]
        elif intent.kind == IntentKind.NEW_MESSAGE_MODE:
            logger.debug(f"GOT {event.text} from user {event.user_id}")
            replies = []
        else:
            logger.info(f"Unrecognized update from user {event.user_id} ({event.username})")
            replies = [reply(HELP_TEXT)]
    except ProximityError as e:
        replies = [reply(e.user_message)]

    return GatewayResponse(intent=intent.kind, replies=replies)
