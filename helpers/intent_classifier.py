from models.intent_models import (
    ALL_COMMAND,
    NEW_COMMAND,
    InboundEvent,
    Intent,
    NewMessageModeIntent,
    PostMessageIntent,
    QueryNearbyIntent,
    SetLocationIntent,
    UnrecognizedIntent,
)


def classify(event: InboundEvent) -> Intent:
    """Turn a raw chat update into one intent. First match wins."""
    text = event.text.strip() if event.text else ""

    if text == NEW_COMMAND:
        return NewMessageModeIntent(user_id=event.user_id)
    if text == ALL_COMMAND:
        return QueryNearbyIntent(user_id=event.user_id)
    if event.location is not None:
        return SetLocationIntent(
            user_id=event.user_id,
            latitude=event.location.latitude,
            longitude=event.location.longitude
        )
    if text:
        return PostMessageIntent(user_id=event.user_id, text=event.text)
    return UnrecognizedIntent(user_id=event.user_id)
