from fastapi import APIRouter, Depends, status

from dependencies import get_current_user_id, get_proximity_service, to_http_exception
from errors import ProximityError
from models.message_models import PostedMessage, PostMessageRequest
from models.shared import APIResponse
from services.proximity_service import ProximityService

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED, response_model=APIResponse[PostedMessage])
async def post_message(
    req: PostMessageRequest,
    current_user: str = Depends(get_current_user_id),
    service: ProximityService = Depends(get_proximity_service)
):
    """Post a note tagged with the caller's current position."""
    try:
        message = await service.post_message(current_user, req.text)
    except ProximityError as e:
        raise to_http_exception(e)

    return APIResponse(status="success", message="ok", data=message)

@router.get("/nearby", response_model=APIResponse[dict])
async def nearby_messages(
    current_user: str = Depends(get_current_user_id),
    service: ProximityService = Depends(get_proximity_service)
):
    """Most recent notes around the caller's current position."""
    try:
        messages = await service.query_nearby(current_user)
    except ProximityError as e:
        raise to_http_exception(e)

    return APIResponse(
        status="success",
        data={
            "user_id": current_user,
            "messages": [m.model_dump(mode="json") for m in messages],
            "total_found": len(messages),
            "radius_meters": service.policy.radius_meters
        }
    )
