from fastapi import APIRouter, Depends

from dependencies import get_current_user_id, get_proximity_service, to_http_exception
from errors import ProximityError
from models.location_models import SetLocationRequest, UserLocation
from models.shared import APIResponse
from services.proximity_service import ProximityService

router = APIRouter()

@router.post("/update_location", response_model=APIResponse[UserLocation])
async def update_location(
    location: SetLocationRequest,
    current_user: str = Depends(get_current_user_id),
    service: ProximityService = Depends(get_proximity_service)
):
    """Replace the caller's current position."""
    try:
        record = await service.set_location(current_user, location.latitude, location.longitude)
    except ProximityError as e:
        raise to_http_exception(e)

    return APIResponse(status="success", message="Position set", data=record)

@router.get("/location", response_model=APIResponse[dict])
async def get_location(
    current_user: str = Depends(get_current_user_id),
    service: ProximityService = Depends(get_proximity_service)
):
    """Return the caller's current position as GeoJSON."""
    try:
        position = await service.get_location(current_user)
    except ProximityError as e:
        raise to_http_exception(e)

    return APIResponse(
        status="success",
        data={
            "user_id": current_user,
            "position": position.model_dump(mode="json")
        }
    )
