# dependencies.py
from fastapi import Request, HTTPException, status
from errors import InvalidInputError, LocationRequiredError, ProximityError
from services.proximity_service import ProximityService

def get_proximity_service(request: Request) -> ProximityService:
    """Get the proximity service bound to the app's store."""
    return request.app.state.proximity_service

async def get_current_user_id(request: Request):
    """Get current user ID from the X-User-Id header."""
    user_id = request.headers.get("X-User-Id")

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )

    return user_id

def to_http_exception(error: ProximityError) -> HTTPException:
    """Map a service failure onto an HTTP status; the detail is always user-safe."""
    if isinstance(error, InvalidInputError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, LocationRequiredError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HTTPException(status_code=code, detail=error.user_message)
