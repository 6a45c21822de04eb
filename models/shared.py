from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar('T')

class APIResponse(BaseModel, Generic[T]):
    """Response envelope shared by the REST routes."""
    status: str
    data: Optional[T] = None
    message: Optional[str] = None
