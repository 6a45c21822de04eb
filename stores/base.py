from abc import ABC, abstractmethod
from datetime import datetime
from typing import List
from models.location_models import Position, UserId
from models.message_models import PostedMessage


class SpatialStore(ABC):
    """Current position per user plus an append-only log of geo-tagged messages.

    Every method raises ``StoreError`` when the backing storage fails;
    ``get_location`` raises ``NotFoundError`` for users that never set a
    location. Each call is atomic on its own; callers hold no locks.
    """

    async def open(self) -> None:
        """Prepare schema and indexes. Failure here is fatal at startup."""

    async def close(self) -> None:
        pass

    @abstractmethod
    async def upsert_location(self, user_id: UserId, position: Position, timestamp: datetime) -> None:
        ...

    @abstractmethod
    async def get_location(self, user_id: UserId) -> Position:
        ...

    @abstractmethod
    async def insert_message(self, text: str, position: Position, timestamp: datetime) -> str:
        ...

    @abstractmethod
    async def query_nearby(
        self,
        center: Position,
        max_distance_meters: float,
        limit: int,
        most_recent_first: bool = True,
    ) -> List[PostedMessage]:
        """Messages within ``max_distance_meters`` great-circle distance of
        ``center``, ordered by creation time, at most ``limit`` of them."""
