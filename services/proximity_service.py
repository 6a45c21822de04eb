import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List
from loguru import logger

from errors import (
    InvalidInputError,
    LocationRequiredError,
    NotFoundError,
    ServiceFailureError,
    StoreError,
)
from models.location_models import Position, UserId, UserLocation
from models.message_models import NearbyMessage, PostedMessage
from stores.base import SpatialStore

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class ProximityPolicy:
    radius_meters: float = 200.0
    limit: int = 100
    max_message_length: int = 4096

    def __post_init__(self):
        if not self.radius_meters > 0:
            raise ValueError("radius_meters must be positive")
        if self.limit < 1:
            raise ValueError("limit must be at least 1")
        if self.max_message_length < 1:
            raise ValueError("max_message_length must be at least 1")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_message_line(message: PostedMessage) -> str:
    """Single-line rendering: ``[2024-01-31 12:00:00] body``."""
    body = " ".join(message.text.splitlines())
    return f"[{message.created_at.strftime(TIMESTAMP_FORMAT)}] {body}"


class ProximityService:
    """Use-case layer for the three intents.

    Holds no state between calls: the user's position is read from the store
    on every post and query, so a move is picked up immediately.
    """

    def __init__(
        self,
        store: SpatialStore,
        policy: ProximityPolicy = ProximityPolicy(),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy
        self.clock = clock

    async def set_location(self, user_id: UserId, latitude: float, longitude: float) -> UserLocation:
        position = self._build_position(latitude, longitude)
        now = self.clock()
        try:
            await self.store.upsert_location(user_id, position, now)
        except StoreError:
            logger.exception(f"Saving location of user {user_id} failed")
            raise ServiceFailureError()

        logger.info(f"Location set for user {user_id}: {latitude:.6f}, {longitude:.6f}")
        return UserLocation(user_id=str(user_id), position=position, updated_at=now)

    async def get_location(self, user_id: UserId) -> Position:
        return await self._resolve_position(user_id)

    async def post_message(self, user_id: UserId, text: str) -> PostedMessage:
        if text is None or not text.strip():
            raise InvalidInputError("Message text must not be empty")
        if len(text) > self.policy.max_message_length:
            raise InvalidInputError(
                f"Message is too long (max {self.policy.max_message_length} characters)"
            )
        if "\x00" in text:
            raise InvalidInputError("Message must not contain NUL characters")

        position = await self._resolve_position(user_id)
        now = self.clock()
        try:
            message_id = await self.store.insert_message(text, position, now)
        except StoreError:
            logger.exception(f"Saving message of user {user_id} failed")
            raise ServiceFailureError("Error while saving message")

        logger.debug(f"Message {message_id} posted by user {user_id}")
        return PostedMessage(id=message_id, text=text, position=position, created_at=now)

    async def query_nearby(self, user_id: UserId) -> List[NearbyMessage]:
        position = await self._resolve_position(user_id)
        try:
            messages = await self.store.query_nearby(
                position,
                self.policy.radius_meters,
                self.policy.limit,
                most_recent_first=True
            )
        except StoreError:
            logger.exception(f"Nearby query for user {user_id} failed")
            raise ServiceFailureError()

        logger.debug(f"Nearby query for user {user_id} returned {len(messages)} messages")
        return [
            NearbyMessage(**message.model_dump(), line=format_message_line(message))
            for message in messages
        ]

    async def _resolve_position(self, user_id: UserId) -> Position:
        try:
            return await self.store.get_location(user_id)
        except NotFoundError:
            logger.info(f"User {user_id} has no location on file")
            raise LocationRequiredError()
        except StoreError:
            logger.exception(f"Reading location of user {user_id} failed")
            raise ServiceFailureError()

    @staticmethod
    def _build_position(latitude, longitude) -> Position:
        try:
            latitude = float(latitude)
            longitude = float(longitude)
        except (TypeError, ValueError):
            raise InvalidInputError("Latitude and longitude must be numbers")
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise InvalidInputError("Latitude and longitude must be finite numbers")
        if not -90 <= latitude <= 90:
            raise InvalidInputError("Latitude must be between -90 and 90")
        if not -180 <= longitude <= 180:
            raise InvalidInputError("Longitude must be between -180 and 180")
        return Position.from_lat_lon(latitude, longitude)
