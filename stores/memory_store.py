import bisect
import heapq
import math
from collections import defaultdict
from datetime import datetime, timezone
from itertools import islice
from operator import attrgetter
from typing import Dict, Iterable, List, Tuple
from geopy.distance import EARTH_RADIUS, great_circle
from loguru import logger

from errors import NotFoundError, StoreError
from helpers.ids import new_message_id
from models.location_models import Position, UserId, UserLocation
from models.message_models import PostedMessage
from stores.base import SpatialStore

EARTH_RADIUS_METERS = EARTH_RADIUS * 1000
_created_at = attrgetter("created_at")


def as_utc(timestamp: datetime) -> datetime:
    """Naive timestamps are taken to be UTC; aware ones are converted."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


class MemorySpatialStore(SpatialStore):
    """In-process store backed by a fixed lat/lon grid.

    Messages are bucketed by grid cell and every bucket is kept sorted by
    ``created_at``. A radius query only visits cells that overlap the
    bounding box of the search circle, merges them newest first and stops
    once ``limit`` messages passed the great-circle distance check.

    No method awaits while mutating state, so every call is atomic with
    respect to other tasks on the event loop.
    """

    def __init__(self, cell_degrees: float = 0.01):
        if cell_degrees <= 0:
            raise ValueError("cell_degrees must be positive")
        self.cell_degrees = cell_degrees
        self._rows = math.ceil(180 / cell_degrees)
        self._cols = math.ceil(360 / cell_degrees)
        self._locations: Dict[str, UserLocation] = {}
        self._cells: Dict[Tuple[int, int], List[PostedMessage]] = defaultdict(list)
        self._message_count = 0
        self._closed = False

    async def open(self) -> None:
        self._closed = False
        logger.info(f"Memory spatial store ready (cell size {self.cell_degrees} degrees)")

    async def close(self) -> None:
        self._closed = True

    def _ensure_open(self):
        if self._closed:
            raise StoreError("Memory store is closed")

    # --- grid ---
    def _row(self, latitude: float) -> int:
        return int((latitude + 90) // self.cell_degrees)

    def _col(self, longitude: float) -> int:
        return int((longitude + 180) // self.cell_degrees)

    def _cell(self, position: Position) -> Tuple[int, int]:
        row = min(max(self._row(position.latitude), 0), self._rows - 1)
        return row, self._col(position.longitude) % self._cols

    def _candidate_cells(self, center: Position, max_distance_meters: float) -> Iterable[Tuple[int, int]]:
        angular = max_distance_meters / EARTH_RADIUS_METERS
        if angular >= math.pi:
            return list(self._cells)

        delta_lat = math.degrees(angular)
        lat_lo = center.latitude - delta_lat
        lat_hi = center.latitude + delta_lat

        # One extra cell on each side absorbs float rounding at cell edges.
        row_lo = max(self._row(max(lat_lo, -90.0)) - 1, 0)
        row_hi = min(self._row(min(lat_hi, 90.0)) + 1, self._rows - 1)

        spread = math.sin(angular) / math.cos(math.radians(center.latitude)) if abs(center.latitude) < 90 else 2
        if lat_lo <= -90 or lat_hi >= 90 or spread >= 1:
            cols = range(self._cols)
        else:
            delta_lon = math.degrees(math.asin(spread))
            col_lo = self._col(center.longitude - delta_lon) - 1
            col_hi = self._col(center.longitude + delta_lon) + 1
            if col_hi - col_lo + 1 >= self._cols:
                cols = range(self._cols)
            else:
                cols = sorted({c % self._cols for c in range(col_lo, col_hi + 1)})

        if (row_hi - row_lo + 1) * len(cols) > len(self._cells):
            wanted_cols = set(cols)
            return [key for key in self._cells if row_lo <= key[0] <= row_hi and key[1] in wanted_cols]
        return [(row, col) for row in range(row_lo, row_hi + 1) for col in cols if (row, col) in self._cells]

    # --- locations ---
    async def upsert_location(self, user_id: UserId, position: Position, timestamp: datetime) -> None:
        self._ensure_open()
        key = str(user_id)
        self._locations[key] = UserLocation(user_id=key, position=position, updated_at=as_utc(timestamp))

    async def get_location(self, user_id: UserId) -> Position:
        self._ensure_open()
        record = self._locations.get(str(user_id))
        if record is None:
            raise NotFoundError(f"No location for user {user_id}")
        return record.position

    # --- messages ---
    async def insert_message(self, text: str, position: Position, timestamp: datetime) -> str:
        self._ensure_open()
        timestamp = as_utc(timestamp)
        message = PostedMessage(
            id=new_message_id(timestamp),
            text=text,
            position=position,
            created_at=timestamp
        )
        bisect.insort(self._cells[self._cell(position)], message, key=_created_at)
        self._message_count += 1
        return message.id

    async def query_nearby(
        self,
        center: Position,
        max_distance_meters: float,
        limit: int,
        most_recent_first: bool = True,
    ) -> List[PostedMessage]:
        self._ensure_open()
        if limit <= 0 or max_distance_meters < 0:
            return []

        buckets = [self._cells[key] for key in self._candidate_cells(center, max_distance_meters)]
        if most_recent_first:
            streams = [reversed(bucket) for bucket in buckets]
        else:
            streams = [iter(bucket) for bucket in buckets]
        merged = heapq.merge(*streams, key=_created_at, reverse=most_recent_first)

        origin = (center.latitude, center.longitude)
        within = (
            m for m in merged
            if great_circle(origin, (m.position.latitude, m.position.longitude)).meters <= max_distance_meters
        )
        return list(islice(within, limit))

    def __len__(self) -> int:
        return self._message_count
