from datetime import datetime
from typing import List, Optional
import asyncpg
import ssl
from loguru import logger

from errors import NotFoundError, StoreError
from helpers.ids import new_message_id
from models.location_models import Position, UserId
from models.message_models import PostedMessage
from stores.base import SpatialStore

# Driver-level failures that surface as StoreError.
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

POINT_SQL = "ST_SetSRID(ST_MakePoint({lon}, {lat}), 4326)::geography"


async def init_db(pool):
    """Create the PostGIS extension, tables and indexes if they don't exist."""
    async with pool.acquire() as conn:
        await conn.execute('CREATE EXTENSION IF NOT EXISTS postgis;')

        # One row per user, replaced on every update
        await conn.execute('''
        CREATE TABLE IF NOT EXISTS user_locations (
            user_id TEXT PRIMARY KEY,
            position GEOGRAPHY(Point, 4326) NOT NULL,
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
        );
        ''')
        await conn.execute('''
        CREATE INDEX IF NOT EXISTS user_locations_position_idx
            ON user_locations USING GIST (position);
        ''')

        # Append-only message log
        await conn.execute('''
        CREATE TABLE IF NOT EXISTS messages (
            message_id TEXT PRIMARY KEY,
            body TEXT NOT NULL,
            position GEOGRAPHY(Point, 4326) NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL
        );
        ''')
        await conn.execute('''
        CREATE INDEX IF NOT EXISTS messages_position_idx
            ON messages USING GIST (position);
        ''')
        await conn.execute('''
        CREATE INDEX IF NOT EXISTS messages_created_at_idx
            ON messages (created_at DESC);
        ''')


class PostgresSpatialStore(SpatialStore):
    """Spatial store on PostgreSQL + PostGIS.

    Positions are ``geography`` points, so ``ST_DWithin`` measures meters.
    Distances are computed on the sphere (``use_spheroid => false``).
    """

    def __init__(self, db_config: dict, ssl_context: Optional[ssl.SSLContext] = None, pool=None):
        self.db_config = db_config
        self.ssl_context = ssl_context
        self.pool = pool

    async def open(self) -> None:
        if self.pool is None:
            self.pool = await asyncpg.create_pool(**self.db_config, ssl=self.ssl_context)
        try:
            await init_db(self.pool)
        except Exception:
            await self.close()
            raise
        logger.info(f"Connected to PostgreSQL at {self.db_config.get('host')}/{self.db_config.get('database')}")

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    def _connection_pool(self):
        if self.pool is None:
            raise StoreError("PostgreSQL store is not open")
        return self.pool

    async def upsert_location(self, user_id: UserId, position: Position, timestamp: datetime) -> None:
        try:
            async with self._connection_pool().acquire() as conn:
                await conn.execute(f'''
                    INSERT INTO user_locations (user_id, position, updated_at)
                    VALUES ($1, {POINT_SQL.format(lon="$2", lat="$3")}, $4)
                    ON CONFLICT (user_id)
                    DO UPDATE SET position = EXCLUDED.position, updated_at = EXCLUDED.updated_at
                ''', str(user_id), position.longitude, position.latitude, timestamp)
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to upsert location for user {user_id}: {e}") from e

    async def get_location(self, user_id: UserId) -> Position:
        try:
            async with self._connection_pool().acquire() as conn:
                row = await conn.fetchrow('''
                    SELECT ST_X(position::geometry) AS longitude,
                           ST_Y(position::geometry) AS latitude
                    FROM user_locations
                    WHERE user_id = $1
                ''', str(user_id))
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to read location for user {user_id}: {e}") from e

        if row is None:
            raise NotFoundError(f"No location for user {user_id}")
        return Position(coordinates=(row['longitude'], row['latitude']))

    async def insert_message(self, text: str, position: Position, timestamp: datetime) -> str:
        message_id = new_message_id(timestamp)
        try:
            async with self._connection_pool().acquire() as conn:
                await conn.execute(f'''
                    INSERT INTO messages (message_id, body, position, created_at)
                    VALUES ($1, $2, {POINT_SQL.format(lon="$3", lat="$4")}, $5)
                ''', message_id, text, position.longitude, position.latitude, timestamp)
        except DRIVER_ERRORS as e:
            raise StoreError(f"Failed to insert message: {e}") from e
        return message_id

    async def query_nearby(
        self,
        center: Position,
        max_distance_meters: float,
        limit: int,
        most_recent_first: bool = True,
    ) -> List[PostedMessage]:
        if limit <= 0 or max_distance_meters < 0:
            return []

        order = "DESC" if most_recent_first else "ASC"
        try:
            async with self._connection_pool().acquire() as conn:
                rows = await conn.fetch(f'''
                    SELECT message_id, body, created_at,
                           ST_X(position::geometry) AS longitude,
                           ST_Y(position::geometry) AS latitude
                    FROM messages
                    WHERE ST_DWithin(position, {POINT_SQL.format(lon="$1", lat="$2")}, $3, false)
                    ORDER BY created_at {order}
                    LIMIT $4
                ''', center.longitude, center.latitude, float(max_distance_meters), limit)
        except DRIVER_ERRORS as e:
            raise StoreError(f"Nearby query failed: {e}") from e

        return [
            PostedMessage(
                id=row['message_id'],
                text=row['body'],
                position=Position(coordinates=(row['longitude'], row['latitude'])),
                created_at=row['created_at']
            )
            for row in rows
        ]
