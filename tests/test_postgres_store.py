"""
PostgreSQL spatial store tests against a fake asyncpg pool.

Tests:
- schema/index creation on open
- parameter order (longitude first) and SQL shape
- row mapping and NotFound handling
- driver errors surface as StoreError
"""

from datetime import timedelta

import asyncpg
import pytest

from conftest import START
from errors import NotFoundError, StoreError
from models.location_models import Position
from stores.postgres_store import PostgresSpatialStore

BERLIN = Position.from_lat_lon(52.52, 13.405)


@pytest.fixture
def pg_store(fake_pool):
    return PostgresSpatialStore({"host": "db", "database": "geonotes"}, pool=fake_pool)


def executed_sql(mock_conn):
    return [call.args[0] for call in mock_conn.execute.call_args_list]


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_open_creates_schema_and_indexes(self, pg_store, mock_conn):
        await pg_store.open()
        statements = " ".join(executed_sql(mock_conn))
        assert "CREATE EXTENSION IF NOT EXISTS postgis" in statements
        assert "CREATE TABLE IF NOT EXISTS user_locations" in statements
        assert "CREATE TABLE IF NOT EXISTS messages" in statements
        assert statements.count("USING GIST (position)") == 2
        assert "messages (created_at DESC)" in statements

    @pytest.mark.asyncio
    async def test_open_failure_propagates(self, pg_store, mock_conn):
        mock_conn.execute.side_effect = asyncpg.InterfaceError("could not connect")
        with pytest.raises(asyncpg.InterfaceError):
            await pg_store.open()

    @pytest.mark.asyncio
    async def test_failed_schema_setup_closes_pool(self, pg_store, fake_pool, mock_conn):
        mock_conn.execute.side_effect = asyncpg.InterfaceError("could not connect")
        with pytest.raises(asyncpg.InterfaceError):
            await pg_store.open()
        fake_pool.close.assert_awaited_once()
        assert pg_store.pool is None

    @pytest.mark.asyncio
    async def test_operations_before_open_raise_store_error(self):
        store = PostgresSpatialStore({"host": "db", "database": "geonotes"})
        with pytest.raises(StoreError):
            await store.upsert_location(1, BERLIN, START)
        with pytest.raises(StoreError):
            await store.get_location(1)
        with pytest.raises(StoreError):
            await store.insert_message("hello", BERLIN, START)
        with pytest.raises(StoreError):
            await store.query_nearby(BERLIN, 200, 100)

    @pytest.mark.asyncio
    async def test_close_closes_pool(self, pg_store, fake_pool):
        await pg_store.close()
        fake_pool.close.assert_awaited_once()
        assert pg_store.pool is None


class TestLocations:

    @pytest.mark.asyncio
    async def test_upsert_sends_longitude_first(self, pg_store, mock_conn):
        await pg_store.upsert_location(42, BERLIN, START)

        sql, *params = mock_conn.execute.call_args.args
        assert "ON CONFLICT (user_id)" in sql
        assert "ST_MakePoint($2, $3)" in sql
        assert params == ["42", 13.405, 52.52, START]

    @pytest.mark.asyncio
    async def test_get_location_maps_row(self, pg_store, mock_conn):
        mock_conn.fetchrow.return_value = {"longitude": 13.405, "latitude": 52.52}
        assert await pg_store.get_location(42) == BERLIN
        assert mock_conn.fetchrow.call_args.args[1] == "42"

    @pytest.mark.asyncio
    async def test_get_location_missing_row(self, pg_store, mock_conn):
        mock_conn.fetchrow.return_value = None
        with pytest.raises(NotFoundError):
            await pg_store.get_location(42)

    @pytest.mark.asyncio
    async def test_upsert_driver_error(self, pg_store, mock_conn):
        cause = asyncpg.InterfaceError("connection is closed")
        mock_conn.execute.side_effect = cause
        with pytest.raises(StoreError) as exc_info:
            await pg_store.upsert_location(42, BERLIN, START)
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_lookup_os_error(self, pg_store, mock_conn):
        mock_conn.fetchrow.side_effect = ConnectionResetError("reset by peer")
        with pytest.raises(StoreError) as exc_info:
            await pg_store.get_location(42)
        assert not isinstance(exc_info.value, NotFoundError)


class TestMessages:

    @pytest.mark.asyncio
    async def test_insert_returns_new_id(self, pg_store, mock_conn):
        message_id = await pg_store.insert_message("hello", BERLIN, START)

        sql, *params = mock_conn.execute.call_args.args
        assert "INSERT INTO messages" in sql
        assert params == [message_id, "hello", 13.405, 52.52, START]
        assert len(message_id) == 24

    @pytest.mark.asyncio
    async def test_insert_driver_error(self, pg_store, mock_conn):
        mock_conn.execute.side_effect = asyncpg.InterfaceError("pool is closed")
        with pytest.raises(StoreError):
            await pg_store.insert_message("hello", BERLIN, START)

    @pytest.mark.asyncio
    async def test_query_nearby_sql_and_params(self, pg_store, mock_conn):
        await pg_store.query_nearby(BERLIN, 200, 100)

        sql, *params = mock_conn.fetch.call_args.args
        assert "ST_DWithin(position" in sql
        assert ", $3, false)" in sql
        assert "ORDER BY created_at DESC" in sql
        assert params == [13.405, 52.52, 200.0, 100]

    @pytest.mark.asyncio
    async def test_query_nearby_ascending(self, pg_store, mock_conn):
        await pg_store.query_nearby(BERLIN, 200, 100, most_recent_first=False)
        assert "ORDER BY created_at ASC" in mock_conn.fetch.call_args.args[0]

    @pytest.mark.asyncio
    async def test_query_nearby_maps_rows(self, pg_store, mock_conn):
        mock_conn.fetch.return_value = [
            {"message_id": "b", "body": "newer", "created_at": START + timedelta(seconds=1),
             "longitude": 13.406, "latitude": 52.521},
            {"message_id": "a", "body": "older", "created_at": START,
             "longitude": 13.405, "latitude": 52.52},
        ]

        results = await pg_store.query_nearby(BERLIN, 200, 100)

        assert [m.id for m in results] == ["b", "a"]
        assert results[1].position == BERLIN
        assert results[0].text == "newer"

    @pytest.mark.asyncio
    async def test_query_nearby_zero_limit_skips_db(self, pg_store, mock_conn):
        assert await pg_store.query_nearby(BERLIN, 200, 0) == []
        mock_conn.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_driver_error(self, pg_store, mock_conn):
        mock_conn.fetch.side_effect = asyncpg.InterfaceError("cannot perform operation")
        with pytest.raises(StoreError):
            await pg_store.query_nearby(BERLIN, 200, 100)
