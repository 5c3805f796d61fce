"""
Database Pool Test Module

Tests the asyncpg pool singleton lifecycle with asyncpg.create_pool mocked out.
"""

from unittest.mock import AsyncMock, patch

import pytest

from estimate_engine.core import database
from estimate_engine.core.config import get_settings


pytestmark = pytest.mark.asyncio

CREATE_POOL = 'estimate_engine.core.database.asyncpg.create_pool'


@pytest.fixture(autouse=True)
def reset_pool():
    database._pool = None
    yield
    database._pool = None


class TestPoolLifecycle:
    """init_db is idempotent, get_db_pool initializes lazily, close_db resets."""

    async def test_init_is_idempotent(self, mock_db_pool):
        create_pool = AsyncMock(return_value=mock_db_pool)

        with patch(CREATE_POOL, new=create_pool):
            first = await database.init_db()
            second = await database.init_db()

        assert first is second is mock_db_pool
        create_pool.assert_awaited_once()
        kwargs = create_pool.await_args.kwargs
        assert kwargs['dsn'] == get_settings().database_url
        assert kwargs['max_size'] == 5

    async def test_get_db_pool_initializes(self, mock_db_pool):
        with patch(CREATE_POOL, new=AsyncMock(return_value=mock_db_pool)):
            assert await database.get_db_pool() is mock_db_pool

    async def test_close_resets(self, mock_db_pool):
        with patch(CREATE_POOL, new=AsyncMock(return_value=mock_db_pool)):
            await database.init_db()
            await database.close_db()

        mock_db_pool.close.assert_awaited_once()
        assert database._pool is None

        await database.close_db()
