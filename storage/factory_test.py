from datetime import timedelta

import pytest

from core.config import Settings
from storage.database_storage import DatabaseStorage
from storage.factory import build_storage
from storage.memory_storage import MemStorage
from storage.session_store import DatabaseSessionStore, MemorySessionStore


def test_memory_backend():
    storage = build_storage(Settings(STORAGE_BACKEND="memory", SESSION_TTL_DAYS=2))
    assert isinstance(storage, MemStorage)
    assert isinstance(storage.session_store, MemorySessionStore)
    assert storage.session_store.ttl == timedelta(days=2)


async def test_database_backend():
    storage = build_storage(Settings(STORAGE_BACKEND="database", DATABASE_URL="sqlite+aiosqlite://",
                                     SESSION_CHECK_PERIOD_SECONDS=60))
    assert isinstance(storage, DatabaseStorage)
    assert isinstance(storage.session_store, DatabaseSessionStore)
    assert storage.session_store.check_period == timedelta(seconds=60)
    await storage.close()


def test_unknown_backend():
    with pytest.raises(ValueError):
        build_storage(Settings(STORAGE_BACKEND="redis"))


async def test_seeded_memory_storage():
    storage = build_storage(Settings(STORAGE_BACKEND="memory", SEED_DEMO_DATA=True))
    await storage.init()
    await storage.init()
    demo = await storage.get_user_by_username("demo")
    assert demo.role == "admin"
    assert len(storage.identity.users) == 1
    assert await storage.check_member_exists("jane@example.com", "Jane", "Doe")


async def test_seeded_database_storage():
    storage = build_storage(Settings(STORAGE_BACKEND="database", DATABASE_URL="sqlite+aiosqlite://",
                                     SEED_DEMO_DATA=True))
    await storage.init()
    await storage.init()
    assert (await storage.get_user_by_username("demo")).role == "admin"
    assert await storage.check_member_exists("jane@example.com", "Jane", "Doe")
    await storage.close()
