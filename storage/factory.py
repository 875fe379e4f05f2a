# storage/factory.py

import logging
from datetime import timedelta

from core.config import Settings
from database import make_engine
from storage.database_storage import DatabaseStorage
from storage.interface import Storage
from storage.memory_storage import MemStorage
from storage.session_store import DatabaseSessionStore, MemorySessionStore

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    ttl = timedelta(days=settings.SESSION_TTL_DAYS)
    check_period = timedelta(seconds=settings.SESSION_CHECK_PERIOD_SECONDS)

    if settings.STORAGE_BACKEND == "memory":
        logger.info("Using in-memory storage; data is lost on restart")
        return MemStorage(
            session_store=MemorySessionStore(ttl=ttl, check_period=check_period),
            seed_demo_data=settings.SEED_DEMO_DATA,
        )
    if settings.STORAGE_BACKEND == "database":
        logger.info("Using database storage at %s", settings.DATABASE_URL)
        storage = DatabaseStorage(make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO),
                                  seed_demo_data=settings.SEED_DEMO_DATA)
        storage.session_store = DatabaseSessionStore(storage.session_factory, ttl=ttl, check_period=check_period)
        return storage
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
