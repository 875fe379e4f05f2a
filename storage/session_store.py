# storage/session_store.py

import asyncio
import contextlib
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from models.session_model import SessionRecord
from storage.errors import BackendError, StorageError
from utils.time_utils import utcnow

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=30)
CHECK_PERIOD = timedelta(hours=1)


class SessionStore(ABC):
    """
    Server-side login sessions keyed by session id.

    Every entry expires `ttl` after it was last written or touched. Expired
    entries are never returned and are dropped by `prune`, which `start`
    runs every `check_period` in the background.
    """

    def __init__(self, ttl: timedelta = SESSION_TTL, check_period: timedelta = CHECK_PERIOD):
        self.ttl = ttl
        self.check_period = check_period
        self._task: Optional[asyncio.Task] = None

    @abstractmethod
    async def get(self, sid: str) -> Optional[dict]:
        ...

    @abstractmethod
    async def set(self, sid: str, data: dict) -> None:
        ...

    @abstractmethod
    async def destroy(self, sid: str) -> None:
        ...

    @abstractmethod
    async def touch(self, sid: str) -> None:
        ...

    @abstractmethod
    async def prune(self) -> int:
        ...

    @abstractmethod
    async def length(self) -> int:
        ...

    def _expiry(self) -> datetime:
        return utcnow() + self.ttl

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._prune_periodically())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _prune_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.check_period.total_seconds())
            try:
                removed = await self.prune()
            except StorageError:
                logger.exception("Session prune failed")
                continue
            if removed:
                logger.info("Pruned %d expired sessions", removed)


class MemorySessionStore(SessionStore):
    def __init__(self, ttl: timedelta = SESSION_TTL, check_period: timedelta = CHECK_PERIOD):
        super().__init__(ttl, check_period)
        self._sessions: Dict[str, Tuple[dict, datetime]] = {}

    async def get(self, sid: str) -> Optional[dict]:
        entry = self._sessions.get(sid)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at <= utcnow():
            del self._sessions[sid]
            return None
        return copy.deepcopy(data)

    async def set(self, sid: str, data: dict) -> None:
        self._sessions[sid] = (copy.deepcopy(data), self._expiry())

    async def destroy(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    async def touch(self, sid: str) -> None:
        entry = self._sessions.get(sid)
        if entry is not None and entry[1] > utcnow():
            self._sessions[sid] = (entry[0], self._expiry())

    async def prune(self) -> int:
        now = utcnow()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    async def length(self) -> int:
        now = utcnow()
        return sum(1 for _, expires_at in self._sessions.values() if expires_at > now)


class DatabaseSessionStore(SessionStore):
    def __init__(self, session_factory: async_sessionmaker, ttl: timedelta = SESSION_TTL,
                 check_period: timedelta = CHECK_PERIOD):
        super().__init__(ttl, check_period)
        self.session_factory = session_factory

    async def get(self, sid: str) -> Optional[dict]:
        try:
            async with self.session_factory() as db:
                record = await db.get(SessionRecord, sid)
                if record is None or record.expire <= utcnow():
                    return None
                return record.sess
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not read session: {exc}") from exc

    async def set(self, sid: str, data: dict) -> None:
        try:
            async with self.session_factory() as db:
                record = await db.get(SessionRecord, sid)
                if record is None:
                    db.add(SessionRecord(sid=sid, sess=data, expire=self._expiry()))
                else:
                    record.sess = data
                    record.expire = self._expiry()
                await db.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not save session: {exc}") from exc

    async def destroy(self, sid: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
                await db.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not destroy session: {exc}") from exc

    async def touch(self, sid: str) -> None:
        try:
            async with self.session_factory() as db:
                record = await db.get(SessionRecord, sid)
                if record is not None and record.expire > utcnow():
                    record.expire = self._expiry()
                    await db.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not touch session: {exc}") from exc

    async def prune(self) -> int:
        try:
            async with self.session_factory() as db:
                result = await db.execute(delete(SessionRecord).where(SessionRecord.expire <= utcnow()))
                await db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not prune sessions: {exc}") from exc

    async def length(self) -> int:
        try:
            async with self.session_factory() as db:
                return await db.scalar(
                    select(func.count()).select_from(SessionRecord).where(SessionRecord.expire > utcnow())
                )
        except SQLAlchemyError as exc:
            raise BackendError(f"Could not count sessions: {exc}") from exc
