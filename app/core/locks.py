"""Per-date booking locks.

There is a single chair, so two bookings on the same date can conflict even
at different times; the lock is therefore keyed by date, not by slot.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog

from app.core.config import settings
from app.core.exceptions import ConcurrentUpdateError
from app.core.redis import RedisClient, redis_client

logger = structlog.get_logger(__name__)


class SlotLock:
    """Mutual exclusion around "re-check availability, then insert"."""

    @asynccontextmanager
    async def hold(self, date_key: str) -> AsyncIterator[None]:
        raise NotImplementedError
        yield  # pragma: no cover


class InMemorySlotLock(SlotLock):
    """asyncio locks per date; correct for a single worker process.

    A date's lock lives only while someone holds or waits on it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, date_key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(date_key, asyncio.Lock())
        self._users[date_key] = self._users.get(date_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[date_key] -= 1
            if not self._users[date_key]:
                del self._users[date_key]
                del self._locks[date_key]


class RedisSlotLock(SlotLock):
    """Redis ``SET NX EX`` lock shared by every worker."""

    def __init__(
        self,
        client: Optional[RedisClient] = None,
        ttl_seconds: Optional[int] = None,
        wait_seconds: float = 5.0,
        poll_interval: float = 0.05,
    ):
        self.client = client or redis_client
        self.ttl_seconds = ttl_seconds or settings.SLOT_LOCK_TTL_SECONDS
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    @staticmethod
    def key_for(date_key: str) -> str:
        return f"booking_lock:{date_key}"

    @asynccontextmanager
    async def hold(self, date_key: str) -> AsyncIterator[None]:
        key = self.key_for(date_key)
        token = str(uuid.uuid4())
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_seconds

        while not await self.client.acquire_lock(key, token, self.ttl_seconds):
            if loop.time() >= deadline:
                logger.warning("Booking lock wait timed out", key=key)
                raise ConcurrentUpdateError(
                    f"Bookings for {date_key} are busy, try again", date=date_key
                )
            await asyncio.sleep(self.poll_interval)

        try:
            yield
        finally:
            await self.client.release_lock(key, token)


_default_lock: Optional[SlotLock] = None


def get_slot_lock() -> SlotLock:
    """Process-wide lock chosen by ``SLOT_LOCK_BACKEND``."""
    global _default_lock
    if _default_lock is None:
        if settings.SLOT_LOCK_BACKEND == "redis":
            _default_lock = RedisSlotLock()
        else:
            _default_lock = InMemorySlotLock()
        logger.info("Booking lock backend selected", backend=settings.SLOT_LOCK_BACKEND)
    return _default_lock
