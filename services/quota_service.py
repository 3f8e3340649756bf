"""
Daily generation quota.

Usage is counted per local calendar day; a new day starts from zero. Storage
is in memory by default or Redis when QUOTA_BACKEND=redis.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import date
from typing import Protocol

from core.config import get_settings
from core.exceptions import QuotaExceededError

logger = logging.getLogger(__name__)

# Counters for past days are dropped by Redis after two days
RECORD_TTL_SECONDS = 86400 * 2


def local_today() -> str:
    """Current local calendar date as YYYY-MM-DD."""
    return date.today().isoformat()


class QuotaStore(Protocol):
    """Storage for the per-day counter."""

    async def get(self, day: str) -> int:
        """Return the count recorded for ``day`` (0 if none)."""
        ...

    async def increment(self, day: str) -> int:
        """Add one to the count for ``day`` and return the new value."""
        ...


def _parse_count(raw: str | None) -> int:
    """Read a stored counter, treating missing or corrupt values as 0."""
    if raw is None:
        return 0
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        logger.warning(f"Discarding unreadable quota counter: {raw!r}")
        return 0


class InMemoryQuotaStore:
    """Process-local counter."""

    def __init__(self):
        self._date: str | None = None
        self._count = 0

    async def get(self, day: str) -> int:
        return self._count if self._date == day else 0

    async def increment(self, day: str) -> int:
        if self._date != day:
            self._date = day
            self._count = 0
        self._count += 1
        return self._count


class RedisQuotaStore:
    """
    Counter stored in Redis, one key per calendar day.

    Redis keys:
    - {namespace}:{YYYY-MM-DD} -> N (expires after two days)

    Increments run as INCR + EXPIRE in one MULTI/EXEC transaction.
    """

    def __init__(self, redis_client, namespace: str = "noel_atelier_daily"):
        self._redis = redis_client
        self._namespace = namespace

    def key_for(self, day: str) -> str:
        return f"{self._namespace}:{day}"

    async def get(self, day: str) -> int:
        return _parse_count(await self._redis.get(self.key_for(day)))

    async def increment(self, day: str) -> int:
        key = self.key_for(day)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, RECORD_TTL_SECONDS)
            count, _ = await pipe.execute()
        logger.debug(f"Quota counter {key} = {count}")
        return int(count)


@dataclass
class QuotaStatus:
    """Snapshot of today's quota."""

    date: str
    used: int
    limit: int
    remaining: int
    can_generate: bool

    def to_dict(self) -> dict:
        return asdict(self)


class QuotaService:
    """
    Service enforcing the daily batch limit.

    A batch counts once, regardless of how many styles it renders, and only
    after every image in it succeeded.
    """

    def __init__(
        self,
        store: QuotaStore | None = None,
        max_per_day: int = 5,
        today: Callable[[], str] = local_today,
    ):
        """
        Initialize the quota service.

        Args:
            store: Counter storage (in memory if omitted)
            max_per_day: Batches allowed per calendar day
            today: Returns the current date string (injectable for tests)
        """
        self._store = store or InMemoryQuotaStore()
        self._max_per_day = max_per_day
        self._today = today

    @property
    def max_per_day(self) -> int:
        return self._max_per_day

    def _status(self, day: str, used: int) -> QuotaStatus:
        remaining = max(0, self._max_per_day - used)
        return QuotaStatus(
            date=day,
            used=used,
            limit=self._max_per_day,
            remaining=remaining,
            can_generate=remaining > 0,
        )

    async def get_status(self) -> QuotaStatus:
        """Get today's usage."""
        day = self._today()
        return self._status(day, await self._store.get(day))

    async def ensure_available(self) -> QuotaStatus:
        """
        Check that another batch may run today.

        Raises:
            QuotaExceededError: If no generations remain
        """
        status = await self.get_status()
        if not status.can_generate:
            logger.info(f"Daily quota exhausted ({status.used}/{status.limit})")
            raise QuotaExceededError(
                message=f"Daily generation limit reached ({status.used}/{status.limit} used)",
                details=status.to_dict(),
            )
        return status

    async def record_batch(self) -> QuotaStatus:
        """Count one successful batch against today's quota."""
        day = self._today()
        used = await self._store.increment(day)
        logger.info(f"Recorded generation batch: {used}/{self._max_per_day} for {day}")
        return self._status(day, used)


# Singleton instance
_quota_service: QuotaService | None = None


def get_quota_service(redis_client=None) -> QuotaService:
    """Get or create the quota service instance."""
    global _quota_service
    if _quota_service is None:
        settings = get_settings()
        if redis_client is not None:
            store = RedisQuotaStore(redis_client, namespace=settings.quota_namespace)
        else:
            store = InMemoryQuotaStore()
        _quota_service = QuotaService(store=store, max_per_day=settings.max_generations_per_day)
    return _quota_service


def reset_quota_service() -> None:
    """Drop the singleton (used at shutdown and in tests)."""
    global _quota_service
    _quota_service = None
