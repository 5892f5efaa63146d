"""One-time codes for email and document-ownership verification.

Codes are six digits, valid for a short window, and allow a bounded number of
attempts. Two backends share one contract:

* :class:`MemoryOTCStore` keeps entries in a process-local dict guarded by a
  lock. It is only correct for a single-process deployment.
* :class:`RedisOTCStore` keeps entries in Redis hashes with native TTLs and
  runs each check as one Lua script, so several app instances can share it.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Protocol

import redis

from docuchain.core.settings import settings
from docuchain.utils.hash import blake3_hexdigest

logger = logging.getLogger(__name__)

OTC_DIGITS = 6
_OTC_FLOOR = 10 ** (OTC_DIGITS - 1)
_OTC_SPAN = 9 * _OTC_FLOOR


class OTCOutcome(Enum):
    """Result of checking a candidate code."""

    ACCEPTED = "accepted"
    ABSENT = "absent"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    MISMATCH = "mismatch"


@dataclass
class OTCEntry:
    """Outstanding code for one key."""

    code: str
    issued_at: float
    attempts: int = 0


def generate_code() -> str:
    """Return a uniformly random six-digit code."""
    return str(_OTC_FLOOR + secrets.randbelow(_OTC_SPAN))


class OTCStore(Protocol):
    """Contract shared by the OTC backends."""

    def issue(self, key: str) -> str: ...

    def check(self, key: str, candidate: str) -> OTCOutcome: ...

    def verify(self, key: str, candidate: str) -> bool: ...

    def sweep(self) -> int: ...


class MemoryOTCStore:
    """Process-local OTC store; every operation holds the store lock."""

    def __init__(
        self,
        *,
        ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otc_ttl_seconds
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.otc_max_attempts
        )
        self._clock = clock
        self._entries: dict[str, OTCEntry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def issue(self, key: str) -> str:
        """Create a new code for `key`, replacing any outstanding one."""
        code = generate_code()
        with self._lock:
            self._entries[key] = OTCEntry(code=code, issued_at=self._clock())
        return code

    def check(self, key: str, candidate: str) -> OTCOutcome:
        """Check `candidate` against the outstanding code for `key`."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return OTCOutcome.ABSENT

            if self._clock() - entry.issued_at > self.ttl_seconds:
                del self._entries[key]
                return OTCOutcome.EXPIRED

            if entry.attempts >= self.max_attempts:
                del self._entries[key]
                return OTCOutcome.EXHAUSTED

            entry.attempts += 1
            if secrets.compare_digest(entry.code, str(candidate)):
                del self._entries[key]
                return OTCOutcome.ACCEPTED
            return OTCOutcome.MISMATCH

    def verify(self, key: str, candidate: str) -> bool:
        """Return True exactly once for the correct code."""
        return self.check(key, candidate) is OTCOutcome.ACCEPTED

    def discard(self, key: str) -> None:
        """Drop any outstanding code for `key`."""
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """Delete expired entries and return how many were removed."""
        removed = 0
        with self._lock:
            now = self._clock()
            for key, entry in list(self._entries.items()):
                try:
                    if now - entry.issued_at > self.ttl_seconds:
                        del self._entries[key]
                        removed += 1
                except (KeyError, TypeError) as err:
                    logger.warning("Skipping OTC entry during sweep: %s", err)
        if removed:
            logger.debug("Swept %d expired one-time codes", removed)
        return removed


# KEYS[1] = entry hash; ARGV = candidate, now, ttl, max_attempts
_CHECK_SCRIPT = """
local key = KEYS[1]
local candidate = ARGV[1]
local now = tonumber(ARGV[2])
local ttl = tonumber(ARGV[3])
local max_attempts = tonumber(ARGV[4])

local data = redis.call('HMGET', key, 'code', 'issued_at', 'attempts')
local code = data[1]
if not code then
  return 'absent'
end

local issued_at = tonumber(data[2])
local attempts = tonumber(data[3])

if now - issued_at > ttl then
  redis.call('DEL', key)
  return 'expired'
end

if attempts >= max_attempts then
  redis.call('DEL', key)
  return 'exhausted'
end

redis.call('HINCRBY', key, 'attempts', 1)
if code == candidate then
  redis.call('DEL', key)
  return 'accepted'
end
return 'mismatch'
"""


class RedisOTCStore:
    """Redis-backed OTC store suitable for multi-instance deployments."""

    KEY_PREFIX = "otc:"

    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = client or redis.from_url(settings.redis_url, decode_responses=True)
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otc_ttl_seconds
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.otc_max_attempts
        )
        self._clock = clock
        self._check = self._redis.register_script(_CHECK_SCRIPT)

    def _key(self, key: str) -> str:
        # Hash the key so email addresses never appear in Redis key names.
        return f"{self.KEY_PREFIX}{blake3_hexdigest(key.encode('utf-8'))}"

    def issue(self, key: str) -> str:
        code = generate_code()
        redis_key = self._key(key)
        pipe = self._redis.pipeline()
        pipe.delete(redis_key)
        pipe.hset(
            redis_key,
            mapping={"code": code, "issued_at": self._clock(), "attempts": 0},
        )
        # One extra second so the script, not Redis, reports expiry at the boundary.
        pipe.expire(redis_key, int(self.ttl_seconds) + 1)
        pipe.execute()
        return code

    def check(self, key: str, candidate: str) -> OTCOutcome:
        result = self._check(
            keys=[self._key(key)],
            args=[str(candidate), self._clock(), self.ttl_seconds, self.max_attempts],
        )
        if isinstance(result, bytes):
            result = result.decode()
        return OTCOutcome(result)

    def verify(self, key: str, candidate: str) -> bool:
        return self.check(key, candidate) is OTCOutcome.ACCEPTED

    def sweep(self) -> int:
        """Redis expires entries itself; nothing to remove here."""
        return 0


class OTCSweeper:
    """Periodically purges expired codes from an OTC store."""

    def __init__(self, store: OTCStore, interval_seconds: float | None = None) -> None:
        self.store = store
        self.interval = max(
            0.1,
            float(
                interval_seconds
                if interval_seconds is not None
                else settings.otc_sweep_interval_seconds
            ),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                self.store.sweep()
            except redis.RedisError as e:
                logger.warning("OTCSweeper encountered Redis error: %s", e)
            except (OSError, RuntimeError) as e:
                logger.error("OTCSweeper failed: %s", e, exc_info=True)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue


@lru_cache(maxsize=1)
def get_otc_store() -> OTCStore:
    """Return the process-wide OTC store for the configured backend."""
    if settings.otc_backend == "redis":
        return RedisOTCStore()
    if settings.workers > 1:
        logger.warning(
            "In-memory OTC store with %d workers: codes issued by one worker "
            "cannot be verified by another; set OTC_BACKEND=redis",
            settings.workers,
        )
    return MemoryOTCStore()
