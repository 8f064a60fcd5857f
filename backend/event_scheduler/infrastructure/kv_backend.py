"""
Key-value backends holding one JSON document per post.

Each document key has a companion version counter (``{<key>}:version``) that
is bumped on every write. ``set_if_version`` is the compare-and-set primitive
the optimistic write strategy builds on; plain ``set`` is what the locked
strategy uses.
"""

from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import get_logger
from event_scheduler.core.metrics import record_backend_error
from event_scheduler.services.exceptions import Unavailable

logger = get_logger(__name__)

# KEYS[1] document, KEYS[2] version counter; ARGV[1] expected version, ARGV[2] document
COMPARE_AND_SET_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[2]) or '0')
if current ~= tonumber(ARGV[1]) then
    return 0
end
redis.call('SET', KEYS[1], ARGV[2])
redis.call('INCR', KEYS[2])
return 1
"""


def version_key(key: str) -> str:
    # The hash tag hashes to the same cluster slot as the untagged document key
    return f"{{{key}}}:version"


class KeyValueBackend(ABC):
    """String-keyed store with no multi-key transactions exposed to callers."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Unconditional full-document replace. Bumps the version counter."""
        pass

    @abstractmethod
    async def get_versioned(self, key: str) -> tuple[Optional[str], int]:
        """Read a document together with its version (0 when never written)."""
        pass

    @abstractmethod
    async def set_if_version(self, key: str, value: str, expected_version: int) -> bool:
        """Replace the document only if its version still matches."""
        pass

    async def close(self) -> None:
        pass


class InMemoryBackend(KeyValueBackend):
    """Process-local backend for development and tests."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.versions: dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.versions[key] = self.versions.get(key, 0) + 1

    async def get_versioned(self, key: str) -> tuple[Optional[str], int]:
        return self.data.get(key), self.versions.get(key, 0)

    async def set_if_version(self, key: str, value: str, expected_version: int) -> bool:
        # No await between check and write, so this is atomic on the event loop
        if self.versions.get(key, 0) != expected_version:
            return False
        await self.set(key, value)
        return True


class RedisBackend(KeyValueBackend):
    """Redis-backed documents; compare-and-set runs as a Lua script."""

    def __init__(self, client: redis.Redis):
        self.client = client
        self.compare_and_set = client.register_script(COMPARE_AND_SET_SCRIPT)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise self._unavailable("get", key, e) from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(key, value)
                pipe.incr(version_key(key))
                await pipe.execute()
        except RedisError as e:
            raise self._unavailable("set", key, e) from e

    async def get_versioned(self, key: str) -> tuple[Optional[str], int]:
        try:
            raw, version = await self.client.mget(key, version_key(key))
        except RedisError as e:
            raise self._unavailable("get", key, e) from e
        return raw, int(version or 0)

    async def set_if_version(self, key: str, value: str, expected_version: int) -> bool:
        try:
            result = await self.compare_and_set(
                keys=[key, version_key(key)], args=[expected_version, value]
            )
        except RedisError as e:
            raise self._unavailable("compare_and_set", key, e) from e
        return bool(result)

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _unavailable(operation: str, key: str, error: Exception) -> Unavailable:
        record_backend_error(operation)
        logger.error("kv_backend_error", operation=operation, key=key, error=str(error))
        return Unavailable(f"Storage {operation} failed")


_backend: Optional[KeyValueBackend] = None


def get_backend() -> KeyValueBackend:
    """Get or create the process-wide backend selected by KV_BACKEND."""
    global _backend

    if _backend is None:
        settings = get_settings()
        if settings.KV_BACKEND == "redis":
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=settings.EXTERNAL_CALL_TIMEOUT,
                socket_timeout=settings.EXTERNAL_CALL_TIMEOUT,
                retry_on_timeout=True,
            )
            _backend = RedisBackend(client)
            logger.info("kv_backend_configured", backend="redis", url=settings.REDIS_URL)
        else:
            _backend = InMemoryBackend()
            logger.info("kv_backend_configured", backend="memory")

    return _backend


async def close_backend() -> None:
    """Close the backend on shutdown."""
    global _backend
    if _backend is not None:
        await _backend.close()
        _backend = None
