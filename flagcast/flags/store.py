"""
Flag store implementations.

The store is the single owner of every flag's current value. Values are
persisted as the literal strings "true" / "false" under a key prefix.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import StoreUnavailable

logger = logging.getLogger("flagcast.flags.store")

TRUE_VALUE = "true"
FALSE_VALUE = "false"


def encode_value(value: bool) -> str:
    return TRUE_VALUE if value else FALSE_VALUE


def decode_value(raw: Optional[str]) -> Optional[bool]:
    """Decode a stored value; None means the flag was never set."""
    if raw is None:
        return None
    return raw == TRUE_VALUE


def _escape_glob(pattern: str) -> str:
    for ch in ("\\", "*", "?", "[", "]"):
        pattern = pattern.replace(ch, "\\" + ch)
    return pattern


@runtime_checkable
class FlagStore(Protocol):
    """Durable key/value storage for flags."""

    @property
    def backend(self) -> str:
        ...

    async def get(self, key: str) -> Optional[bool]:
        """Current value, or None if the flag was never set."""
        ...

    async def swap(self, key: str, value: bool) -> Optional[bool]:
        """Write a value and return the one it replaced (None if unset)."""
        ...

    async def scan(self) -> dict[str, bool]:
        """Every stored flag."""
        ...

    async def close(self) -> None:
        ...


class InMemoryFlagStore:
    """Dict-backed store for a single instance and tests."""

    def __init__(self, initial: Optional[dict[str, bool]] = None):
        self._values: dict[str, str] = {
            key: encode_value(value) for key, value in (initial or {}).items()
        }

    @property
    def backend(self) -> str:
        return "memory"

    async def get(self, key: str) -> Optional[bool]:
        return decode_value(self._values.get(key))

    async def swap(self, key: str, value: bool) -> Optional[bool]:
        previous = self._values.get(key)
        self._values[key] = encode_value(value)
        return decode_value(previous)

    async def scan(self) -> dict[str, bool]:
        return {key: raw == TRUE_VALUE for key, raw in self._values.items()}

    async def close(self) -> None:
        pass


class RedisFlagStore:
    """
    Flag store backed by Redis string keys.

    Writes use SET ... GET so the replaced value is read and overwritten
    atomically. Listing walks the whole keyspace with SCAN.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        key_prefix: str = "flag:",
        scan_count: int = 100,
    ):
        self._client = client
        self._prefix = key_prefix
        self._scan_count = scan_count

    @classmethod
    def from_url(
        cls,
        url: str,
        key_prefix: str = "flag:",
        scan_count: int = 100,
        socket_timeout: Optional[float] = None,
    ) -> "RedisFlagStore":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix, scan_count=scan_count)

    @property
    def backend(self) -> str:
        return "redis"

    def _store_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[bool]:
        try:
            raw = await self._client.get(self._store_key(key))
        except RedisError as e:
            logger.error("Flag read failed for %s: %s", key, e)
            raise StoreUnavailable("get", e) from e
        return decode_value(raw)

    async def swap(self, key: str, value: bool) -> Optional[bool]:
        try:
            previous = await self._client.set(
                self._store_key(key), encode_value(value), get=True
            )
        except RedisError as e:
            logger.error("Flag write failed for %s: %s", key, e)
            raise StoreUnavailable("set", e) from e
        return decode_value(previous)

    async def scan(self) -> dict[str, bool]:
        """
        List every flag under the prefix.

        SCAN may return empty pages before the cursor is exhausted, so only
        a zero cursor ends the walk.
        """
        flags: dict[str, bool] = {}
        match = f"{_escape_glob(self._prefix)}*"
        cursor = 0
        pages = 0
        try:
            while True:
                cursor, keys = await self._client.scan(
                    cursor=cursor, match=match, count=self._scan_count
                )
                pages += 1
                if keys:
                    values = await self._client.mget(keys)
                    for store_key, raw in zip(keys, values):
                        # Deleted between SCAN and MGET
                        if raw is None:
                            continue
                        flags[store_key[len(self._prefix):]] = raw == TRUE_VALUE
                if int(cursor) == 0:
                    break
        except RedisError as e:
            logger.error("Flag scan failed after %d pages: %s", pages, e)
            raise StoreUnavailable("scan", e) from e

        logger.debug("Scanned %d flags in %d pages", len(flags), pages)
        return flags

    async def close(self) -> None:
        await self._client.aclose()
