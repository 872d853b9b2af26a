"""
Persistent key-value store adapters.

Values are opaque bytes (JSON blobs in practice). Every adapter is best-effort:
reads treat errors as missing, writes report failure instead of raising.
"""

import asyncio
import base64
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.asyncio import Redis

from coinbox.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class StoreKeys:
    """Key names used in the persistent store (before prefixing)."""

    PORTFOLIO = "PORTFOLIO_V1"
    FX_RATE = "FX_RATE_V1"
    SETTINGS = "SETTINGS_V1"


class KeyValueStore(ABC):
    """Abstract base class for persistent stores."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None if missing or unreadable."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> bool:
        """Store a value. Returns False if the write failed."""
        pass

    async def get_json(self, key: str) -> Optional[object]:
        """Read and decode a JSON value; corrupt payloads are treated as missing."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring corrupt value under {self._key(key)}: {e}")
            return None

    async def set_json(self, key: str, value: object) -> bool:
        return await self.set(key, json.dumps(value).encode("utf-8"))

    async def close(self) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and ephemeral runs."""

    def __init__(self, prefix: str = ""):
        super().__init__(prefix)
        self.data: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(self._key(key))

    async def set(self, key: str, value: bytes) -> bool:
        self.data[self._key(key)] = value
        return True


class RedisStore(KeyValueStore):
    """Store backed by Redis string keys."""

    def __init__(self, redis_url: str, prefix: str = "", client: Optional[Redis] = None):
        super().__init__(prefix)
        self.redis_url = redis_url
        self._client = client

    def _redis(self) -> Redis:
        if self._client is None:
            self._client = Redis.from_url(self.redis_url)
        return self._client

    async def get(self, key: str) -> Optional[bytes]:
        try:
            value = await self._redis().get(self._key(key))
        except Exception as e:
            logger.error(f"Redis read failed for {self._key(key)}: {e}")
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def set(self, key: str, value: bytes) -> bool:
        try:
            await self._redis().set(self._key(key), value)
            return True
        except Exception as e:
            logger.error(f"Redis write failed for {self._key(key)}: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class FileStore(KeyValueStore):
    """
    Single JSON document on disk holding every key.

    Values are stored base64-encoded so arbitrary bytes survive. The file is
    rewritten atomically through a temporary sibling.
    """

    def __init__(self, path: str, prefix: str = ""):
        super().__init__(prefix)
        self.path = path
        self._lock = asyncio.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    async def get(self, key: str) -> Optional[bytes]:
        try:
            encoded = self._read_all().get(self._key(key))
            return base64.b64decode(encoded) if encoded is not None else None
        except Exception as e:
            logger.error(f"File store read failed for {self._key(key)}: {e}")
            return None

    async def set(self, key: str, value: bytes) -> bool:
        async with self._lock:
            try:
                try:
                    data = self._read_all()
                except ValueError:
                    logger.warning(f"Store file {self.path} is corrupt, starting fresh")
                    data = {}
                data[self._key(key)] = base64.b64encode(value).decode("ascii")
                self._write_all(data)
                return True
            except Exception as e:
                logger.error(f"File store write failed for {self._key(key)}: {e}")
                return False


def get_store(config: Optional[Settings] = None) -> KeyValueStore:
    """Factory to get the configured store backend."""
    config = config or default_settings
    if config.STORE_BACKEND == "redis":
        return RedisStore(config.REDIS_URL, prefix=config.STORE_KEY_PREFIX)
    if config.STORE_BACKEND == "memory":
        return MemoryStore(prefix=config.STORE_KEY_PREFIX)
    return FileStore(config.STORE_FILE_PATH, prefix=config.STORE_KEY_PREFIX)
