"""
Key-Value Storage Backends

Async durable key-value stores for small JSON documents such as learned
aliases. Three backends share one interface:

- MemoryKeyValueStore: process-local dict (tests, ephemeral sessions)
- JsonFileKeyValueStore: one JSON file on disk, written atomically
- RedisKeyValueStore: Redis strings holding JSON

Usage:
    from services.storage import get_key_value_store

    store = await get_key_value_store()
    await store.set("route-brain-aliases", {"smith farm": "s1"})
    aliases = await store.get("route-brain-aliases")
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import aiofiles
import aiofiles.os

from config.settings import settings
from utils.cache import get_redis_client
from utils.exceptions import AliasStoreError
from utils.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Async key-value store holding JSON-serializable values."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """In-process store. Values are JSON round-tripped so callers never share references."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """
    Store every key in a single JSON file.

    Writes go to a temp file that is renamed over the target, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _read_all(self) -> Dict[str, Any]:
        if not await aiofiles.os.path.exists(self.path):
            return {}
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise AliasStoreError(f"Cannot read {self.path}: {e}") from e

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise AliasStoreError(f"Corrupted store file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise AliasStoreError(f"Unexpected store layout in {self.path}")
        return data

    async def _write_all(self, data: Dict[str, Any]) -> None:
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, indent=2, sort_keys=True))
            await aiofiles.os.replace(temp_path, self.path)
        except OSError as e:
            if await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)
            raise AliasStoreError(f"Cannot write {self.path}: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            return (await self._read_all()).get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await self._read_all()
            data[key] = value
            await self._write_all(data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._read_all()
            if key in data:
                del data[key]
                await self._write_all(data)


class RedisKeyValueStore:
    """Store values as JSON strings in Redis under a namespace prefix."""

    PREFIX = "ruralmail:"

    def __init__(self, redis_client):
        self._redis = redis_client

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(f"{self.PREFIX}{key}")
        except Exception as e:
            raise AliasStoreError(f"Redis get failed: {e}", key=key) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise AliasStoreError(f"Corrupted data in Redis: {e}", key=key) from e

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._redis.set(f"{self.PREFIX}{key}", json.dumps(value))
        except Exception as e:
            raise AliasStoreError(f"Redis set failed: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(f"{self.PREFIX}{key}")
        except Exception as e:
            raise AliasStoreError(f"Redis delete failed: {e}", key=key) from e


async def get_key_value_store() -> KeyValueStore:
    """
    Choose a backend from settings.

    Redis when REDIS_URL is set and reachable, else the JSON file at
    ALIAS_STORE_PATH, else an in-memory store (aliases last for the process).
    """
    redis = await get_redis_client()
    if redis is not None:
        return RedisKeyValueStore(redis)

    if settings.ALIAS_STORE_PATH:
        logger.info(f"Using JSON file store at {settings.ALIAS_STORE_PATH}")
        return JsonFileKeyValueStore(settings.ALIAS_STORE_PATH)

    logger.warning("No durable store configured - learned aliases will not survive restart")
    return MemoryKeyValueStore()
