"""
Alias Store

Persisted mapping from a cleaned utterance to the stop the driver meant.
Once taught, an alias bypasses fuzzy search for that exact phrase.

Persistence is best-effort: load and save failures are logged and the store
keeps working from memory.
"""

from typing import Dict, Iterable, Optional

from config.settings import settings
from services.storage import KeyValueStore, MemoryKeyValueStore
from utils.logging import get_logger

logger = get_logger(__name__)


class AliasStore:
    """
    Exact-match alias lookup backed by a durable key-value store.

    All aliases are written as one document under ``storage_key`` on every
    change (flush-on-write).

    Usage:
        store = AliasStore(await get_key_value_store())
        await store.load()
        store.get("smith farm")           # -> "s1" or None
        await store.set("smith farm", "s1")
    """

    def __init__(
        self,
        backend: Optional[KeyValueStore] = None,
        storage_key: Optional[str] = None
    ):
        """
        Args:
            backend: Key-value backend (in-memory if omitted)
            storage_key: Document key, defaults to settings.ALIAS_STORAGE_KEY
        """
        self._backend = backend if backend is not None else MemoryKeyValueStore()
        self.storage_key = storage_key or settings.ALIAS_STORAGE_KEY
        self._aliases: Dict[str, str] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def aliases(self) -> Dict[str, str]:
        """Copy of the current alias table."""
        return dict(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)

    async def load(self) -> bool:
        """
        Load aliases from the backend.

        Never raises. On failure the table is left empty.

        Returns:
            True if the backend was read successfully
        """
        try:
            saved = await self._backend.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to load aliases, continuing without them: {e}")
            self._aliases = {}
            self._loaded = True
            return False

        if isinstance(saved, dict):
            self._aliases = {str(k): str(v) for k, v in saved.items()}
        elif saved is not None:
            logger.warning(f"Ignoring malformed alias document ({type(saved).__name__})")
            self._aliases = {}
        self._loaded = True
        logger.info(f"Loaded {len(self._aliases)} learned aliases")
        return True

    def get(self, key: str) -> Optional[str]:
        """Stop id for an exact cleaned utterance, or None."""
        return self._aliases.get(key)

    async def set(self, key: str, stop_id: str) -> bool:
        """
        Map ``key`` to ``stop_id`` and persist.

        The in-memory mapping is updated even if persisting fails.

        Returns:
            True if the write reached the backend
        """
        previous = self._aliases.get(key)
        self._aliases[key] = stop_id
        if previous and previous != stop_id:
            logger.info(f"Alias '{key}' re-pointed {previous} → {stop_id}")
        return await self._flush()

    async def remove_dangling(self, valid_stop_ids: Iterable[str]) -> int:
        """
        Drop aliases pointing at stops that no longer exist.

        Returns:
            Number of aliases removed
        """
        valid = set(valid_stop_ids)
        dangling = [k for k, v in self._aliases.items() if v not in valid]
        for key in dangling:
            del self._aliases[key]
        if dangling:
            logger.info(f"Removed {len(dangling)} dangling aliases")
            await self._flush()
        return len(dangling)

    async def _flush(self) -> bool:
        try:
            await self._backend.set(self.storage_key, dict(self._aliases))
            return True
        except Exception as e:
            logger.error(f"Failed to persist aliases: {e}")
            return False
