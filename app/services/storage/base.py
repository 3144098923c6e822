"""Durable key-value store interface."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-keyed durable storage, the server-side stand-in for browser storage."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Get the raw value for a key, or None when absent."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a raw value."""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        pass

    async def get_json(self, key: str, default: Any) -> Any:
        """Read a JSON value, falling back to default when missing or unreadable."""
        try:
            raw = await self.get_item(key)
            if raw is None:
                return default
            return json.loads(raw)
        except Exception as e:
            logger.debug(f"[STORAGE] Could not read '{key}', using default: {type(e).__name__}: {e}")
            return default

    async def set_json(self, key: str, value: Any) -> None:
        """Write a JSON value."""
        await self.set_item(key, json.dumps(value, ensure_ascii=False))

    async def get_text(self, key: str) -> Optional[str]:
        """Read a raw value, treating read failures as absent."""
        try:
            return await self.get_item(key)
        except Exception as e:
            logger.debug(f"[STORAGE] Could not read '{key}': {type(e).__name__}: {e}")
            return None

    async def set_or_remove(self, key: str, value: Optional[str]) -> None:
        """Store a value, or remove the key when the value is empty."""
        if value:
            await self.set_item(key, value)
        else:
            await self.remove_item(key)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove_item(self, key: str) -> None:
        self.data.pop(key, None)
