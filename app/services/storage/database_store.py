"""Key-value store persisted in the database."""
from typing import Optional
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import StorageEntry
from app.services.storage.base import KeyValueStore


class DatabaseKeyValueStore(KeyValueStore):
    """Store whose entries live in the storage_entries table, one namespace per client session."""

    def __init__(self, db: AsyncSession, namespace: str):
        self.db = db
        self.namespace = namespace

    async def _get_entry(self, key: str) -> Optional[StorageEntry]:
        result = await self.db.execute(
            select(StorageEntry).where(
                StorageEntry.namespace == self.namespace,
                StorageEntry.key == key,
            )
        )
        return result.scalar_one_or_none()

    async def get_item(self, key: str) -> Optional[str]:
        entry = await self._get_entry(key)
        return entry.value if entry else None

    async def set_item(self, key: str, value: str) -> None:
        try:
            entry = await self._get_entry(key)
            if entry:
                entry.value = value
            else:
                self.db.add(StorageEntry(namespace=self.namespace, key=key, value=value))
            await self.db.commit()
        except SQLAlchemyError:
            # Keep the shared session usable for the rest of the request
            await self.db.rollback()
            raise

    async def remove_item(self, key: str) -> None:
        try:
            await self.db.execute(
                delete(StorageEntry).where(
                    StorageEntry.namespace == self.namespace,
                    StorageEntry.key == key,
                )
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
