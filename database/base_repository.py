"""Base repository pattern for document store access."""

from __future__ import annotations

from typing import List, Optional, Sequence

from database.document_store import Document, DocumentStore, FieldFilter, WriteOp


class BaseRepository:
    """Base repository bound to one collection of an injected store."""

    collection: str = ""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def fetch_one(self, doc_id: str) -> Optional[Document]:
        """Fetch a single document by id."""
        return await self.store.get(self.collection, doc_id)

    async def fetch_all(self, *conditions: FieldFilter) -> List[Document]:
        """Fetch all documents matching the conditions."""
        return await self.store.query(self.collection, *conditions)

    async def transaction(self, ops: Sequence[WriteOp]) -> None:
        """Commit the writes atomically."""
        await self.store.atomic_batch_write(ops)
