"""Transactional document store used by the entrant services.

The services only depend on :class:`DocumentStore`: point reads, simple
predicate queries and all-or-nothing batch writes. ``SQLiteDocumentStore``
keeps each document as a JSON payload in a single ``documents`` table.
"""

from __future__ import annotations

import copy
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core import get_logger
from core.exceptions import StoreError, ValidationError
from database.connection import OptimizedSQLitePool
from utils.performance import PerformanceMonitor

logger = get_logger(__name__)

Document = Dict[str, Any]

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class FieldFilter:
    """Query predicate on a top-level document field."""

    field: str
    op: str
    value: Any

    EQUALS = "=="
    ARRAY_CONTAINS = "array_contains"

    def __post_init__(self) -> None:
        if not _FIELD_RE.match(self.field):
            raise ValidationError(f"Invalid field name: {self.field!r}")
        if self.op not in (self.EQUALS, self.ARRAY_CONTAINS):
            raise ValidationError(f"Unsupported query operator: {self.op!r}")

    @classmethod
    def eq(cls, field_name: str, value: Any) -> "FieldFilter":
        return cls(field_name, cls.EQUALS, value)

    @classmethod
    def contains(cls, field_name: str, value: Any) -> "FieldFilter":
        return cls(field_name, cls.ARRAY_CONTAINS, value)


@dataclass(frozen=True)
class WriteOp:
    """One write inside an atomic batch.

    ``set`` creates or replaces a document, ``update`` overwrites the given
    top-level fields of an existing one and ``delete`` removes it.
    """

    kind: str
    collection: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)

    SET = "set"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def set(cls, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteOp":
        return cls(cls.SET, collection, doc_id, dict(data))

    @classmethod
    def update(cls, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteOp":
        return cls(cls.UPDATE, collection, doc_id, dict(data))

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> "WriteOp":
        return cls(cls.DELETE, collection, doc_id)


def apply_field_updates(document: Document, updates: Dict[str, Any]) -> Document:
    """Return a copy of ``document`` with the top-level ``updates`` applied."""
    merged = copy.deepcopy(document)
    merged.update(copy.deepcopy(updates))
    return merged


class DocumentStore(ABC):
    """Abstract transactional key/document store."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return the document (with its ``id``) or ``None``."""

    @abstractmethod
    async def query(self, collection: str, *conditions: FieldFilter) -> List[Document]:
        """Return all documents of ``collection`` matching every condition."""

    @abstractmethod
    async def atomic_batch_write(self, ops: Sequence[WriteOp]) -> None:
        """Commit every op or none of them.

        Raises:
            StoreError: If the batch could not be committed
        """


def _to_sql_value(value: Any) -> Any:
    # json_extract returns 1/0 for JSON booleans
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteDocumentStore(DocumentStore):
    """Document store persisted in SQLite through aiosqlite."""

    def __init__(self, pool: OptimizedSQLitePool, monitor: Optional[PerformanceMonitor] = None) -> None:
        self.pool = pool
        self.monitor = monitor or PerformanceMonitor()

    @staticmethod
    def _decode(doc_id: str, payload: str) -> Document:
        document = json.loads(payload)
        document["id"] = doc_id
        return document

    @staticmethod
    def _encode(data: Dict[str, Any]) -> str:
        body = {key: value for key, value in data.items() if key != "id"}
        return json.dumps(body, ensure_ascii=False)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            async with self.pool.connection() as conn:
                cursor = await conn.execute(
                    "SELECT data FROM documents WHERE collection=? AND id=?",
                    (collection, doc_id),
                )
                row = await cursor.fetchone()
        except Exception as exc:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {exc}") from exc
        if row is None:
            return None
        return self._decode(doc_id, row[0])

    @staticmethod
    def _build_where(conditions: Sequence[FieldFilter]) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for condition in conditions:
            path = f"'$.{condition.field}'"
            if condition.op == FieldFilter.ARRAY_CONTAINS:
                clauses.append(
                    f"EXISTS (SELECT 1 FROM json_each(documents.data, {path}) "
                    f"WHERE json_each.value = ?)"
                )
                params.append(_to_sql_value(condition.value))
            elif condition.value is None:
                clauses.append(f"json_extract(data, {path}) IS NULL")
            else:
                clauses.append(f"json_extract(data, {path}) = ?")
                params.append(_to_sql_value(condition.value))
        return "".join(f" AND {clause}" for clause in clauses), params

    async def query(self, collection: str, *conditions: FieldFilter) -> List[Document]:
        where, params = self._build_where(conditions)
        sql = f"SELECT id, data FROM documents WHERE collection=?{where} ORDER BY rowid"
        try:
            async with self.pool.connection() as conn:
                cursor = await conn.execute(sql, (collection, *params))
                rows = await cursor.fetchall()
        except Exception as exc:
            raise StoreError(f"Failed to query {collection}: {exc}") from exc
        return [self._decode(doc_id, payload) for doc_id, payload in rows]

    async def atomic_batch_write(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return

        with self.monitor.track_batch():
            async with self.pool.connection() as conn:
                try:
                    await conn.execute("BEGIN IMMEDIATE")
                except Exception as exc:
                    raise StoreError(f"Failed to start batch: {exc}") from exc
                except BaseException:
                    # Transaction state unknown after a cancelled BEGIN
                    self.pool.discard(conn)
                    raise
                try:
                    for op in ops:
                        await self._apply(conn, op)
                    await conn.execute("COMMIT")
                except Exception as exc:
                    await self._rollback(conn)
                    logger.warning(f"Batch of {len(ops)} writes rolled back: {exc}")
                    if isinstance(exc, StoreError):
                        raise
                    raise StoreError(f"Batch write failed: {exc}") from exc
                except BaseException:
                    await self._rollback(conn)
                    logger.warning(f"Batch of {len(ops)} writes cancelled and rolled back")
                    raise

        logger.debug(f"Committed batch of {len(ops)} writes")

    async def _rollback(self, conn: Any) -> None:
        """Roll back the open batch, discarding the connection if that fails."""
        try:
            await conn.execute("ROLLBACK")
        except Exception as exc:
            logger.error(f"Rollback failed, discarding connection: {exc}")
            self.pool.discard(conn)
        except BaseException:
            self.pool.discard(conn)
            raise

    async def _apply(self, conn: Any, op: WriteOp) -> None:
        if op.kind == WriteOp.SET:
            await conn.execute(
                """
                INSERT INTO documents (collection, id, data, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(collection, id) DO UPDATE SET
                    data=excluded.data,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (op.collection, op.doc_id, self._encode(op.data)),
            )
        elif op.kind == WriteOp.UPDATE:
            cursor = await conn.execute(
                "SELECT data FROM documents WHERE collection=? AND id=?",
                (op.collection, op.doc_id),
            )
            row = await cursor.fetchone()
            if row is None:
                raise StoreError(f"Cannot update missing document {op.collection}/{op.doc_id}")
            merged = apply_field_updates(json.loads(row[0]), op.data)
            await conn.execute(
                "UPDATE documents SET data=?, updated_at=CURRENT_TIMESTAMP "
                "WHERE collection=? AND id=?",
                (self._encode(merged), op.collection, op.doc_id),
            )
        elif op.kind == WriteOp.DELETE:
            await conn.execute(
                "DELETE FROM documents WHERE collection=? AND id=?",
                (op.collection, op.doc_id),
            )
        else:
            raise StoreError(f"Unknown write kind: {op.kind!r}")
