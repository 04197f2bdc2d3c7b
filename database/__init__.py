"""Database package public API."""

from .connection import OptimizedSQLitePool
from .document_store import DocumentStore, FieldFilter, SQLiteDocumentStore, WriteOp
from .migrations import run_migrations

__all__ = [
    "OptimizedSQLitePool",
    "DocumentStore",
    "FieldFilter",
    "SQLiteDocumentStore",
    "WriteOp",
    "run_migrations",
]
