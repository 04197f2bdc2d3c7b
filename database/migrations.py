"""Database schema migrations."""

from __future__ import annotations

from .connection import OptimizedSQLitePool


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        collection TEXT NOT NULL,
        id TEXT NOT NULL,
        data TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (collection, id)
    );
    """,
    # Hot query paths: memberships per event, notifications per recipient
    """
    CREATE INDEX IF NOT EXISTS idx_documents_event
    ON documents(collection, json_extract(data, '$.eventId'));
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_documents_recipient
    ON documents(collection, json_extract(data, '$.recipientId'));
    """,
)


async def run_migrations(pool: OptimizedSQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.execute("ROLLBACK")
            raise
        else:
            await conn.execute("COMMIT")
