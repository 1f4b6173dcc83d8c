# app/infra/pg_record_store_async.py
"""
Async PostgreSQL record store (asyncpg).
Inserts finalized profile rows and returns the stored row.
"""
from __future__ import annotations
import re
from typing import Any

import asyncpg

from app.core.engine.errors import RecordStoreError
from app.infra.db_async import db_conn
from app.infra.logging_config import get_logger
from app.infra.metrics import inc_counter

logger = get_logger(__name__)

# Table and column names are interpolated, so only plain identifiers pass
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Validate and double-quote a SQL identifier."""
    if not _IDENTIFIER_RE.match(name or ""):
        raise RecordStoreError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


def build_insert(table: str, record: dict[str, Any]) -> tuple[str, list[Any]]:
    """``INSERT INTO "t" ("a", "b") VALUES ($1, $2) RETURNING *`` and its args."""
    if not record:
        raise RecordStoreError("Cannot insert an empty record")

    columns = list(record)
    column_sql = ", ".join(quote_identifier(c) for c in columns)
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    query = (
        f"INSERT INTO {quote_identifier(table)} ({column_sql}) "
        f"VALUES ({placeholders}) RETURNING *"
    )
    return query, [record[c] for c in columns]


class PostgresRecordStore:
    """RecordStore over the shared asyncpg pool."""

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        query, args = build_insert(table, record)

        try:
            async with db_conn() as conn:
                row = await conn.fetchrow(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, RuntimeError) as e:
            logger.error("Insert into %s failed: %s", table, e)
            inc_counter("record_inserts_failed", table=table)
            raise RecordStoreError(str(e) or e.__class__.__name__) from e

        if row is None:
            raise RecordStoreError(f"Insert into {table} returned no row")

        stored = dict(row)
        if stored.get("id") is not None:
            stored["id"] = str(stored["id"])
        inc_counter("record_inserts_success", table=table)
        logger.info("Record inserted: table=%s id=%s", table, stored.get("id"))
        return stored
