"""SQLite database backend."""

import asyncio
import re
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from insurcheck.protocols.database import Row

PARAM_PATTERN = re.compile(r":(\w+)")


class SQLiteDatabase:
    """SQLite database backend.

    Suitable for development and single-node deployments. Queries run
    under an asyncio lock on one shared connection.
    """

    def __init__(self, path: str | None = None, **kwargs: Any) -> None:
        """Initialize SQLite database.

        Args:
            path: Path to the database file. Defaults to ./data/insurcheck.db.
                  Use ":memory:" for an in-memory database.
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.path: str | Path
        if path == ":memory:":
            self.path = ":memory:"
        else:
            self.path = Path(path) if path else Path("./data/insurcheck.db")
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()
        self._in_transaction = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    @staticmethod
    def _bind(query: str, params: dict[str, Any] | None) -> tuple[str, tuple[Any, ...]]:
        """Rewrite :name placeholders to positional ? placeholders."""
        if not params:
            return query, ()

        names: list[str] = []

        def replace(match: re.Match[str]) -> str:
            names.append(match.group(1))
            return "?"

        query = PARAM_PATTERN.sub(replace, query)
        return query, tuple(params[name] for name in names)

    async def execute(
        self,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Execute a query and return results."""
        sql, values = self._bind(query, params)
        async with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(sql, values)
            rows = cursor.fetchall()

            # Only auto-commit outside a transaction
            if not self._in_transaction:
                conn.commit()

            return [Row(_data=dict(row)) for row in rows]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteDatabase"]:
        """Start a transaction.

        SQLite has no nested transactions; an inner call joins the outer one.
        """
        if self._in_transaction:
            yield self
            return

        conn = self._get_connection()
        self._in_transaction = True
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._in_transaction = False

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
