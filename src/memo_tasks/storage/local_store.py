# src/memo_tasks/storage/local_store.py

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from ..core.ports import Record, TableSchemas

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name or ""):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def sql_create_table(table_name: str, columns: Mapping[str, str]) -> str:
    """Render an idempotent CREATE TABLE statement from an ordered column map."""
    columns_sql = ", ".join(f"{_ident(name)} {decl}" for name, decl in columns.items())
    return f"CREATE TABLE IF NOT EXISTS {_ident(table_name)} ({columns_sql})"


class LocalStore:
    """
    SQLite store backing every task table.

    One database file, one connection:
    - the connection is opened on first access and reused afterwards
    - opening runs CREATE TABLE IF NOT EXISTS for every schema (idempotent)
    - reopen() drops the handle and opens the file again; the sync download
      replaces the file underneath us and the old handle would keep serving
      the previous inode

    The journal stays in the default rollback mode (no WAL): committed rows must
    live in the main file so a whole-file upload carries all of them.

    Errors from sqlite3 are not caught here.
    """

    def __init__(self, db_path: str | Path, schemas: TableSchemas) -> None:
        self._db_path = Path(db_path)
        self._schemas = {_ident(t): dict(cols) for t, cols in schemas.items()}
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # ---- lifecycle ----

    def _open(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            self._ensure_schema(conn)
        except Exception:
            conn.close()
            raise
        logger.info("LocalStore opened db=%s tables=%s", self._db_path, ",".join(self._schemas))
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        for table, columns in self._schemas.items():
            cur.execute(sql_create_table(table, columns))
        (version,) = cur.execute("PRAGMA user_version").fetchone()
        if int(version) < SCHEMA_VERSION:
            cur.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    async def close(self) -> None:
        """Release the handle. The next call reopens transparently."""
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
            logger.debug("LocalStore closed db=%s", self._db_path)

    async def reopen(self) -> None:
        """Close (if open) and open the same path again, re-running schema creation."""
        await self.close()
        self._conn = self._open()

    # ---- public API ----

    async def insert(self, table: str, row: Mapping[str, Any]) -> None:
        """Upsert by primary key: an existing row with the same key is replaced."""
        if not row:
            raise ValueError("row must not be empty")
        cols = [_ident(c) for c in row]
        placeholders = ", ".join("?" for _ in cols)
        sql = f"INSERT OR REPLACE INTO {_ident(table)} ({', '.join(cols)}) VALUES ({placeholders})"

        conn = self._get_conn()
        conn.execute(sql, tuple(row.values()))
        conn.commit()

    async def query(
        self,
        table: str,
        *,
        distinct: bool = False,
        columns: Sequence[str] | None = None,
        where: str | None = None,
        where_args: Iterable[Any] = (),
        group_by: str | None = None,
        having: str | None = None,
        order_by: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Record]:
        """
        SELECT rows as plain dicts.

        `where`, `group_by`, `having` and `order_by` are SQL fragments; values
        must go through `where_args` placeholders.
        """
        cols_sql = ", ".join(_ident(c) for c in columns) if columns else "*"
        parts = [f"SELECT {'DISTINCT ' if distinct else ''}{cols_sql} FROM {_ident(table)}"]
        params: list[Any] = list(where_args)

        if where:
            parts.append(f"WHERE {where}")
        if group_by:
            parts.append(f"GROUP BY {group_by}")
            if having:
                parts.append(f"HAVING {having}")
        if order_by:
            parts.append(f"ORDER BY {order_by}")
        if limit is not None:
            parts.append("LIMIT ?")
            params.append(int(limit))
            if offset is not None:
                parts.append("OFFSET ?")
                params.append(int(offset))
        elif offset is not None:
            # SQLite needs a LIMIT before OFFSET; -1 means "no limit".
            parts.append("LIMIT -1 OFFSET ?")
            params.append(int(offset))

        conn = self._get_conn()
        cur = conn.execute(" ".join(parts), params)
        return [dict(r) for r in cur.fetchall()]

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        where: str | None = None,
        where_args: Iterable[Any] = (),
    ) -> int:
        """Update matching rows (all rows without `where`). Returns the affected count."""
        if not values:
            return 0
        assignments = ", ".join(f"{_ident(c)} = ?" for c in values)
        sql = f"UPDATE {_ident(table)} SET {assignments}"
        params: list[Any] = list(values.values())
        if where:
            sql += f" WHERE {where}"
            params.extend(where_args)

        conn = self._get_conn()
        cur = conn.execute(sql, params)
        conn.commit()
        return int(cur.rowcount)

    async def delete(
        self,
        table: str,
        *,
        where: str | None = None,
        where_args: Iterable[Any] = (),
    ) -> int:
        """
        Delete matching rows and return the affected count.

        Without `where` this empties the whole table ("clear all tasks").
        """
        sql = f"DELETE FROM {_ident(table)}"
        params: list[Any] = []
        if where:
            sql += f" WHERE {where}"
            params.extend(where_args)

        conn = self._get_conn()
        cur = conn.execute(sql, params)
        conn.commit()
        return int(cur.rowcount)

    async def count(self, table: str) -> int:
        conn = self._get_conn()
        (n,) = conn.execute(f"SELECT COUNT(*) FROM {_ident(table)}").fetchone()
        return int(n)
