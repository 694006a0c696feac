"""Run planned audit queries against the options store."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from core.db import connect, table_exists

from .errors import StoreUnavailable
from .planner import QuerySpec, StoreLayout

__all__ = [
    "OptionRow",
    "execute_rows",
    "execute_scalar",
    "open_store",
]

LOGGER = logging.getLogger("optionsaudit.audit.executor")


@dataclass(frozen=True, slots=True)
class OptionRow:
    name: str
    autoload: bool
    size_bytes: int


def open_store(db_path: Path | str, layout: StoreLayout, *, timeout: float = 5.0) -> sqlite3.Connection:
    """Open the options store read-only and confirm the options table is present."""

    path = Path(db_path)
    if not path.exists():
        raise StoreUnavailable(f"options store is missing: {path}")
    try:
        conn = connect(path, read_only=True, timeout=timeout)
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"cannot open options store {path}: {exc}") from exc
    try:
        present = table_exists(conn, layout.table)
    except sqlite3.Error as exc:
        conn.close()
        raise StoreUnavailable(f"cannot read options store {path}: {exc}") from exc
    if not present:
        conn.close()
        raise StoreUnavailable(f"options table '{layout.table}' not found in {path}")
    return conn


def _run(conn: sqlite3.Connection, spec: QuerySpec) -> sqlite3.Cursor:
    LOGGER.debug("query %s params=%s", spec.name, spec.params)
    try:
        return conn.execute(spec.sql, spec.params)
    except (sqlite3.Error, OverflowError) as exc:
        raise StoreUnavailable(f"query '{spec.name}' failed: {exc}", query=spec.name) from exc


def execute_scalar(conn: sqlite3.Connection, spec: QuerySpec) -> int:
    cur = _run(conn, spec)
    try:
        row = cur.fetchone()
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"query '{spec.name}' failed: {exc}", query=spec.name) from exc
    if not row or row[0] is None:
        return 0
    return max(0, int(row[0]))


def execute_rows(conn: sqlite3.Connection, spec: QuerySpec, layout: StoreLayout) -> Tuple[OptionRow, ...]:
    cur = _run(conn, spec)
    try:
        fetched = cur.fetchall()
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"query '{spec.name}' failed: {exc}", query=spec.name) from exc
    return tuple(
        OptionRow(
            name=str(name),
            autoload=layout.is_autoload(autoload),
            size_bytes=int(size_bytes or 0),
        )
        for name, autoload, size_bytes in fetched
    )
