"""Build the read-only queries behind an options audit."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Sequence, Tuple

from .thresholds import MAX_LISTED_ROWS, TRANSIENT_PREFIXES, AuditThresholds

__all__ = [
    "QueryPlan",
    "QuerySpec",
    "StoreLayout",
    "escape_like",
    "plan_queries",
]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_LIKE_ESCAPE = "\\"

# Byte length of the stored value; TEXT is measured in encoded bytes, not characters.
_SIZE_EXPR = "LENGTH(CAST(option_value AS BLOB))"


@dataclass(frozen=True, slots=True)
class StoreLayout:
    table: str = "wp_options"
    autoload_values: Tuple[str, ...] = ("yes",)

    def __post_init__(self) -> None:
        if not _IDENTIFIER.match(self.table or ""):
            raise ValueError(f"invalid options table name: {self.table!r}")
        values = tuple(str(value) for value in self.autoload_values if str(value))
        if not values:
            raise ValueError("at least one autoload value is required")
        object.__setattr__(self, "autoload_values", values)

    def is_autoload(self, raw: object) -> bool:
        if raw is None:
            return False
        return str(raw) in self.autoload_values


@dataclass(frozen=True, slots=True)
class QuerySpec:
    name: str
    sql: str
    params: Tuple[object, ...] = ()
    kind: str = "rows"  # scalar | rows


@dataclass(frozen=True, slots=True)
class QueryPlan:
    total_options: QuerySpec
    autoload_count: QuerySpec
    autoload_bytes: QuerySpec
    top_autoload: QuerySpec
    large_options: QuerySpec
    large_transients: QuerySpec
    thresholds: AuditThresholds = field(default_factory=AuditThresholds)

    def __iter__(self) -> Iterator[QuerySpec]:
        yield self.total_options
        yield self.autoload_count
        yield self.autoload_bytes
        yield self.top_autoload
        yield self.large_options
        yield self.large_transients


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so *value* matches literally."""

    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def _placeholders(values: Sequence[object]) -> str:
    return ", ".join("?" for _ in values)


def plan_queries(thresholds: AuditThresholds, layout: StoreLayout = StoreLayout()) -> QueryPlan:
    table = layout.table
    autoload = tuple(layout.autoload_values)
    autoload_clause = f"autoload IN ({_placeholders(autoload)})"
    row_columns = f"option_name, autoload, {_SIZE_EXPR} AS size_bytes"
    ordering = "ORDER BY size_bytes DESC, option_name ASC"

    total_options = QuerySpec(
        name="total_options",
        sql=f"SELECT COUNT(*) FROM {table}",
        kind="scalar",
    )
    autoload_count = QuerySpec(
        name="autoload_count",
        sql=f"SELECT COUNT(*) FROM {table} WHERE {autoload_clause}",
        params=autoload,
        kind="scalar",
    )
    autoload_bytes = QuerySpec(
        name="autoload_bytes",
        sql=f"SELECT SUM({_SIZE_EXPR}) FROM {table} WHERE {autoload_clause}",
        params=autoload,
        kind="scalar",
    )
    top_autoload = QuerySpec(
        name="top_autoload",
        sql=(
            f"SELECT {row_columns} FROM {table} "
            f"WHERE {autoload_clause} "
            f"{ordering} LIMIT ?"
        ),
        params=autoload + (int(thresholds.top_autoload_limit),),
    )
    large_options = QuerySpec(
        name="large_options",
        sql=(
            f"SELECT {row_columns} FROM {table} "
            f"WHERE {_SIZE_EXPR} >= ? "
            f"{ordering} LIMIT ?"
        ),
        params=(int(thresholds.large_option_threshold), MAX_LISTED_ROWS),
    )
    prefix_clause = " OR ".join(
        f"option_name LIKE ? ESCAPE '{_LIKE_ESCAPE}'" for _ in TRANSIENT_PREFIXES
    )
    large_transients = QuerySpec(
        name="large_transients",
        sql=(
            f"SELECT {row_columns} FROM {table} "
            f"WHERE ({prefix_clause}) AND {_SIZE_EXPR} >= ? "
            f"{ordering} LIMIT ?"
        ),
        params=tuple(escape_like(prefix) + "%" for prefix in TRANSIENT_PREFIXES)
        + (int(thresholds.large_transient_threshold), MAX_LISTED_ROWS),
    )
    return QueryPlan(
        total_options=total_options,
        autoload_count=autoload_count,
        autoload_bytes=autoload_bytes,
        top_autoload=top_autoload,
        large_options=large_options,
        large_transients=large_transients,
        thresholds=thresholds,
    )
