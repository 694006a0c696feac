"""Human readable formatting for audit figures."""
from __future__ import annotations

__all__ = ["format_count", "human_bytes", "percentage"]

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024


def _number(value: float, decimals: int, group_digits: bool) -> str:
    if group_digits:
        return f"{value:,.{decimals}f}"
    return f"{value:.{decimals}f}"


def human_bytes(value: int, *, group_digits: bool = False) -> str:
    """Render a byte count as B, KB (1 decimal), MB or GB (2 decimals)."""

    size = max(0, int(value))
    if size < _KB:
        return f"{size:,} B" if group_digits else f"{size} B"
    if size < _MB:
        return f"{_number(size / _KB, 1, group_digits)} KB"
    if size < _GB:
        return f"{_number(size / _MB, 2, group_digits)} MB"
    return f"{_number(size / _GB, 2, group_digits)} GB"


def percentage(part: int, whole: int) -> int:
    if not whole:
        return 0
    # round() sends halves to the even neighbour: 12.5 -> 12, 37.5 -> 38.
    return int(round(100 * part / whole))


def format_count(value: int) -> str:
    return f"{int(value):,}"
