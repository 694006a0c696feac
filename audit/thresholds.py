"""Audit thresholds and the override points used to adjust them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

__all__ = [
    "AuditThresholds",
    "DEFAULT_LARGE_OPTION_THRESHOLD",
    "DEFAULT_LARGE_TRANSIENT_THRESHOLD",
    "DEFAULT_TOP_AUTOLOAD_LIMIT",
    "MAX_LISTED_ROWS",
    "MAX_THRESHOLD",
    "TRANSIENT_PREFIXES",
    "thresholds_from_settings",
]

DEFAULT_TOP_AUTOLOAD_LIMIT = 50
DEFAULT_LARGE_OPTION_THRESHOLD = 50000  # about 50 KB
DEFAULT_LARGE_TRANSIENT_THRESHOLD = 20000
MAX_LISTED_ROWS = 200
TRANSIENT_PREFIXES = ("_transient_", "_site_transient_")
# Largest value SQLite binds as an INTEGER parameter.
MAX_THRESHOLD = 2**63 - 1


def _positive_or_default(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if parsed <= 0:
        return default
    return min(parsed, MAX_THRESHOLD)


@dataclass(frozen=True, slots=True)
class AuditThresholds:
    top_autoload_limit: int = DEFAULT_TOP_AUTOLOAD_LIMIT
    large_option_threshold: int = DEFAULT_LARGE_OPTION_THRESHOLD
    large_transient_threshold: int = DEFAULT_LARGE_TRANSIENT_THRESHOLD

    def __post_init__(self) -> None:
        # Unusable values fall back to the defaults; oversized ones clamp to what SQLite can bind.
        object.__setattr__(
            self,
            "top_autoload_limit",
            _positive_or_default(self.top_autoload_limit, DEFAULT_TOP_AUTOLOAD_LIMIT),
        )
        object.__setattr__(
            self,
            "large_option_threshold",
            _positive_or_default(self.large_option_threshold, DEFAULT_LARGE_OPTION_THRESHOLD),
        )
        object.__setattr__(
            self,
            "large_transient_threshold",
            _positive_or_default(self.large_transient_threshold, DEFAULT_LARGE_TRANSIENT_THRESHOLD),
        )

    @classmethod
    def resolve(
        cls,
        top_autoload_limit: Any = None,
        large_option_threshold: Any = None,
        large_transient_threshold: Any = None,
    ) -> "AuditThresholds":
        """Build thresholds from loosely typed values such as query or settings input."""

        return cls(
            top_autoload_limit=top_autoload_limit,
            large_option_threshold=large_option_threshold,
            large_transient_threshold=large_transient_threshold,
        )


def thresholds_from_settings(
    settings: Optional[Mapping[str, Any]],
    *,
    top_autoload_limit: Any = None,
    large_option_threshold: Any = None,
    large_transient_threshold: Any = None,
) -> AuditThresholds:
    """Read the ``audit`` settings section and layer explicit overrides on top."""

    section: Mapping[str, Any] = {}
    if isinstance(settings, Mapping) and isinstance(settings.get("audit"), Mapping):
        section = settings["audit"]

    def _pick(key: str, override: Any) -> Any:
        return override if override is not None else section.get(key)

    return AuditThresholds.resolve(
        top_autoload_limit=_pick("top_autoload_limit", top_autoload_limit),
        large_option_threshold=_pick("large_option_threshold", large_option_threshold),
        large_transient_threshold=_pick("large_transient_threshold", large_transient_threshold),
    )
