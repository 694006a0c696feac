"""Error hierarchy for options audit runs."""
from __future__ import annotations

from typing import Optional


class AuditError(RuntimeError):
    """Base exception for audit failures."""


class PermissionDenied(AuditError):
    """Raised when the caller lacks administrative privilege to run an audit."""


class StoreUnavailable(AuditError):
    """Raised when the options store cannot be opened or a query fails."""

    def __init__(self, message: str, *, query: Optional[str] = None) -> None:
        super().__init__(message)
        self.query = query


__all__ = ["AuditError", "PermissionDenied", "StoreUnavailable"]
