"""Read-only audit of a key-value options table."""

from .errors import AuditError, PermissionDenied, StoreUnavailable
from .planner import StoreLayout
from .run import AuditResult, OptionsAuditor, run_audit
from .thresholds import AuditThresholds, thresholds_from_settings

__all__ = [
    "AuditError",
    "AuditResult",
    "AuditThresholds",
    "OptionsAuditor",
    "PermissionDenied",
    "StoreLayout",
    "StoreUnavailable",
    "run_audit",
    "thresholds_from_settings",
]
