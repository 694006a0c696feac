"""Options audit orchestration."""
from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

from .errors import PermissionDenied, StoreUnavailable
from .executor import OptionRow, execute_rows, execute_scalar, open_store
from .formatting import percentage
from .planner import StoreLayout, plan_queries
from .thresholds import AuditThresholds

LOGGER = logging.getLogger("optionsaudit.audit.run")

AccessCheck = Callable[[], bool]


@dataclass(frozen=True, slots=True)
class AuditResult:
    total_options: int
    autoload_count: int
    autoload_bytes: int
    top_autoload: Tuple[OptionRow, ...]
    large_options: Tuple[OptionRow, ...]
    large_transients: Tuple[OptionRow, ...]
    thresholds: AuditThresholds
    generated_utc: str
    elapsed_ms: int = 0

    @property
    def autoload_percent(self) -> int:
        return percentage(self.autoload_count, self.total_options)


def _now_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class OptionsAuditor:
    """Run the read-only options audit against one store."""

    def __init__(
        self,
        db_path: Path | str,
        thresholds: Optional[AuditThresholds] = None,
        *,
        layout: Optional[StoreLayout] = None,
        access_check: Optional[AccessCheck] = None,
        timeout: float = 5.0,
    ) -> None:
        self.db_path = Path(db_path)
        self.thresholds = thresholds or AuditThresholds()
        self.layout = layout or StoreLayout()
        self._access_check = access_check
        self.timeout = float(timeout)

    def _authorize(self) -> None:
        if self._access_check is not None and not self._access_check():
            LOGGER.warning("Options audit refused: caller lacks administrative privilege")
            raise PermissionDenied("administrative privilege is required to run the options audit")

    def run(self) -> AuditResult:
        self._authorize()
        thresholds = self.thresholds
        plan = plan_queries(thresholds, self.layout)
        LOGGER.info(
            "Starting options audit: table=%s top=%d option_threshold=%d transient_threshold=%d",
            self.layout.table,
            thresholds.top_autoload_limit,
            thresholds.large_option_threshold,
            thresholds.large_transient_threshold,
        )
        start = time.perf_counter()
        try:
            conn = open_store(self.db_path, self.layout, timeout=self.timeout)
            try:
                total_options = execute_scalar(conn, plan.total_options)
                autoload_count = execute_scalar(conn, plan.autoload_count)
                autoload_bytes = execute_scalar(conn, plan.autoload_bytes)
                top_autoload = execute_rows(conn, plan.top_autoload, self.layout)
                large_options = execute_rows(conn, plan.large_options, self.layout)
                large_transients = execute_rows(conn, plan.large_transients, self.layout)
            finally:
                try:
                    conn.close()
                except sqlite3.Error:
                    pass
        except StoreUnavailable as exc:
            LOGGER.error("Options audit failed: %s", exc)
            raise
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        result = AuditResult(
            total_options=total_options,
            autoload_count=autoload_count,
            autoload_bytes=autoload_bytes,
            top_autoload=top_autoload,
            large_options=large_options,
            large_transients=large_transients,
            thresholds=thresholds,
            generated_utc=_now_utc(),
            elapsed_ms=elapsed_ms,
        )
        LOGGER.info(
            "Options audit finished in %d ms: total=%d autoload=%d autoload_bytes=%d",
            elapsed_ms,
            total_options,
            autoload_count,
            autoload_bytes,
        )
        return result


def run_audit(
    db_path: Path | str,
    thresholds: Optional[AuditThresholds] = None,
    *,
    layout: Optional[StoreLayout] = None,
    access_check: Optional[AccessCheck] = None,
    timeout: float = 5.0,
) -> AuditResult:
    """Run a single audit; either every query succeeds or the call raises."""

    auditor = OptionsAuditor(
        db_path,
        thresholds,
        layout=layout,
        access_check=access_check,
        timeout=timeout,
    )
    return auditor.run()
