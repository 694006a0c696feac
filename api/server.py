"""FastAPI application serving the read-only options audit screen."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from audit import (
    AuditThresholds,
    OptionsAuditor,
    PermissionDenied,
    StoreLayout,
    StoreUnavailable,
    thresholds_from_settings,
)
from audit.sections import audit_to_sections

from .auth import AdminKeyAuth
from .models import HealthResponse

LOGGER = logging.getLogger("optionsaudit.api")

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

SCREEN_PATH = "/tools/options-bloat"


@dataclass(slots=True)
class APIServerConfig:
    """Runtime configuration for the FastAPI application."""

    db_path: Path
    api_key: Optional[str]
    layout: StoreLayout = field(default_factory=StoreLayout)
    settings: Dict[str, Any] = field(default_factory=dict)
    timeout: float = 5.0
    app_version: str = "dev"
    lan_only: bool = True


_LOCAL_CLIENT_SENTINELS = {
    "127.0.0.1",
    "::1",
    "localhost",
    "testclient",
}


def _normalise_remote_host(host: Optional[str]) -> Optional[str]:
    if host is None:
        return None
    value = host.strip().lower()
    if not value:
        return None
    if value.startswith("::ffff:"):
        value = value.split("::ffff:")[-1]
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    if "%" in value:  # strip IPv6 scope id
        value = value.split("%", 1)[0]
    return value


def _is_loopback_host(host: Optional[str]) -> bool:
    value = _normalise_remote_host(host)
    if value is None:
        return True
    if value in _LOCAL_CLIENT_SENTINELS:
        return True
    return value.startswith("127.")


def _now_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def create_app(config: APIServerConfig) -> FastAPI:
    """Create a FastAPI application bound to the given configuration."""

    app = FastAPI(
        title="Options Bloat Auditor",
        version=config.app_version,
        docs_url=None,
        openapi_url="/openapi.json",
    )
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    auth_dependency = AdminKeyAuth(config.api_key)
    base_thresholds = thresholds_from_settings(config.settings)
    lan_only = bool(config.lan_only)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response: Optional[Response] = None
        client_host = request.client.host if request.client else None
        try:
            if lan_only and not _is_loopback_host(client_host):
                LOGGER.warning("Rejected non-local HTTP request from %s", client_host or "<unknown>")
                response = JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "LAN access disabled"})
            else:
                response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            LOGGER.info(
                "%s %s -> %s (%.1f ms) ip=%s",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
                client_host or "-",
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.get("/v1/health", response_model=HealthResponse)
    def health_check(_: str = Depends(auth_dependency)) -> HealthResponse:
        return HealthResponse(
            ok=True,
            version=config.app_version,
            time_utc=_now_utc(),
            store_present=Path(config.db_path).exists(),
            table=config.layout.table,
        )

    @app.get(SCREEN_PATH, response_class=HTMLResponse)
    def options_bloat_screen(
        request: Request,
        top: Optional[int] = Query(None, description="Override the top autoload row limit."),
        option_threshold: Optional[int] = Query(
            None, description="Override the oversized option byte threshold."
        ),
        transient_threshold: Optional[int] = Query(
            None, description="Override the large transient byte threshold."
        ),
        x_api_key: Optional[str] = Header(None),
    ) -> HTMLResponse:
        thresholds = AuditThresholds.resolve(
            top_autoload_limit=top if top is not None else base_thresholds.top_autoload_limit,
            large_option_threshold=(
                option_threshold if option_threshold is not None else base_thresholds.large_option_threshold
            ),
            large_transient_threshold=(
                transient_threshold
                if transient_threshold is not None
                else base_thresholds.large_transient_threshold
            ),
        )
        auditor = OptionsAuditor(
            config.db_path,
            thresholds,
            layout=config.layout,
            access_check=lambda: auth_dependency.is_admin(x_api_key),
            timeout=config.timeout,
        )
        try:
            result = auditor.run()
        except PermissionDenied:
            return templates.TemplateResponse(
                request,
                "audit_error.html",
                {
                    "heading": "Access denied",
                    "message": "You do not have permission to access this page.",
                    "detail": None,
                },
                status_code=status.HTTP_403_FORBIDDEN,
            )
        except StoreUnavailable as exc:
            return templates.TemplateResponse(
                request,
                "audit_error.html",
                {
                    "heading": "Could not complete audit",
                    "message": (
                        "The options store could not be read, so no part of the report is shown. "
                        "Try again once the store is reachable."
                    ),
                    "detail": str(exc),
                },
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return templates.TemplateResponse(
            request,
            "options_bloat.html",
            {
                "result": result,
                "sections": audit_to_sections(result),
                "table": config.layout.table,
            },
        )

    return app
