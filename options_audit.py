"""CLI entry-point to run the options audit or serve the audit screen."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import uvicorn

from api import __version__ as API_VERSION
from api.server import SCREEN_PATH, APIServerConfig, create_app
from audit import StoreLayout, StoreUnavailable, run_audit, thresholds_from_settings
from audit.sections import render_text
from core.logging_utils import configure_json_logging, redact_secret
from core.paths import resolve_working_dir
from core.settings import load_settings, resolve_store_path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8757

EXIT_OK = 0
EXIT_STORE_UNAVAILABLE = 1
EXIT_USAGE = 2


def _resolve_bind_host(candidate: Optional[str]) -> str:
    host = (candidate or DEFAULT_HOST).strip()
    if not host:
        host = DEFAULT_HOST
    norm = host.lower()
    if norm == "localhost":
        return "127.0.0.1"
    if norm.startswith("::ffff:"):
        norm = norm.split("::ffff:")[-1]
    if norm == "::1":
        return "127.0.0.1"
    if norm.startswith("127."):
        return host if host.startswith("127.") else "127.0.0.1"
    raise ValueError(
        f"Refusing to bind the audit screen to non-loopback host '{candidate}'. It only serves on localhost."
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Audit a key-value options table for autoload bloat.")
    parser.add_argument("--db", dest="db_path", default=None, help="Options store SQLite file (default from settings.json)")
    parser.add_argument("--table", default=None, help="Options table name (default from settings.json)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Print the audit report to stdout.")
    report.add_argument("--top", type=int, default=None, help="Number of top autoloaded options to list")
    report.add_argument(
        "--option-threshold",
        dest="option_threshold",
        type=int,
        default=None,
        help="Byte size at which an option counts as oversized",
    )
    report.add_argument(
        "--transient-threshold",
        dest="transient_threshold",
        type=int,
        default=None,
        help="Byte size at which a transient-like option is listed",
    )

    serve = subparsers.add_parser("serve", help="Serve the audit screen over HTTP on localhost.")
    serve.add_argument("--host", default=None, help="Bind host (default from settings.json)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default from settings.json)")
    serve.add_argument("--api-key", dest="api_key", default=None, help="Override the administrator key for this session")
    return parser.parse_args(argv)


def _store_layout(args: argparse.Namespace, settings: Dict[str, Any]) -> StoreLayout:
    store = settings.get("store") if isinstance(settings.get("store"), dict) else {}
    table = args.table or store.get("table") or "wp_options"
    autoload_values = store.get("autoload_values") or ["yes"]
    return StoreLayout(table=str(table), autoload_values=tuple(str(value) for value in autoload_values))


def _store_timeout(settings: Dict[str, Any]) -> float:
    store = settings.get("store") if isinstance(settings.get("store"), dict) else {}
    try:
        return max(0.1, float(store.get("timeout_s", 5.0)))
    except (TypeError, ValueError):
        return 5.0


def run_report(args: argparse.Namespace, settings: Dict[str, Any], working_dir: Path) -> int:
    db_path = Path(args.db_path) if args.db_path else resolve_store_path(settings, working_dir)
    thresholds = thresholds_from_settings(
        settings,
        top_autoload_limit=args.top,
        large_option_threshold=args.option_threshold,
        large_transient_threshold=args.transient_threshold,
    )
    try:
        result = run_audit(
            db_path,
            thresholds,
            layout=_store_layout(args, settings),
            timeout=_store_timeout(settings),
        )
    except StoreUnavailable as exc:
        print(f"Could not complete audit: {exc}", file=sys.stderr)
        return EXIT_STORE_UNAVAILABLE
    print(render_text(result))
    return EXIT_OK


def run_server(args: argparse.Namespace, settings: Dict[str, Any], working_dir: Path) -> int:
    api_settings = settings.get("api") if isinstance(settings.get("api"), dict) else {}
    try:
        host = _resolve_bind_host(args.host or api_settings.get("host") or DEFAULT_HOST)
    except ValueError as exc:
        logging.error("%s", exc)
        return EXIT_USAGE
    port = args.port or api_settings.get("port") or DEFAULT_PORT
    try:
        port = int(port)
    except (TypeError, ValueError):
        port = DEFAULT_PORT

    api_key = args.api_key if args.api_key else api_settings.get("api_key")
    if not api_key:
        logging.warning("Administrator key is not configured; every audit request will be refused.")
    else:
        logging.info("Audit screen protected by administrator key %s", redact_secret(api_key))

    config = APIServerConfig(
        db_path=Path(args.db_path) if args.db_path else resolve_store_path(settings, working_dir),
        api_key=api_key,
        layout=_store_layout(args, settings),
        settings=settings,
        timeout=_store_timeout(settings),
        app_version=API_VERSION,
        lan_only=bool(api_settings.get("lan_only", True)),
    )
    app = create_app(config)

    print(f"Options audit screen on http://{host}:{port}{SCREEN_PATH}", flush=True)

    uvicorn_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=False,
    )
    server = uvicorn.Server(uvicorn_config)
    server.run()
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)
    working_dir = resolve_working_dir()
    configure_json_logging(working_dir=working_dir)
    settings = load_settings(working_dir)
    try:
        if args.command == "serve":
            return run_server(args, settings, working_dir)
        return run_report(args, settings, working_dir)
    except ValueError as exc:
        logging.error("%s", exc)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
