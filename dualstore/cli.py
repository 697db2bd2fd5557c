"""Command line interface for dualstore."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .errors import ConfigError, PreconditionError
from .models import FilePayload, ObjectStoreDestination, UploadStatus
from .settings import Settings

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _normalize_key(key: Optional[str]) -> Optional[str]:
    if key is None:
        return None
    value = key.strip().lstrip("/")
    return value or None


def _exit_code(status: UploadStatus) -> int:
    if status == UploadStatus.FULL_SUCCESS:
        return EXIT_OK
    if status == UploadStatus.PARTIAL_SUCCESS:
        return EXIT_PARTIAL
    return EXIT_FAILED


async def _run_put(
    source: Path,
    key: Optional[str],
    settings: Settings,
    as_json: bool,
    size: Optional[int] = None,
) -> int:
    from .cli_progress import render_upload_result
    from .orchestrator import UploadOrchestrator
    from .utils.keys import build_object_key

    destination = ObjectStoreDestination(
        bucket=settings.s3_bucket,
        key=key or build_object_key(settings.s3_key_prefix, source.name),
    )

    async with UploadOrchestrator.from_settings(settings) as orchestrator:
        try:
            result = await orchestrator.upload(
                FilePayload.from_path(source, declared_length=size), destination
            )
        except PreconditionError as exc:
            raise CLIError(exc.message) from exc

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_upload_result(result, source.name)
    return _exit_code(result.status)


def _run_serve(settings: Settings, host: Optional[str], port: Optional[int], log_mode: str) -> int:
    import uvicorn

    from .api import create_app

    app = create_app(settings)
    uvicorn_level = "critical" if log_mode == "silent" else log_mode.lower()
    uvicorn.run(
        app,
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_level=uvicorn_level,
    )
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    common.add_argument("--debug", action="store_true", help="Enable debug logs")
    common.add_argument("--silent", action="store_true", help="Only print errors")
    common.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )

    parser = argparse.ArgumentParser(
        prog="dualstore",
        description="Store a file in an S3 bucket and on IPFS at the same time.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"dualstore {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command")

    put = subparsers.add_parser("put", parents=[common], help="Upload a local file to S3 and IPFS")
    put.add_argument("source", type=Path, help="File to upload")
    put.add_argument(
        "-k",
        "--key",
        default=None,
        help="Object key in the bucket (default: {S3_KEY_PREFIX}/{id}-{filename})",
    )
    put.add_argument("--json", action="store_true", help="Print the result as JSON")

    serve = subparsers.add_parser("serve", parents=[common], help="Run the HTTP upload service")
    serve.add_argument("--host", default=None, help="Bind address (default from SERVER_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from SERVER_PORT)")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return EXIT_FAILED

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return EXIT_FAILED

    if args.command == "serve":
        return _run_serve(settings, args.host, args.port, effective_log_mode)

    source = Path(args.source).expanduser()
    if not source.is_file():
        print(f"ERROR: source is not a file: {source}", file=sys.stderr)
        return EXIT_FAILED

    if not args.json:
        from .cli_progress import render_configuration_summary

        render_configuration_summary(
            {
                "Source": str(source),
                "Bucket": settings.s3_bucket,
                "Key": _normalize_key(args.key) or f"{settings.s3_key_prefix}/<id>-{source.name}",
                "S3 Endpoint": settings.s3_endpoint_url or f"AWS ({settings.aws_region})",
                "IPFS API": settings.ipfs_api_url,
                "Timeout": f"{settings.upload_timeout}s",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        # stat before the event loop starts
        size = source.stat().st_size
        return asyncio.run(_run_put(source, _normalize_key(args.key), settings, args.json, size))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
