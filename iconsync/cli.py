"""Command-line entry point: serve the API or run one-off operations."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TextIO

from .errors import IconSyncError, ValidationError
from .logging_config import configure_logging
from .service import IconService, build_service_from_env
from .utils.env import load_dotenv

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(
        prog="iconsync",
        description="IconSync: versioned icon library with Figma sync.",
    )
    commands = argument_parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--debug", action="store_true")

    sync = commands.add_parser("sync", help="Pull icons from Figma.")
    sync.add_argument("--namespace", default=None)
    sync.add_argument(
        "--mode", choices=("full", "incremental"), default="full"
    )
    sync.add_argument(
        "--icons-only",
        action="store_true",
        help="Only sync components named or tagged as icons.",
    )

    upload = commands.add_parser("upload", help="Add one SVG file.")
    upload.add_argument("namespace")
    upload.add_argument("name")
    upload.add_argument("path", type=Path)
    upload.add_argument(
        "--conflict-strategy", choices=("reject", "overwrite"), default=None
    )

    versions = commands.add_parser("versions", help="Show version history.")
    versions.add_argument("namespace")
    versions.add_argument("name")

    rollback = commands.add_parser("rollback", help="Restore a version.")
    rollback.add_argument("namespace")
    rollback.add_argument("name")
    rollback.add_argument("version_id")

    return argument_parser


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    service_factory: Callable[[], IconService] = build_service_from_env,
    stdout: TextIO = sys.stdout,
    stderr: TextIO = sys.stderr,
) -> int:
    load_dotenv()
    configure_logging()
    parsed_args = build_arg_parser().parse_args(argv)

    if parsed_args.command == "serve":
        return _serve(parsed_args, service_factory)

    service = service_factory()
    try:
        result = _dispatch(parsed_args, service)
    except IconSyncError as error:
        logger.error("Command %s failed: %s", parsed_args.command, error)
        stderr.write(json.dumps(error.to_dict()) + "\n")
        return 1
    stdout.write(json.dumps(result, indent=2) + "\n")
    return 0


def _dispatch(parsed_args: argparse.Namespace, service: IconService) -> Any:
    if parsed_args.command == "sync":
        return service.sync(
            parsed_args.namespace, parsed_args.mode, parsed_args.icons_only
        )
    if parsed_args.command == "upload":
        try:
            raw = parsed_args.path.read_bytes()
        except OSError as exc:
            raise ValidationError(
                f"Cannot read {parsed_args.path}: {exc}"
            ) from exc
        return service.upload(
            parsed_args.namespace,
            parsed_args.name,
            raw,
            parsed_args.conflict_strategy,
        )
    if parsed_args.command == "versions":
        return service.list_versions(parsed_args.namespace, parsed_args.name)
    if parsed_args.command == "rollback":
        return service.rollback(
            parsed_args.namespace, parsed_args.name, parsed_args.version_id
        )
    raise ValueError(f"Unknown command {parsed_args.command!r}")


def _serve(
    parsed_args: argparse.Namespace,
    service_factory: Callable[[], IconService],
) -> int:
    from .webapp import create_app

    app = create_app({"ICON_SERVICE": service_factory()})
    logger.info("Serving on %s:%s", parsed_args.host, parsed_args.port)
    app.run(
        host=parsed_args.host,
        port=parsed_args.port,
        debug=parsed_args.debug,
        threaded=True,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
