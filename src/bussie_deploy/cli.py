"""Command line entry point: ``bussie-deploy [-a | -m]``."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .config import LOG_FORMATS, TRANSPORTS, load_deploy_config
from .exceptions import DeployError, UsageError
from .logging_config import configure_logging
from .pipeline import Selection, deploy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "deploy.yaml"


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="bussie-deploy",
        description="Build, transfer and deploy the mijn_bussie containers.",
    )
    only = parser.add_mutually_exclusive_group()
    only.add_argument(
        "-a",
        dest="selection",
        action="store_const",
        const=Selection.AUTH,
        help="Only build, transfer and deploy mijn_bussie_auth",
    )
    only.add_argument(
        "-m",
        dest="selection",
        action="store_const",
        const=Selection.MAIN,
        help="Only build, transfer and deploy mijn_bussie",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to the YAML config (defaults to ./{DEFAULT_CONFIG_NAME} when present)",
    )
    parser.add_argument("--host", default=None, help="Remote user@host")
    parser.add_argument("--transport", choices=TRANSPORTS, default=None, help="Remote transport")
    parser.add_argument("--health-url", default=None, help="URL polled after the reload")
    parser.add_argument(
        "--keep-going", action="store_true", help="Run every step even after a failure"
    )
    parser.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default="text", help="Log format")
    parser.set_defaults(selection=Selection.BOTH)
    return parser


def _resolve_config_path(value: str | None) -> Path | None:
    if value:
        return Path(value).expanduser()
    candidate = Path(DEFAULT_CONFIG_NAME)
    return candidate if candidate.exists() else None


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(parser.format_help(), file=sys.stderr)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    configure_logging("DEBUG" if args.verbose else "INFO", args.log_format)

    try:
        config = load_deploy_config(
            _resolve_config_path(args.config),
            remote_host=args.host,
            transport=args.transport,
            health_url=args.health_url,
            keep_going=args.keep_going or None,
            dry_run=args.dry_run or None,
            verbose=args.verbose or None,
            log_format=args.log_format,
        )
        report = deploy(args.selection, config)
    except DeployError as exc:
        logger.error("Deployment failed: %s", exc)
        return 1

    if not report.ok:
        logger.error("Failed steps: %s", ", ".join(report.failures))
    print("Done!")
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
