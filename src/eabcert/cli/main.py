"""eabcert command-line entry point.

Usage::

    eabcert -c eabcert.yaml issue
    eabcert -c eabcert.yaml renew
    eabcert -c eabcert.yaml status
    eabcert -c eabcert.yaml --validate-only
    eabcert -c eabcert.yaml hook auth      # called by certbot
    python -m eabcert -c eabcert.yaml issue
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from eabcert import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eabcert",
        description="Issue and renew Google Public CA certificates with certbot and EAB",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "issue",
        help="Provision an EAB key, generate a key/CSR and issue a certificate",
    )
    subparsers.add_parser("renew", help="Renew the certificate if it has expired")
    subparsers.add_parser("status", help="Show the issued certificate bundle")

    # hook (invoked by certbot --manual-auth-hook / --manual-cleanup-hook)
    hook_parser = subparsers.add_parser("hook", help="certbot DNS-01 manual hooks")
    hook_sub = hook_parser.add_subparsers(dest="hook_command")
    hook_sub.add_parser("auth", help="Publish and await the TXT record")
    hook_sub.add_parser("cleanup", help="Remove the TXT record")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"eabcert: error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs a command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from eabcert.config import ConfigValidationError, EabcertConfig

        config = EabcertConfig(
            config_file=str(config_path),
            schema_file="bundled",
        )
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from eabcert.logging import configure_logging

    configure_logging(config.settings.logging, env=config.settings.env)
    if args.debug:
        logging.getLogger("eabcert").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    command = args.command
    if command is None:
        parser.print_help(sys.stderr)
        sys.exit(1)

    from eabcert.core.errors import EabcertError

    try:
        _dispatch(command, args)
    except EabcertError as exc:
        if args.debug:
            raise
        log.debug("Command %s failed", command, exc_info=True)
        _print_error(exc.detail)
        sys.exit(1)


def _dispatch(command: str, args) -> None:
    if command == "issue":
        from eabcert.cli.commands.issue import run_issue

        run_issue(args)
    elif command == "renew":
        from eabcert.cli.commands.renew import run_renew

        run_renew(args)
    elif command == "status":
        from eabcert.cli.commands.status import run_status

        run_status(args)
    elif command == "hook":
        from eabcert.cli.commands.hook import run_hook

        run_hook(args)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"Configuration OK: {config.source}",
        f"  project      {s.project_id}",
        f"  server       {s.acme_server}",
        f"  env          {s.env} ({s.layout.directory})",
        f"  common name  {s.subject.common_name}",
        f"  challenge    {s.challenge.mode.value}",
        f"  renewal      {s.renewal.strategy.value}",
    ]
    print("\n".join(lines))  # noqa: T201
