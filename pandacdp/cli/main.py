"""
Main CLI entry point for the pandacdp tool.

Provides a unified command-line interface with subcommands for CDP operations.

Usage:
    python -m pandacdp.cli.main <subcommand> [options]

Subcommands:
    health   - Check the endpoint (Browser.getVersion)
    nav      - Navigate the current page or open a new tab
    eval     - Evaluate JavaScript in the current page
    extract  - Extract title, url, text, links and accessibility tree
    frames   - Show the frame tree or evaluate inside a frame
    endpoint - Show the resolved endpoint (redacted)
"""

import argparse
import sys
from typing import List, Optional

from ..config import Configuration
from ..logging_setup import setup_logging
from ..redact import redact_secrets


def create_parent_parser() -> argparse.ArgumentParser:
    """
    Create parent parser with global options shared across all subcommands.

    Global options:
        --endpoint: CDP endpoint URL (default: $LIGHTPANDA_CDP_URL / $CDP_WS_URL)
        --timeout: Connect timeout in seconds (default: 5.0)
        --global-timeout: Whole-run deadline in seconds (default: 45.0)
        --no-dns-check: Skip the DNS pre-check
        --format: Output format (json|text, default: text)
        --log-level: Log level (debug|info|warning|error, default: warning)
        --quiet/--verbose: Mutual exclusion group for output control

    Returns:
        ArgumentParser with global options
    """
    parent = argparse.ArgumentParser(add_help=False)

    parent.add_argument(
        "--endpoint",
        default=None,
        help="CDP endpoint: ws://, wss://, http:// or https:// (default: $LIGHTPANDA_CDP_URL)",
    )
    parent.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Connect timeout in seconds (default: 5.0)",
    )
    parent.add_argument(
        "--global-timeout",
        type=float,
        default=None,
        help="Abort the whole command after this many seconds (default: 45.0)",
    )
    parent.add_argument(
        "--no-dns-check",
        dest="check_dns",
        action="store_false",
        default=None,
        help="Do not resolve the endpoint host before connecting",
    )

    parent.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )

    parent.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (default: warning)",
    )

    verbosity_group = parent.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-essential output (only show results)",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose debug output",
    )

    return parent


def create_main_parser(parent: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """
    Create main parser with all subcommands.

    Args:
        parent: Parent parser with global options

    Returns:
        Main ArgumentParser with subcommands configured
    """
    parser = argparse.ArgumentParser(
        prog="pandacdp",
        description="Minimal Chrome DevTools Protocol client for local Chrome and Lightpanda Cloud",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the endpoint
  pandacdp health

  # Navigate the current tab
  pandacdp nav https://example.com

  # Evaluate JavaScript after navigating
  pandacdp eval --goto https://example.com "document.title"

  # Extract links as pretty JSON
  pandacdp extract --links --pretty

  # Evaluate inside a specific frame
  pandacdp frames --frame-id <frame-id> "location.href"

For more information on subcommands, run: pandacdp <subcommand> --help
        """,
    )

    subparsers = parser.add_subparsers(
        dest="subcommand",
        title="subcommands",
        description="Available CDP operations",
        required=True,
    )

    from . import (
        endpoint_cmd,
        eval_cmd,
        extract_cmd,
        frames_cmd,
        health_cmd,
        nav_cmd,
    )

    health_cmd.register_subcommand(subparsers, parent)
    nav_cmd.register_subcommand(subparsers, parent)
    eval_cmd.register_subcommand(subparsers, parent)
    extract_cmd.register_subcommand(subparsers, parent)
    frames_cmd.register_subcommand(subparsers, parent)
    endpoint_cmd.register_subcommand(subparsers, parent)

    return parser


def build_configuration(args: argparse.Namespace) -> Configuration:
    """Layer defaults, config file, environment and CLI flags."""
    config = Configuration()
    config.log_level = "WARNING"
    config.load_from_file()
    config.load_from_env()

    cli_overrides = {
        "endpoint": getattr(args, "endpoint", None),
        "connect_timeout": getattr(args, "timeout", None),
        "global_timeout": getattr(args, "global_timeout", None),
        "check_dns": getattr(args, "check_dns", None),
        "log_level": args.log_level.upper() if getattr(args, "log_level", None) else None,
        "log_format": "json" if getattr(args, "format", None) == "json" else None,
    }
    config.merge(**cli_overrides)

    if getattr(args, "quiet", False):
        config.log_level = "ERROR"
    elif getattr(args, "verbose", False):
        config.log_level = "DEBUG"
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Precedence: CLI flags > env vars > config file > defaults

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parent = create_parent_parser()
    parser = create_main_parser(parent)
    args = parser.parse_args(argv)

    config = build_configuration(args)
    setup_logging(
        format_type=config.log_format,
        level=config.log_level.upper() if isinstance(config.log_level, str) else "WARNING",
        quiet=getattr(args, "quiet", False),
        verbose=getattr(args, "verbose", False),
    )
    args.config = config

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except KeyboardInterrupt:
            print("\nInterrupted by user", file=sys.stderr)
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            if config.log_level.upper() == "DEBUG":
                raise
            print(f"✗ {redact_secrets(e)}", file=sys.stderr)
            return 1
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
