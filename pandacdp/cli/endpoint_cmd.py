"""
Endpoint subcommand: show which CDP URL would be used.

Output is redacted unless --print is given, so it is safe to paste into logs.
"""

import argparse
import sys

from ..redact import redact_secrets


def endpoint_handler(args: argparse.Namespace) -> int:
    endpoint = args.config.resolved_endpoint()
    if not endpoint:
        print(
            "✗ Missing LIGHTPANDA_CDP_URL (recommended), CDP_WS_URL, or LIGHTPANDA_TOKEN.",
            file=sys.stderr,
        )
        print("Set one of:", file=sys.stderr)
        print("  export LIGHTPANDA_CDP_URL='wss://...'", file=sys.stderr)
        print("  export CDP_WS_URL='wss://...'", file=sys.stderr)
        print("  export LIGHTPANDA_TOKEN='...'", file=sys.stderr)
        print("  export LIGHTPANDA_REGION='uswest'  # optional", file=sys.stderr)
        return 1

    if args.print_full:
        print(endpoint)
    else:
        print(f"CDP URL (redacted): {redact_secrets(endpoint)}")
    return 0


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    endpoint_parser = subparsers.add_parser(
        "endpoint",
        parents=[parent],
        help="Show the resolved CDP endpoint",
        description=(
            "Resolve the endpoint from --endpoint, LIGHTPANDA_CDP_URL, CDP_WS_URL or "
            "LIGHTPANDA_TOKEN (+ LIGHTPANDA_REGION / LIGHTPANDA_CLOUD_HOST)"
        ),
    )
    endpoint_parser.add_argument(
        "--print",
        dest="print_full",
        action="store_true",
        help="Print the full URL including credentials",
    )
    endpoint_parser.set_defaults(func=endpoint_handler)
