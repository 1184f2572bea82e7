"""
Health subcommand: connect and print Browser.getVersion.
"""

import argparse
import json

from ..config import Configuration
from ..endpoint import connect_from_config
from .common import run


async def health_body(config: Configuration) -> int:
    client = await connect_from_config(config)
    async with client:
        version = await client.get_version()
    print(json.dumps(version))
    return 0


def health_handler(args: argparse.Namespace) -> int:
    return run(args, health_body)


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    health_parser = subparsers.add_parser(
        "health",
        parents=[parent],
        help="Check that the CDP endpoint answers",
        description="Connect to the endpoint and print Browser.getVersion as JSON",
    )
    health_parser.set_defaults(func=health_handler)
