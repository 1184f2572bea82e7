"""
Nav subcommand: navigate the most recent page, or open the URL in a new tab.
"""

import argparse
import functools

from ..config import Configuration
from ..endpoint import connect_from_config
from .common import open_page, run


async def nav_body(config: Configuration, *, url: str, new_tab: bool) -> int:
    client = await connect_from_config(config)
    async with client:
        page = await open_page(client, new_tab=new_tab, domains=("Page",))
        await page.navigate(url, timeout=config.nav_timeout)
    print("✓ Opened:" if new_tab else "✓ Navigated to:", url)
    return 0


def nav_handler(args: argparse.Namespace) -> int:
    return run(args, functools.partial(nav_body, url=args.url, new_tab=args.new))


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    nav_parser = subparsers.add_parser(
        "nav",
        parents=[parent],
        help="Navigate to a URL",
        description="Navigate the current tab (last page target) or a new tab",
        epilog="""
Examples:
  pandacdp nav https://example.com        # Navigate current tab
  pandacdp nav https://example.com --new  # Open in new tab
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    nav_parser.add_argument("url", help="URL to open")
    nav_parser.add_argument(
        "--new", action="store_true", help="Open the URL in a new tab"
    )
    nav_parser.set_defaults(func=nav_handler)
