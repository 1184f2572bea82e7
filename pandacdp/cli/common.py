"""
Helpers shared by CLI subcommands.

Every subcommand runs its async body under the global deadline, reports
CDP errors as a single "✗ message" line and picks/attaches a page target
the same way.
"""

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable, Iterable

from ..client import CDPClient
from ..config import Configuration
from ..exceptions import (
    CDPError,
    ConnectTimeoutError,
    DNSResolutionError,
    DiscoveryError,
    EndpointConfigError,
)
from ..logging_setup import log_with_context
from ..redact import redact_secrets
from ..session import CDPSession

logger = logging.getLogger(__name__)

CommandBody = Callable[[Configuration], Awaitable[int]]


def recovery_hint(error: CDPError) -> str:
    """Short suggestion for the most common failure categories."""
    if isinstance(error, EndpointConfigError):
        return "Set LIGHTPANDA_CDP_URL (or CDP_WS_URL) to a ws://, wss://, http:// or https:// URL"
    if isinstance(error, DNSResolutionError):
        return "Check the endpoint hostname and your network/DNS access"
    if isinstance(error, ConnectTimeoutError):
        return "Verify LIGHTPANDA_CDP_URL and your network access, or raise CDP_TIMEOUT_MS"
    if isinstance(error, DiscoveryError):
        return "Run Chrome with --remote-debugging-port=9222 or pass a ws:// endpoint"
    return ""


async def run_bounded(args: argparse.Namespace, body: CommandBody) -> int:
    """Run body under the global timeout and translate errors to exit codes."""
    config: Configuration = args.config
    try:
        return await asyncio.wait_for(body(config), timeout=config.global_timeout)
    except asyncio.TimeoutError:
        print(f"✗ Global timeout exceeded ({config.global_timeout:g}s)", file=sys.stderr)
        return 1
    except CDPError as e:
        if config.log_level.upper() == "DEBUG":
            raise
        print(f"✗ {redact_secrets(e)}", file=sys.stderr)
        hint = recovery_hint(e)
        if hint:
            print(f"Recovery hint: {hint}", file=sys.stderr)
        return 1


def run(args: argparse.Namespace, body: CommandBody) -> int:
    """Synchronous entry point used by subcommand handlers."""
    return asyncio.run(run_bounded(args, body))


async def open_page(
    client: CDPClient,
    *,
    new_tab: bool = False,
    domains: Iterable[str] = ("Runtime", "Page"),
) -> CDPSession:
    """Attach to the most recent page target, creating one if needed.

    Domain enabling is best-effort: some hosted browsers reject it.
    """
    if new_tab:
        logger.debug("creating new tab")
        target_id = await client.create_target()
    else:
        pages = await client.get_pages()
        if pages:
            target_id = pages[-1]["targetId"]
        else:
            logger.debug("no page targets found, creating one")
            target_id = await client.create_target()

    session_id = await client.attach_to_page(target_id)
    log_with_context(
        logger, logging.DEBUG, "Attached to page", target_id=target_id, session_id=session_id
    )
    await client.enable_domains(session_id, *domains)
    return client.session(session_id)


def add_wait_arguments(parser: argparse.ArgumentParser) -> None:
    """--goto / --wait-ms options shared by eval and extract."""
    parser.add_argument("--goto", metavar="URL", help="Navigate before running")
    parser.add_argument(
        "--wait-ms",
        type=non_negative_int,
        default=1500,
        help="Wait after navigation in milliseconds (default: 1500)",
    )


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {number}")
    return number


def positive_int(value: str) -> int:
    number = non_negative_int(value)
    if number == 0:
        raise argparse.ArgumentTypeError("expected a positive integer")
    return number


async def navigate_and_wait(
    page: CDPSession, url: str, wait_ms: int, *, timeout: float
) -> None:
    """Navigate and sleep a fixed delay; Page.navigate does not wait for load."""
    logger.debug(f"navigating to {url}")
    await page.navigate(url, timeout=timeout)
    if wait_ms > 0:
        await asyncio.sleep(wait_ms / 1000.0)
