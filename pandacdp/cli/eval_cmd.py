"""
Eval subcommand for executing JavaScript in the current page.

The code is wrapped in an async IIFE so both expressions and promises work.
"""

import argparse
import functools
import json
import logging
from typing import Any, Optional

from ..config import Configuration
from ..endpoint import connect_from_config
from .common import add_wait_arguments, navigate_and_wait, open_page, run

logger = logging.getLogger(__name__)


def wrap_expression(code: str) -> str:
    return f"(async () => {{ return ({code}); }})()"


def format_result(result: Any) -> str:
    """
    Render an evaluation result for terminal output.

    Objects become "key: value" lines, lists of objects are separated by a
    blank line, anything else is printed as-is.
    """
    if result is None:
        return "undefined"
    if isinstance(result, list):
        blocks = []
        for item in result:
            if isinstance(item, dict):
                blocks.append(_format_mapping(item))
            else:
                blocks.append(_scalar(item))
        return "\n\n".join(blocks)
    if isinstance(result, dict):
        return _format_mapping(result)
    return _scalar(result)


def _format_mapping(mapping: dict) -> str:
    return "\n".join(f"{key}: {_scalar(value)}" for key, value in mapping.items())


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


async def eval_body(
    config: Configuration,
    *,
    code: str,
    goto: Optional[str],
    wait_ms: int,
    output_format: str,
) -> int:
    client = await connect_from_config(config)
    async with client:
        page = await open_page(client)
        if goto:
            await navigate_and_wait(page, goto, wait_ms, timeout=config.nav_timeout)
        logger.debug("evaluating")
        result = await page.evaluate(wrap_expression(code), timeout=config.eval_timeout)

    if output_format == "json":
        print(json.dumps(result, indent=2))
    else:
        print(format_result(result))
    return 0


def eval_handler(args: argparse.Namespace) -> int:
    code = " ".join(args.code)
    body = functools.partial(
        eval_body,
        code=code,
        goto=args.goto,
        wait_ms=args.wait_ms,
        output_format=args.format,
    )
    return run(args, body)


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'eval' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    eval_parser = subparsers.add_parser(
        "eval",
        parents=[parent],
        help="Execute JavaScript in the current page",
        description="Evaluate JavaScript via Runtime.evaluate (promises are awaited)",
        epilog="""
Examples:
  pandacdp eval "document.title"
  pandacdp eval --goto https://example.com "document.title"
  pandacdp eval "document.querySelectorAll('a').length"
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_wait_arguments(eval_parser)
    eval_parser.add_argument(
        "code",
        nargs="+",
        help="JavaScript expression (multiple words are joined with spaces)",
    )
    eval_parser.set_defaults(func=eval_handler)
