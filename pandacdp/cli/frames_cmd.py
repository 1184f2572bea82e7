"""
Frames subcommand: print the frame tree of the current page, or evaluate an
expression inside one frame's isolated world.
"""

import argparse
import functools
import json
import sys
from typing import Iterator, List, Optional, Tuple

from ..config import Configuration
from ..endpoint import connect_from_config
from .common import open_page, run
from .eval_cmd import format_result, wrap_expression


def walk_frames(tree: Optional[dict], depth: int = 0) -> Iterator[Tuple[int, dict]]:
    """Yield (depth, frame) pairs in document order."""
    if not tree:
        return
    frame = tree.get("frame") or {}
    yield depth, frame
    for child in tree.get("childFrames") or []:
        yield from walk_frames(child, depth + 1)


async def frames_body(
    config: Configuration,
    *,
    frame_id: Optional[str],
    code: List[str],
    output_format: str,
) -> int:
    client = await connect_from_config(config)
    async with client:
        page = await open_page(client)
        if frame_id:
            result = await page.evaluate_in_frame(
                frame_id, wrap_expression(" ".join(code)), timeout=config.eval_timeout
            )
            print(json.dumps(result, indent=2) if output_format == "json" else format_result(result))
            return 0
        tree = await page.get_frame_tree()

    if output_format == "json":
        print(json.dumps(tree, indent=2))
    else:
        for depth, frame in walk_frames(tree):
            print(f"{'  ' * depth}{frame.get('id', '')}\t{frame.get('url', '')}")
    return 0


def frames_handler(args: argparse.Namespace) -> int:
    if args.frame_id and not args.code:
        print("✗ --frame-id requires an expression", file=sys.stderr)
        return 2
    body = functools.partial(
        frames_body, frame_id=args.frame_id, code=args.code, output_format=args.format
    )
    return run(args, body)


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    frames_parser = subparsers.add_parser(
        "frames",
        parents=[parent],
        help="Show frames or evaluate inside a frame",
        description="Print Page.getFrameTree, or evaluate in a frame's isolated world",
        epilog="""
Examples:
  pandacdp frames
  pandacdp frames --format json
  pandacdp frames --frame-id 4F2C... "document.title"
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    frames_parser.add_argument("--frame-id", help="Frame to evaluate in")
    frames_parser.add_argument(
        "code", nargs="*", help="JavaScript expression (with --frame-id)"
    )
    frames_parser.set_defaults(func=frames_handler)
