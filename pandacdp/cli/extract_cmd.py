"""
Extract subcommand: page title, url, text, links and accessibility tree as JSON.

If any of --title/--url/--text/--links/--a11y is given only those fields are
returned; otherwise title, url, text and links.
"""

import argparse
import functools
import json
from typing import Dict, List, Optional, Set

from ..config import Configuration
from ..endpoint import connect_from_config
from ..exceptions import CDPError
from .common import add_wait_arguments, navigate_and_wait, open_page, positive_int, run

FIELDS = ("title", "url", "text", "links", "a11y")
DEFAULT_FIELDS = ("title", "url", "text", "links")

EXTRACT_SCRIPT = r"""(opts) => {
  const result = {};

  if (opts.includeTitle) result.title = document.title || "";
  if (opts.includeUrl) result.url = location.href || "";

  if (opts.includeLinks) {
    const seen = new Set();
    const links = [];
    const nodes = Array.from(document.querySelectorAll("a[href]"));
    for (const a of nodes) {
      if (links.length >= opts.maxLinks) break;
      const href = a.href || "";
      if (!href || seen.has(href)) continue;
      seen.add(href);
      const text = (a.textContent || "").trim().replace(/\s+/g, " ").slice(0, 200);
      links.push({ text: text || null, href });
    }
    result.links = links;
    if (nodes.length > opts.maxLinks) result.linksTruncated = true;
  }

  if (opts.includeText) {
    const el = opts.selector ? document.querySelector(opts.selector) : document.body;
    let text = el ? (el.innerText || el.textContent || "") : "";
    text = String(text)
      .replace(/\r\n/g, "\n")
      .split("\n")
      .map((l) => l.trim())
      .filter(Boolean)
      .join("\n");
    const truncated = text.length > opts.maxChars;
    if (truncated) text = text.slice(0, opts.maxChars) + "…";
    result.text = text;
    if (opts.selector) result.selector = opts.selector;
    if (truncated) result.textTruncated = true;
  }

  return result;
}"""


def build_expression(
    requested: Set[str], selector: Optional[str], max_links: int, max_chars: int
) -> str:
    options = {
        "includeTitle": "title" in requested,
        "includeUrl": "url" in requested,
        "includeText": "text" in requested,
        "includeLinks": "links" in requested,
        "selector": selector,
        "maxLinks": max_links,
        "maxChars": max_chars,
    }
    return f"({EXTRACT_SCRIPT})({json.dumps(options)})"


def simplify_ax_nodes(nodes: List[dict], max_nodes: int) -> Dict[str, object]:
    """Compact AX nodes to ids, role, name, value and description."""

    def _value(node: dict, key: str):
        field = node.get(key)
        return field.get("value") if isinstance(field, dict) else None

    simplified = [
        {
            "nodeId": node.get("nodeId"),
            "parentId": node.get("parentId"),
            "childIds": node.get("childIds") or [],
            "ignored": bool(node.get("ignored")),
            "role": _value(node, "role"),
            "name": _value(node, "name"),
            "value": _value(node, "value"),
            "description": _value(node, "description"),
        }
        for node in nodes[:max_nodes]
    ]
    summary: Dict[str, object] = {"a11y": simplified, "a11yTotalNodes": len(nodes)}
    if len(nodes) > max_nodes:
        summary["a11yTruncated"] = True
    return summary


async def extract_body(config: Configuration, *, args: argparse.Namespace) -> int:
    requested = {field for field in FIELDS if getattr(args, field)}
    if not requested:
        requested = set(DEFAULT_FIELDS)

    client = await connect_from_config(config)
    async with client:
        page = await open_page(client)
        if args.goto:
            await navigate_and_wait(page, args.goto, args.wait_ms, timeout=config.nav_timeout)

        expression = build_expression(requested, args.selector, args.max_links, args.max_chars)
        result = await page.evaluate(expression, timeout=config.eval_timeout) or {}

        if "a11y" in requested:
            try:
                nodes = await client.get_accessibility_tree(
                    page.session_id, timeout=config.a11y_timeout
                )
            except CDPError as e:
                raise CDPError(
                    "Accessibility.getFullAXTree failed. The browser may not support "
                    f"this CDP domain or it may be restricted. ({e.message})"
                )
            result.update(simplify_ax_nodes(nodes, args.max_a11y_nodes))

    print(json.dumps(result, indent=2 if args.pretty else None))
    return 0


def extract_handler(args: argparse.Namespace) -> int:
    return run(args, functools.partial(extract_body, args=args))


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    extract_parser = subparsers.add_parser(
        "extract",
        parents=[parent],
        help="Extract page content as JSON",
        description="Extract title, url, text, links and accessibility tree from the current page",
    )
    extract_parser.add_argument("--title", action="store_true", help="Include title")
    extract_parser.add_argument("--url", action="store_true", help="Include url")
    extract_parser.add_argument("--text", action="store_true", help="Include text content")
    extract_parser.add_argument("--links", action="store_true", help="Include links")
    extract_parser.add_argument(
        "--a11y", action="store_true", help="Include accessibility tree (compact)"
    )
    add_wait_arguments(extract_parser)
    extract_parser.add_argument("--selector", help="Extract text from a specific element")
    extract_parser.add_argument(
        "--max-links", type=positive_int, default=50, help="Limit links (default: 50)"
    )
    extract_parser.add_argument(
        "--max-chars", type=positive_int, default=5000, help="Limit text length (default: 5000)"
    )
    extract_parser.add_argument(
        "--max-a11y-nodes",
        type=positive_int,
        default=500,
        help="Limit a11y nodes (default: 500)",
    )
    extract_parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    extract_parser.set_defaults(func=extract_handler)
