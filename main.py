"""CLI entrypoint: enrich one or more pages and print the result as JSON."""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import os
import sys
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from models import EnrichContext, Step
from pipeline import STEPS, apply_patch, build_context, enrich_page, select_steps
from sites import resolve_site


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Enrich pages with publish, schedule and component data")
    parser.add_argument("uris", nargs="+", help="Page uris, e.g. foo.com/pages/1")
    parser.add_argument(
        "--prefix",
        default=None,
        help="Base address for same-site fetches (defaults to ENRICH_PREFIX, then the site's own address)",
    )
    parser.add_argument("--site", default=None, help="Site slug or host; resolved from the first uri when omitted")
    parser.add_argument(
        "--steps",
        default=None,
        help=f"Comma-separated steps to run (default: all). Available: {', '.join(STEPS)}",
    )
    parser.add_argument(
        "--plugins",
        default=None,
        help="Module exposing HANDLERS and/or TRANSFORMS mappings",
    )
    parser.add_argument("--patch-only", action="store_true", help="Print only the computed patch per page")
    return parser.parse_args(argv)


def load_plugins(module_name: str | None) -> tuple[dict[str, Any], dict[str, Any]]:
    """Import caller-supplied component handlers and transforms."""
    if not module_name:
        return {}, {}
    module = importlib.import_module(module_name)
    handlers = dict(getattr(module, "HANDLERS", {}) or {})
    transforms = dict(getattr(module, "TRANSFORMS", {}) or {})
    logging.info(
        "Loaded plugins from %s: handlers=%s transforms=%s",
        module_name,
        sorted(handlers),
        sorted(transforms),
    )
    return handlers, transforms


async def run(uris: list[str], context: EnrichContext, steps: list[Step], patch_only: bool) -> int:
    """Enrich each uri; returns the number of pages that failed."""
    failed = 0

    for uri in uris:
        document = {"uri": uri}
        try:
            patch = await enrich_page(document, context, steps)
        except Exception as exc:  # one bad page should not stop the batch
            failed += 1
            logging.exception("Failed enriching uri=%s: %s", uri, exc)
            continue

        output = patch if patch_only else apply_patch(document, patch)
        print(json.dumps(output, default=_json_default, sort_keys=True))

    logging.info("Run complete. processed=%s failed=%s", len(uris) - failed, failed)
    return failed


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def main(argv: list[str] | None = None) -> int:
    """Initialize config and enrich the requested pages."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        site = resolve_site(args.site or args.uris[0])
    except (RuntimeError, ValueError, OSError) as exc:  # SiteNotFoundError, bad registry
        logging.warning("Site lookup failed, continuing without site: %s", exc)
        site = None

    prefix = args.prefix or os.getenv("ENRICH_PREFIX") or (site.prefix if site else None)
    if not prefix:
        logging.error("No fetch prefix: pass --prefix, set ENRICH_PREFIX or register the site")
        return 2

    handlers, transforms = load_plugins(args.plugins)
    context = build_context(prefix, site=site, handlers=handlers, transforms=transforms)
    step_names = [name.strip() for name in args.steps.split(",") if name.strip()] if args.steps else None
    try:
        steps = select_steps(step_names)
    except ValueError as exc:
        logging.error("%s", exc)
        return 2

    failed = asyncio.run(run(args.uris, context, steps, args.patch_only))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
