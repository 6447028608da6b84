"""Resolve component handlers against a page's content tree."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

from fetch import fetch_json
from models import Document, EnrichContext, Handler, Patch
from results import call_and_normalize, merge_patches
from urls import same_site_url

# <site>/components/<type>/instances/<id>, instance part optional.
_COMPONENT_TYPE_PATTERN = re.compile(r"/components/([^/@.]+)")

LOGGER = logging.getLogger(__name__)


def component_type(ref: str) -> str | None:
    """Extract the component type from a reference, e.g. ``a.com/components/tags/instances/1`` -> ``tags``."""
    match = _COMPONENT_TYPE_PATTERN.search(ref)
    return match.group(1) if match else None


async def apply_handlers(document: Document, context: EnrichContext) -> Patch:
    """Run every matching component handler over the page and merge their results.

    The page JSON is fetched from ``<prefix><uri path>.json``. A node whose
    component type has a handler is passed to it and its subtree is not
    searched further; nodes without a handler are descended into, so
    components nested inside unhandled ones are still found.
    """
    page = await fetch_json(same_site_url(context.prefix, document["uri"], ".json", context.site))

    handlers = context.handlers
    if not handlers:
        return {}

    pending = [
        call_and_normalize(handler, ref, node, context)
        for ref, node, handler in _find_components(page, handlers)
    ]
    LOGGER.debug("Matched %s component handlers for uri=%s", len(pending), document["uri"])
    return merge_patches(await asyncio.gather(*pending))


def _find_components(
    tree: Any, handlers: Mapping[str, Handler]
) -> Iterator[tuple[str, Mapping[str, Any], Handler]]:
    """Yield ``(ref, node, handler)`` for handled nodes in document order."""
    stack: list[Any] = [tree]
    while stack:
        value = stack.pop()
        if isinstance(value, Mapping):
            ref = value.get("_ref")
            handler = handlers.get(component_type(ref)) if isinstance(ref, str) else None
            if handler is not None:
                yield ref, value, handler
                continue
            children = list(value.values())
        elif isinstance(value, list):
            children = value
        else:
            continue
        # Reversed so the first child is visited first.
        stack.extend(reversed(children))
