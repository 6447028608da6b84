"""Run enrichment steps for a page and apply the resulting patch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from components import apply_handlers
from doc_transforms import (
    add_publish_data,
    add_schedule_time,
    add_site_slug,
    apply_custom_transforms,
    validate_publish_url,
)
from models import Document, EnrichContext, Handler, Patch, Site, Step, Transform
from results import merge_patches

LOGGER = logging.getLogger(__name__)

# Registry order is merge order: later steps win on conflicting keys.
STEPS: dict[str, Step] = {
    "handlers": apply_handlers,
    "publish_data": add_publish_data,
    "schedule_time": add_schedule_time,
    "publish_url": validate_publish_url,
    "site_slug": add_site_slug,
    "custom_transforms": apply_custom_transforms,
}

# Steps that read fields other steps set. They run once the rest have
# finished, against the patched document, and their patches are applied last.
FOLLOW_UP_STEPS: tuple[Step, ...] = (validate_publish_url,)


def build_context(
    prefix: str,
    site: Site | None = None,
    handlers: Mapping[str, Handler] | None = None,
    transforms: Mapping[str, Transform] | None = None,
) -> EnrichContext:
    return EnrichContext(
        prefix=prefix.rstrip("/"),
        site=site,
        handlers=handlers or {},
        transforms=transforms or {},
    )


def select_steps(names: Iterable[str] | None = None) -> list[Step]:
    """Look up steps by name, keeping registry order; ``None`` selects all."""
    if names is None:
        return list(STEPS.values())

    wanted = set(names)
    unknown = wanted - STEPS.keys()
    if unknown:
        raise ValueError(f"Unknown enrichment steps: {', '.join(sorted(unknown))}")
    return [step for name, step in STEPS.items() if name in wanted]


async def enrich_page(
    document: Document,
    context: EnrichContext,
    steps: Iterable[Step] | None = None,
) -> Patch:
    """Run the steps concurrently and merge their patches.

    Follow-up steps (the url check) then run against the document with that
    patch applied, so they see a url fetched by ``publish_data``. The first
    failing step fails the whole page; results of steps still in flight are
    discarded.
    """
    selected = list(steps) if steps is not None else select_steps()
    if context.site is None and add_site_slug in selected:
        LOGGER.warning("No site in context, skipping site slug for uri=%s", document["uri"])
        selected = [step for step in selected if step is not add_site_slug]

    LOGGER.info("Enriching uri=%s with %s steps", document["uri"], len(selected))
    first = [step for step in selected if step not in FOLLOW_UP_STEPS]
    follow_up = [step for step in selected if step in FOLLOW_UP_STEPS]

    patch = merge_patches(await asyncio.gather(*(step(document, context) for step in first)))
    if follow_up:
        patched = apply_patch(document, patch)
        patches = await asyncio.gather(*(step(patched, context) for step in follow_up))
        patch = merge_patches([patch, *patches])
    LOGGER.info("Enriched uri=%s fields=%s", document["uri"], sorted(patch))
    return patch


def apply_patch(document: Document, patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new document with the patch layered on; ``None`` removes a key."""
    enriched = dict(document)
    for key, value in patch.items():
        if value is None:
            enriched.pop(key, None)
        else:
            enriched[key] = value
    return enriched
