"""Enrichment steps that derive publish, schedule, url and site fields for a page.

Each step takes ``(document, context)`` and returns a patch. Steps that fetch
recover only from NOT_FOUND failures, and only where a fallback is defined;
every other failure propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from errors import FetchError, FetchErrorKind
from fetch import fetch_json, fetch_text
from models import Document, EnrichContext, Patch
from results import call_and_normalize, merge_patches
from urls import encode_url_key, publish_address, same_site_url

LOGGER = logging.getLogger(__name__)


async def add_publish_data(document: Document, context: EnrichContext) -> Patch:
    """Set ``url``, ``published`` and ``publishTime`` from the published version."""
    try:
        published = await fetch_json(same_site_url(context.prefix, document["uri"], "@published", context.site))
    except FetchError as exc:
        if exc.kind is not FetchErrorKind.NOT_FOUND:
            raise
        LOGGER.debug("No published version for uri=%s", document["uri"])
        return {"published": False}

    return {
        "url": published.get("url"),
        "published": True,
        "publishTime": _from_epoch_millis(published.get("lastModified")),
    }


async def add_schedule_time(document: Document, context: EnrichContext) -> Patch:
    """Set ``scheduled`` and ``scheduledTime`` from the site schedule.

    A missing schedule is an error, unlike a missing published version.
    """
    schedule = await fetch_json(f"{context.prefix.rstrip('/')}/schedule")
    address = publish_address(document["uri"], context.prefix)

    for entry in schedule or []:
        if isinstance(entry, dict) and entry.get("publish") == address:
            return {"scheduled": True, "scheduledTime": entry.get("at")}
    return {"scheduled": False}


async def validate_publish_url(document: Document, context: EnrichContext) -> Patch:
    """Clear ``url`` when the uris lookup no longer points it at this page."""
    url = document.get("url")
    if not url:
        return {}

    lookup = f"{context.prefix.rstrip('/')}/uris/{encode_url_key(url)}"
    try:
        canonical_uri = await fetch_text(lookup)
    except FetchError as exc:
        if exc.kind is not FetchErrorKind.NOT_FOUND:
            raise
        LOGGER.debug("No uri registered for url=%s", url)
        return {"url": None}

    if canonical_uri.strip() == document["uri"]:
        return {}
    LOGGER.debug("url=%s points at %s, not uri=%s", url, canonical_uri, document["uri"])
    return {"url": None}


async def add_site_slug(document: Document, context: EnrichContext) -> Patch:
    return {"siteSlug": context.site.slug}


async def apply_custom_transforms(document: Document, context: EnrichContext) -> Patch:
    """Run every transform in ``context.transforms`` and merge the results in order."""
    if not context.transforms:
        return {}

    pending = [call_and_normalize(transform, document, context) for transform in context.transforms.values()]
    return merge_patches(await asyncio.gather(*pending))


def _from_epoch_millis(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.isdigit():
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.fromtimestamp(int(value) / 1000, tz=UTC)
