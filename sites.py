"""Site registry lookups backed by a JSON file."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from errors import SiteNotFoundError
from models import Site
from urls import strip_scheme

DEFAULT_SITES_CONFIG_PATH = "sites.json"

LOGGER = logging.getLogger(__name__)


def load_sites(path: str | Path | None = None) -> list[Site]:
    """Load site descriptors from a JSON list (or a ``{"sites": [...]}`` object)."""
    config_path = Path(path or os.getenv("SITES_CONFIG_PATH", DEFAULT_SITES_CONFIG_PATH))
    payload = json.loads(config_path.read_text(encoding="utf-8"))
    entries = payload.get("sites", []) if isinstance(payload, dict) else payload
    if not isinstance(entries, list):
        raise RuntimeError(f"Unexpected site registry shape in {config_path}: expected a list")

    sites = [_parse_site(entry) for entry in entries if isinstance(entry, dict)]
    LOGGER.debug("Loaded %s sites from %s", len(sites), config_path)
    return sites


def resolve_site(site_key: str, sites: list[Site] | None = None) -> Site:
    """Find a site by slug, or by the host/path a uri or address starts with.

    The longest matching host+path wins so that ``foo.com/news`` beats
    ``foo.com`` for ``foo.com/news/pages/1``.
    """
    if sites is None:
        sites = load_sites()

    for site in sites:
        if site.slug == site_key:
            return site

    location = strip_scheme(site_key)
    matches = [
        site
        for site in sites
        if site.host and _starts_with_segment(location, f"{site.host}{site.path}")
    ]
    if not matches:
        raise SiteNotFoundError(f"No site registered for {site_key!r}")
    return max(matches, key=lambda site: len(site.host) + len(site.path))


def _parse_site(entry: dict[str, Any]) -> Site:
    slug = entry.get("slug")
    if not isinstance(slug, str) or not slug:
        raise RuntimeError(f"Site entry is missing a slug: {entry}")

    port = entry.get("port")
    return Site(
        slug=slug,
        name=str(entry.get("name") or slug),
        host=str(entry.get("host") or ""),
        path=str(entry.get("path") or "").rstrip("/"),
        protocol=str(entry.get("protocol") or "http"),
        port=int(port) if port else None,
    )


def _starts_with_segment(location: str, base: str) -> bool:
    if not location.startswith(base):
        return False
    rest = location[len(base):]
    return not rest or rest[0] in "/:@"
