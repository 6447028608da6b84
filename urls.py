"""Address helpers for building same-site fetch urls from page uris."""

from __future__ import annotations

import base64
from urllib.parse import urlsplit

from models import Site


def uri_path(uri: str) -> str:
    """Strip the site host from a uri: ``a.com/pages/b`` -> ``/pages/b``."""
    index = uri.find("/")
    return uri[index:] if index >= 0 else ""


def uri_host(uri: str) -> str:
    index = uri.find("/")
    return uri[:index] if index >= 0 else uri


def site_relative_path(uri: str, site: Site | None = None) -> str:
    """Strip the site prefix (host plus site path) from a uri.

    ``foo.com/news/pages/1`` on a site mounted at ``foo.com/news`` gives
    ``/pages/1``. Without a matching site only the host is removed.
    """
    if site is not None and site.host:
        base = f"{site.host}{site.path}"
        rest = uri[len(base):]
        if uri.startswith(base) and (not rest or rest[0] == "/"):
            return rest
    return uri_path(uri)


def same_site_url(prefix: str, uri: str, suffix: str = "", site: Site | None = None) -> str:
    """Resolve a page uri against the fetch prefix."""
    return f"{prefix.rstrip('/')}{site_relative_path(uri, site)}{suffix}"


def publish_address(uri: str, prefix: str) -> str:
    """Address a page is published under, in the form the schedule stores.

    The scheme and port come from the prefix; the port slot is always
    present, so ``foo.com/pages/1`` with ``http://foo.com`` gives
    ``http://foo.com:/pages/1``.
    """
    parts = urlsplit(prefix)
    port = parts.port if parts.port is not None else ""
    return f"{parts.scheme or 'http'}://{uri_host(uri)}:{port}{uri_path(uri)}"


def strip_scheme(url: str) -> str:
    _, sep, rest = url.partition("://")
    return rest if sep else url


def encode_url_key(url: str) -> str:
    """Base64 key used by the uris lookup: ``http://foo.com/bar`` -> b64(``foo.com/bar``)."""
    return base64.b64encode(strip_scheme(url).encode("utf-8")).decode("ascii")
