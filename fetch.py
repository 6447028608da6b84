"""Async JSON/text fetch helpers for same-site resources."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import requests

from errors import FetchError, FetchErrorKind, NotFoundError

DEFAULT_TIMEOUT_SECONDS = 20.0

LOGGER = logging.getLogger(__name__)


async def fetch_json(url: str) -> Any:
    """Fetch ``url`` and decode its body as JSON."""
    response = await _get(url)
    try:
        return response.json()
    except ValueError as exc:
        LOGGER.warning("Invalid JSON from %s: %s", url, exc)
        raise FetchError(url, FetchErrorKind.PARSE, f"Invalid JSON from {url}: {exc}") from exc


async def fetch_text(url: str) -> str:
    """Fetch ``url`` and return its body as text."""
    response = await _get(url)
    return response.text


async def _get(url: str) -> requests.Response:
    # requests blocks, so run it off the event loop.
    return await asyncio.to_thread(_get_sync, url)


def _get_sync(url: str) -> requests.Response:
    LOGGER.debug("GET %s", url)
    try:
        response = requests.get(url, timeout=_timeout_seconds())
    except requests.RequestException as exc:
        LOGGER.warning("Fetch failed for %s: %s", url, exc)
        raise FetchError(url, FetchErrorKind.NETWORK, f"Request to {url} failed: {exc}") from exc

    if response.status_code == 404:
        raise NotFoundError(url)

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        LOGGER.warning("Fetch failed for %s: status=%s", url, response.status_code)
        raise FetchError(
            url,
            FetchErrorKind.HTTP,
            f"Request to {url} failed with status {response.status_code}",
            status_code=response.status_code,
        ) from exc

    return response


def _timeout_seconds() -> float:
    return float(os.getenv("FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
