"""Normalize handler/transform results and merge them into one patch."""

from __future__ import annotations

import inspect
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Generator, Iterable, Iterator, Mapping
from typing import Any

from models import Patch


async def normalize_result(value: Any) -> Any:
    """Turn a plain value, an awaitable or a lazy sequence into one value.

    - falsy -> ``{}``
    - async or sync iterator/generator -> its first item (``{}`` if empty)
    - awaitable -> the awaited value
    - anything else -> unchanged
    """
    if not value:
        return {}

    if isinstance(value, AsyncIterator):
        item = await anext(value, None)
        if isinstance(value, AsyncGenerator):
            await value.aclose()
        return item or {}

    # Mappings, lists and strings are iterable but not iterators.
    if isinstance(value, Iterator):
        item = next(value, None)
        if isinstance(value, Generator):
            value.close()
        return item or {}

    if inspect.isawaitable(value):
        return await value

    return value


async def call_and_normalize(func: Callable[..., Any], *args: Any) -> Any:
    """Call a handler or transform inside the coroutine and normalize its result."""
    return await normalize_result(func(*args))


def merge_patches(patches: Iterable[Any]) -> Patch:
    """Layer patches in order; later keys win, non-mappings count as empty."""
    merged: Patch = {}
    for patch in patches:
        if patch and isinstance(patch, Mapping):
            merged.update(patch)
    return merged
