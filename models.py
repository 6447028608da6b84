"""Shared typed models for the enrichment pipeline."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

Document = Mapping[str, Any]
Patch = dict[str, Any]

# Handlers and transforms may return a plain value, an awaitable or a lazy
# sequence; results.normalize_result unwraps all three.
Handler = Callable[[str, Mapping[str, Any], "EnrichContext"], Any]
Transform = Callable[[Document, "EnrichContext"], Any]
Step = Callable[[Document, "EnrichContext"], Awaitable[Patch]]


@dataclass(frozen=True, slots=True)
class Site:
    """Site descriptor resolved from the site registry."""

    slug: str
    name: str
    host: str = ""
    path: str = ""
    protocol: str = "http"
    port: int | None = None

    @property
    def prefix(self) -> str:
        """Base address for same-site fetches, e.g. ``http://foo.com/news``."""
        port = f":{self.port}" if self.port and self.port not in (80, 443) else ""
        return f"{self.protocol}://{self.host}{port}{self.path}"


@dataclass(frozen=True, slots=True)
class EnrichContext:
    """Per-run configuration threaded through every step and handler."""

    prefix: str
    site: Site | None = None
    handlers: Mapping[str, Handler] = field(default_factory=dict)
    transforms: Mapping[str, Transform] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "handlers", MappingProxyType(dict(self.handlers or {})))
        object.__setattr__(self, "transforms", MappingProxyType(dict(self.transforms or {})))
