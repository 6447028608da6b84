"""Error types shared by the fetch layer and the enrichment steps."""

from __future__ import annotations

from enum import Enum


class FetchErrorKind(Enum):
    NOT_FOUND = "not_found"
    HTTP = "http"
    NETWORK = "network"
    PARSE = "parse"


class FetchError(RuntimeError):
    """A fetch failed; ``kind`` tells the steps whether they may recover."""

    def __init__(
        self,
        url: str,
        kind: FetchErrorKind,
        message: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message or f"Fetch failed ({kind.value}) for {url}")
        self.url = url
        self.kind = kind
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.kind is FetchErrorKind.NOT_FOUND


class NotFoundError(FetchError):
    """The remote resource does not exist (HTTP 404)."""

    def __init__(self, url: str, message: str = "") -> None:
        super().__init__(
            url,
            FetchErrorKind.NOT_FOUND,
            message or f"Resource not found: {url}",
            status_code=404,
        )


class SiteNotFoundError(RuntimeError):
    """No site in the registry matches the requested key."""
