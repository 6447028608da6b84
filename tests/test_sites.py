"""Tests for the site registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import sites
from errors import SiteNotFoundError
from models import Site

REGISTRY = [
    {"slug": "foo", "name": "Foo", "host": "foo.com"},
    {"slug": "foo-news", "name": "Foo News", "host": "foo.com", "path": "/news/"},
    {"slug": "bar", "name": "Bar", "host": "bar.com", "protocol": "https", "port": 8443},
]


@pytest.fixture
def registry_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write the sample registry and point SITES_CONFIG_PATH at it."""
    path = tmp_path / "sites.json"
    path.write_text(json.dumps(REGISTRY), encoding="utf-8")
    monkeypatch.setenv("SITES_CONFIG_PATH", str(path))
    return path


def test_load_sites_parses_entries(registry_path: Path) -> None:
    loaded = sites.load_sites()

    assert [site.slug for site in loaded] == ["foo", "foo-news", "bar"]
    assert loaded[1].path == "/news"
    assert loaded[2].port == 8443


def test_load_sites_accepts_wrapped_list(tmp_path: Path) -> None:
    path = tmp_path / "wrapped.json"
    path.write_text(json.dumps({"sites": REGISTRY[:1]}), encoding="utf-8")
    assert sites.load_sites(path) == [Site(slug="foo", name="Foo", host="foo.com")]


def test_load_sites_rejects_entry_without_slug(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"name": "No slug"}]), encoding="utf-8")
    with pytest.raises(RuntimeError, match="slug"):
        sites.load_sites(path)


def test_resolve_site_by_slug(registry_path: Path) -> None:
    assert sites.resolve_site("bar").name == "Bar"


def test_resolve_site_by_uri_prefers_longest_match(registry_path: Path) -> None:
    assert sites.resolve_site("foo.com/news/pages/1").slug == "foo-news"
    assert sites.resolve_site("foo.com/pages/1").slug == "foo"


def test_resolve_site_by_address(registry_path: Path) -> None:
    assert sites.resolve_site("http://foo.com/pages/1").slug == "foo"


def test_resolve_site_does_not_match_partial_host(registry_path: Path) -> None:
    with pytest.raises(SiteNotFoundError):
        sites.resolve_site("foo.com.evil/pages/1")


def test_site_prefix() -> None:
    assert Site(slug="foo", name="Foo", host="foo.com").prefix == "http://foo.com"
    assert Site(slug="bar", name="Bar", host="bar.com", protocol="https", port=8443).prefix == "https://bar.com:8443"
    assert Site(slug="news", name="News", host="foo.com", path="/news").prefix == "http://foo.com/news"
