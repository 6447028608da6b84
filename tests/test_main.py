"""Tests for the CLI entrypoint (main.main)."""

from __future__ import annotations

import json
import sys
import types
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

import main
from errors import FetchError, FetchErrorKind, SiteNotFoundError
from models import Site

SITE = Site(slug="foo", name="Foo", host="foo.com")


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "load_dotenv", lambda: None)
    monkeypatch.delenv("ENRICH_PREFIX", raising=False)


def test_main_prints_enriched_document(capsys: pytest.CaptureFixture[str]) -> None:
    with patch("main.resolve_site", return_value=SITE), \
         patch("main.enrich_page", new_callable=AsyncMock, return_value={"siteSlug": "foo"}) as mock_enrich:
        code = main.main(["foo.com/pages/1", "--steps", "site_slug"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"uri": "foo.com/pages/1", "siteSlug": "foo"}
    context = mock_enrich.call_args.args[1]
    assert context.prefix == "http://foo.com"
    assert context.site == SITE


def test_main_patch_only_serializes_datetimes(capsys: pytest.CaptureFixture[str]) -> None:
    patch_ = {"published": True, "publishTime": datetime(2026, 1, 1, tzinfo=UTC)}
    with patch("main.resolve_site", return_value=SITE), \
         patch("main.enrich_page", new_callable=AsyncMock, return_value=patch_):
        code = main.main(["foo.com/pages/1", "--patch-only", "--prefix", "http://localhost:3001"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {
        "published": True,
        "publishTime": "2026-01-01T00:00:00+00:00",
    }


def test_main_counts_failed_pages(capsys: pytest.CaptureFixture[str]) -> None:
    error = FetchError("http://foo.com/schedule", FetchErrorKind.HTTP, status_code=500)
    with patch("main.resolve_site", return_value=SITE), \
         patch("main.enrich_page", new_callable=AsyncMock, side_effect=[error, {"scheduled": False}]):
        code = main.main(["foo.com/pages/1", "foo.com/pages/2"])

    assert code == 1
    lines = capsys.readouterr().out.strip().splitlines()
    assert [json.loads(line)["uri"] for line in lines] == ["foo.com/pages/2"]


def test_main_without_prefix_or_site_exits_with_usage_error() -> None:
    with patch("main.resolve_site", side_effect=SiteNotFoundError("none")):
        assert main.main(["foo.com/pages/1"]) == 2


def test_main_rejects_unknown_steps() -> None:
    with patch("main.resolve_site", return_value=SITE):
        assert main.main(["foo.com/pages/1", "--steps", "bogus"]) == 2


def test_load_plugins_reads_handlers_and_transforms(monkeypatch: pytest.MonkeyPatch) -> None:
    plugin = types.ModuleType("enrich_plugins_test")
    plugin.HANDLERS = {"tags": lambda ref, data, ctx: {}}
    plugin.TRANSFORMS = {"words": lambda doc, ctx: {}}
    monkeypatch.setitem(sys.modules, "enrich_plugins_test", plugin)

    handlers, transforms = main.load_plugins("enrich_plugins_test")

    assert list(handlers) == ["tags"]
    assert list(transforms) == ["words"]


def test_load_plugins_without_module() -> None:
    assert main.load_plugins(None) == ({}, {})


def test_main_continues_without_site_when_registry_is_malformed(
    tmp_path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    registry = tmp_path / "sites.json"
    registry.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("SITES_CONFIG_PATH", str(registry))

    with patch("main.enrich_page", new_callable=AsyncMock, return_value={"scheduled": False}) as mock_enrich:
        code = main.main(["foo.com/pages/1", "--prefix", "http://foo.com", "--steps", "schedule_time"])

    assert code == 0
    assert mock_enrich.call_args.args[1].site is None
    assert json.loads(capsys.readouterr().out) == {"uri": "foo.com/pages/1", "scheduled": False}
