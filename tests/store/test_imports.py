"""Tests for foreign audit imports and the async HTTP client.

Network access is never used: ``fetch_text`` is patched where it is looked
up, and the client itself is exercised against ``httpx.MockTransport``.
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from trustvet.core.audits import FullAudit, Violation
from trustvet.core.criteria import SAFE_TO_DEPLOY, SAFE_TO_RUN, CriteriaModel
from trustvet.exceptions import ImportFetchError
from trustvet.store import CriteriaMapping, ImportSource
from trustvet.store.http_client import USER_AGENT, fetch_text
from trustvet.store.imports import fetch_imports, map_criteria, map_denied, translate_import

FOREIGN_DOC = {
    "criteria": {
        "licensed": {"description": "License checked"},
        "crypto-safe": {"description": "Crypto reviewed", "implies": "licensed"},
    },
    "audits": {
        "left-pad": [
            {"version": "1.0.0", "criteria": "safe-to-deploy", "who": "upstream-bot"},
            {"version": "1.1.0", "criteria": "crypto-safe"},
            {"violation": ">=2.0.0", "criteria": "safe-to-deploy"},
        ],
        "bad-pkg": [{"version": "0.1.0", "criteria": "safe-to-run"}],
    },
    "trusted": {
        "is-even": [{"publisher": "alice", "criteria": ["licensed", "safe-to-run"]}],
    },
}


def _source(**kwargs) -> ImportSource:
    defaults = {
        "name": "upstream",
        "url": "https://example.com/audits.yaml",
        "criteria_map": (CriteriaMapping("license-ok", frozenset({"licensed"})),),
    }
    defaults.update(kwargs)
    return ImportSource(**defaults)


# ===========================================================================
# Criteria translation
# ===========================================================================


class TestMapping:

    def test_builtins_map_to_themselves(self) -> None:
        foreign = CriteriaModel()
        assert map_criteria(_source(criteria_map=()), foreign, [SAFE_TO_DEPLOY]) == {
            SAFE_TO_DEPLOY, SAFE_TO_RUN,
        }

    def test_mapping_uses_foreign_closure(self) -> None:
        foreign = CriteriaModel.from_mapping({
            "licensed": {}, "crypto-safe": {"implies": "licensed"},
        })
        assert map_criteria(_source(), foreign, ["crypto-safe"]) == {"license-ok"}

    def test_mapping_needs_every_theirs(self) -> None:
        foreign = CriteriaModel.from_mapping({"a": {}, "b": {}})
        source = _source(criteria_map=(CriteriaMapping("both", frozenset({"a", "b"})),))
        assert map_criteria(source, foreign, ["a"]) == frozenset()
        assert map_criteria(source, foreign, ["a", "b"]) == {"both"}

    def test_unknown_foreign_names_ignored(self) -> None:
        assert map_criteria(_source(), CriteriaModel(), ["mystery"]) == frozenset()

    def test_denied_not_expanded(self) -> None:
        assert map_denied(_source(), frozenset({SAFE_TO_DEPLOY})) == {SAFE_TO_DEPLOY}
        assert map_denied(_source(), frozenset({"licensed"})) == {"license-ok"}


class TestTranslateImport:

    def test_translates_every_kind(self, custom_criteria: CriteriaModel) -> None:
        records = translate_import(_source(), FOREIGN_DOC, custom_criteria)
        assert len(records) == 5

        full = records[0]
        assert isinstance(full, FullAudit)
        assert full.criteria == {SAFE_TO_DEPLOY, SAFE_TO_RUN}
        assert full.who == ("upstream-bot",)
        assert full.aggregated_from == ("upstream",)

        [violation] = [r for r in records if isinstance(r, Violation)]
        assert violation.criteria == {SAFE_TO_DEPLOY}

        [grant] = [r for r in records if r.package == "is-even"]
        assert grant.criteria == {"license-ok", SAFE_TO_RUN}

    def test_crypto_audit_maps_through_closure(self, custom_criteria: CriteriaModel) -> None:
        records = translate_import(_source(), FOREIGN_DOC, custom_criteria)
        audits = [r for r in records if isinstance(r, FullAudit) and r.package == "left-pad"]
        assert [a.criteria for a in audits] == [
            {SAFE_TO_DEPLOY, SAFE_TO_RUN}, {"license-ok"},
        ]

    def test_exclude(self, custom_criteria: CriteriaModel) -> None:
        records = translate_import(
            _source(exclude=frozenset({"bad-pkg"})), FOREIGN_DOC, custom_criteria
        )
        assert "bad-pkg" not in {r.package for r in records}

    def test_unmappable_dropped_with_warning(self, criteria: CriteriaModel, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="trustvet.store.imports"):
            records = translate_import(_source(), FOREIGN_DOC, criteria)
        assert all("license-ok" not in r.criteria for r in records)
        assert "full audit of 1.1.0" in caplog.text
        assert "no criteria map" in caplog.text

    def test_chained_aggregation(self, custom_criteria: CriteriaModel) -> None:
        doc = {"audits": {"x": [
            {"version": "1.0.0", "criteria": "safe-to-run", "aggregated-from": ["origin"]},
        ]}}
        [record] = translate_import(_source(), doc, custom_criteria)
        assert record.aggregated_from == ("origin", "upstream")

    def test_bad_foreign_criteria(self, criteria: CriteriaModel) -> None:
        doc = {"criteria": {"a": {"implies": "b"}, "b": {"implies": "a"}}}
        with pytest.raises(ImportFetchError, match="unusable criteria"):
            translate_import(_source(), doc, criteria)

    def test_violations_are_kept(self, criteria: CriteriaModel) -> None:
        records = translate_import(_source(criteria_map=()), FOREIGN_DOC, criteria)
        assert any(isinstance(r, Violation) for r in records)

    def test_dependency_criteria_mapped(self, custom_criteria: CriteriaModel) -> None:
        doc = {"criteria": FOREIGN_DOC["criteria"], "audits": {"openssl": [{
            "version": "1.0.0",
            "criteria": "safe-to-deploy",
            "dependency-criteria": {"cc": "crypto-safe", "libc": "mystery", "zlib": "safe-to-run"},
        }]}}
        [record] = translate_import(_source(), doc, custom_criteria)
        assert record.dependency_criteria == (
            ("cc", frozenset({"license-ok"})),
            ("zlib", frozenset({SAFE_TO_RUN})),
        )


# ===========================================================================
# Fetching
# ===========================================================================


class TestFetchImports:

    def test_parses_bodies(self) -> None:
        sources = [_source(name="b", url="https://b"), _source(name="a", url="https://a")]
        bodies = {"https://a": "audits: {}\n", "https://b": ""}

        async def fake_fetch(url, *, timeout):
            return bodies[url]

        with patch("trustvet.store.imports.fetch_text", side_effect=fake_fetch):
            documents = fetch_imports(sources, timeout=5)
        assert documents == {"a": {"audits": {}}, "b": {}}

    def test_no_sources(self) -> None:
        assert fetch_imports([]) == {}

    def test_non_mapping_body(self) -> None:
        with patch(
            "trustvet.store.imports.fetch_text",
            new_callable=AsyncMock, return_value="- just\n- a list\n",
        ):
            with pytest.raises(ImportFetchError, match="expected a mapping"):
                fetch_imports([_source()])

    def test_invalid_yaml(self) -> None:
        with patch(
            "trustvet.store.imports.fetch_text",
            new_callable=AsyncMock, return_value="audits: [oops\n",
        ):
            with pytest.raises(ImportFetchError, match="invalid YAML"):
                fetch_imports([_source()])

    def test_fetch_error_propagates(self) -> None:
        with patch(
            "trustvet.store.imports.fetch_text",
            new_callable=AsyncMock, side_effect=ImportFetchError("HTTP 404 fetching x"),
        ):
            with pytest.raises(ImportFetchError, match="404"):
                fetch_imports([_source()])


def _mock_client(handler):
    """Replace ``httpx.AsyncClient`` with one routed through *handler*."""
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return patch("trustvet.store.http_client.httpx.AsyncClient", side_effect=factory)


class TestFetchText:

    def test_success_sends_user_agent(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, text="audits: {}\n")

        with _mock_client(handler):
            body = asyncio.run(fetch_text("https://example.com/audits.yaml"))
        assert body == "audits: {}\n"
        assert seen["ua"] == USER_AGENT

    def test_http_error(self) -> None:
        with _mock_client(lambda request: httpx.Response(404)):
            with pytest.raises(ImportFetchError, match="HTTP 404"):
                asyncio.run(fetch_text("https://example.com/missing.yaml"))

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with _mock_client(handler):
            with pytest.raises(ImportFetchError, match="Timed out"):
                asyncio.run(fetch_text("https://example.com/slow.yaml", timeout=0.1))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with _mock_client(handler):
            with pytest.raises(ImportFetchError, match="Cannot fetch"):
                asyncio.run(fetch_text("https://example.com/down.yaml"))
