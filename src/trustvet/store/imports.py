"""Foreign audit imports.

Another project's published ``audits.yaml`` can be imported so that its
reviews count locally. Foreign criteria are translated on the way in:

- Built-in criteria map to themselves.
- A local criterion ``ours`` is granted when every one of its ``theirs``
  criteria is in the foreign record's implication closure (computed with
  the foreign criteria table).
- Violations map only what they name directly: denying ``safe-to-deploy``
  must not turn into denying ``safe-to-run``.
- Per-dependency criteria on audits and exemptions map like claimed
  criteria; a dependency whose criteria map to nothing local loses its
  entry and falls back to ordinary propagation.

Records left with no local criteria are dropped with a warning. Packages
listed in the import's ``exclude`` are skipped entirely.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import yaml

from trustvet.core.audits import (
    AuditRecord,
    DependencyCriteria,
    TrustedPublisherGrant,
    Violation,
    dependency_criteria,
    describe,
)
from trustvet.core.criteria import BUILTIN_CRITERIA, CriteriaModel
from trustvet.exceptions import ConfigurationError, ImportFetchError
from trustvet.store.documents import ImportSource, parse_audits_document, parse_criteria
from trustvet.store.http_client import DEFAULT_TIMEOUT, fetch_text

logger = logging.getLogger(__name__)


def _foreign_model(source: ImportSource, document: Mapping[str, Any]) -> CriteriaModel:
    where = f"import {source.name}"
    try:
        return CriteriaModel.from_mapping(parse_criteria(document.get("criteria"), where))
    except ConfigurationError as exc:
        raise ImportFetchError(f"{where}: unusable criteria table: {exc}") from exc


def map_criteria(
    source: ImportSource, foreign: CriteriaModel, claimed: Iterable[str]
) -> frozenset[str]:
    """Translate foreign criteria names into local ones."""
    known = [c for c in claimed if c in foreign]
    closure = foreign.expand(known)
    local = {c for c in BUILTIN_CRITERIA if c in closure}
    for mapping in source.criteria_map:
        if mapping.theirs and mapping.theirs <= closure:
            local.add(mapping.ours)
    return frozenset(local)


def map_denied(source: ImportSource, denied: frozenset[str]) -> frozenset[str]:
    """Translate the criteria a foreign violation denies, without closure."""
    local = {c for c in denied if c in BUILTIN_CRITERIA}
    for mapping in source.criteria_map:
        if mapping.theirs and mapping.theirs <= denied:
            local.add(mapping.ours)
    return frozenset(local)


def _map_dependency_criteria(
    source: ImportSource,
    foreign: CriteriaModel,
    local: CriteriaModel,
    overrides: DependencyCriteria,
) -> DependencyCriteria:
    mapped = {}
    for dependency, names in overrides:
        names = frozenset(c for c in map_criteria(source, foreign, names) if c in local)
        if names:
            mapped[dependency] = names
    return dependency_criteria(mapped)


def translate_import(
    source: ImportSource, document: Mapping[str, Any], local: CriteriaModel
) -> list[AuditRecord]:
    """Turn a foreign audits document into local records.

    Args:
        source: The import configuration.
        document: The foreign ``audits.yaml`` contents.
        local: Local criteria model; mapped names must exist in it.

    Raises:
        StoreError: If the document is malformed.
        ImportFetchError: If its criteria table is unusable.
    """
    foreign = _foreign_model(source, document)
    records: list[AuditRecord] = []
    dropped = 0
    for record in parse_audits_document(document, where=f"import {source.name}"):
        if record.package in source.exclude:
            continue
        if isinstance(record, Violation):
            mapped = map_denied(source, record.criteria)
        else:
            mapped = map_criteria(source, foreign, record.criteria)
        mapped = frozenset(c for c in mapped if c in local)
        if not mapped:
            dropped += 1
            logger.warning(
                "Dropped %s %s from import %s: no criteria map to local ones",
                record.package, describe(record), source.name,
            )
            continue
        changes: dict[str, Any] = {
            "criteria": mapped,
            "aggregated_from": (*record.aggregated_from, source.name),
        }
        if not isinstance(record, (Violation, TrustedPublisherGrant)):
            changes["dependency_criteria"] = _map_dependency_criteria(
                source, foreign, local, record.dependency_criteria
            )
        records.append(dataclasses.replace(record, **changes))
    logger.info(
        "Import %s: %d records kept, %d dropped", source.name, len(records), dropped
    )
    return records


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


async def _fetch_all(sources: list[ImportSource], timeout: float) -> list[str]:
    return list(await asyncio.gather(
        *(fetch_text(source.url, timeout=timeout) for source in sources)
    ))


def fetch_imports(
    sources: Iterable[ImportSource], timeout: float = DEFAULT_TIMEOUT
) -> dict[str, dict[str, Any]]:
    """Download every import's audits document concurrently.

    Returns:
        Mapping of import name to the parsed foreign document.

    Raises:
        ImportFetchError: If any fetch fails or a body is not a YAML mapping.
    """
    ordered = sorted(sources, key=lambda s: s.name)
    if not ordered:
        return {}
    bodies = asyncio.run(_fetch_all(ordered, timeout))
    documents: dict[str, dict[str, Any]] = {}
    for source, body in zip(ordered, bodies):
        try:
            data = yaml.safe_load(body)
        except yaml.YAMLError as exc:
            raise ImportFetchError(f"import {source.name}: invalid YAML: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ImportFetchError(f"import {source.name}: expected a mapping")
        documents[source.name] = data
        logger.debug("Fetched import %s from %s", source.name, source.url)
    return documents
