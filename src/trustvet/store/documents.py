"""Shared readers for store documents.

Parses the pieces common to local ``audits.yaml`` files and imported foreign
ones: criteria tables, audit entries, violations and trusted publisher
grants. Parsing failures raise :class:`StoreError` naming the file and the
entry so the user can find the typo.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from trustvet.core.audits import (
    AuditRecord,
    DeltaAudit,
    DependencyCriteria,
    FullAudit,
    TrustedPublisherGrant,
    Version,
    VersionRange,
    Violation,
    dependency_criteria,
)
from trustvet.exceptions import StoreError

STORE_DIR = "supply-chain"
AUDITS_FILE = "audits.yaml"
CONFIG_FILE = "config.yaml"
IMPORTS_LOCK_FILE = "imports.lock.yaml"
DIFFCACHE_FILE = "diffcache.yaml"


# ---------------------------------------------------------------------------
# Import sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CriteriaMapping:
    """Grant local criterion ``ours`` when a foreign record implies all of ``theirs``."""

    ours: str
    theirs: frozenset[str]


@dataclass(frozen=True)
class ImportSource:
    """A foreign audit database to import.

    Attributes:
        name: Local name of the import (used in ``aggregated_from``).
        url: Where its ``audits.yaml`` is published.
        exclude: Packages whose foreign records are ignored.
        criteria_map: How foreign custom criteria map to local ones.
    """

    name: str
    url: str
    exclude: frozenset[str] = frozenset()
    criteria_map: tuple[CriteriaMapping, ...] = ()


# ---------------------------------------------------------------------------
# Primitive readers
# ---------------------------------------------------------------------------


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; a missing or empty file reads as ``{}``.

    Raises:
        StoreError: On unreadable files, YAML syntax errors, or a top-level
            value that is not a mapping.
    """
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise StoreError(f"Cannot read {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise StoreError(f"{path}: expected a mapping at the top level")
    return data


def parse_version(text: object, where: str) -> Version:
    try:
        return Version.parse(str(text))
    except ValueError as exc:
        raise StoreError(f"{where}: {exc}") from exc


def parse_range(text: object, where: str) -> VersionRange:
    try:
        return VersionRange(str(text))
    except ValueError as exc:
        raise StoreError(f"{where}: {exc}") from exc


def parse_names(value: object, where: str) -> frozenset[str]:
    """Accept ``"a"`` or ``["a", "b"]``."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    raise StoreError(f"{where}: expected a criterion name or a list of names")


def parse_who(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_flag(entry: Mapping[str, Any], key: str, default: bool, where: str) -> bool:
    """Read an optional boolean; quoted strings like ``"false"`` are rejected."""
    value = entry.get(key, default)
    if not isinstance(value, bool):
        raise StoreError(f"{where}.{key} must be true or false, got {value!r}")
    return value


def parse_dependency_criteria(value: object, where: str) -> DependencyCriteria:
    """Read a ``{dependency: criteria}`` mapping attached to an audit or exemption."""
    if value is None:
        return ()
    if not isinstance(value, dict):
        raise StoreError(f"{where}: expected a mapping of dependency to criteria")
    return dependency_criteria({
        str(dep): parse_names(names, f"{where}.{dep}") for dep, names in value.items()
    })


def package_entries(section: object, where: str) -> dict[str, list[dict[str, Any]]]:
    """Validate a ``{package: [entry, ...]}`` section."""
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise StoreError(f"{where}: expected a mapping of package to entries")
    for package, entries in section.items():
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise StoreError(f"{where}.{package}: expected a list of mappings")
    return section


# ---------------------------------------------------------------------------
# audits.yaml
# ---------------------------------------------------------------------------


def parse_criteria(section: object, where: str = AUDITS_FILE) -> dict[str, dict[str, Any]]:
    """Normalize the ``criteria`` section for :meth:`CriteriaModel.from_mapping`."""
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise StoreError(f"{where}: 'criteria' must be a mapping")
    result: dict[str, dict[str, Any]] = {}
    for name, entry in section.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            raise StoreError(f"{where}: criteria.{name} must be a mapping")
        result[str(name)] = {
            "description": entry.get("description", ""),
            "description_url": entry.get("description-url"),
            "implies": sorted(parse_names(entry.get("implies"), f"{where}: criteria.{name}.implies")),
        }
    return result


def parse_audit_entry(package: str, entry: Mapping[str, Any], where: str) -> AuditRecord:
    """Parse one ``audits`` entry into a full audit, delta audit or violation."""
    criteria = parse_names(entry.get("criteria"), f"{where}.criteria")
    who = parse_who(entry.get("who"))
    notes = entry.get("notes")
    aggregated = tuple(entry.get("aggregated-from") or ())
    overrides = parse_dependency_criteria(
        entry.get("dependency-criteria"), f"{where}.dependency-criteria"
    )
    kinds = [k for k in ("version", "delta", "violation") if k in entry]
    if len(kinds) != 1:
        raise StoreError(f"{where}: needs exactly one of 'version', 'delta' or 'violation'")

    if "version" in entry:
        return FullAudit(
            package, parse_version(entry["version"], where), criteria, who, notes,
            aggregated, overrides,
        )
    if "delta" in entry:
        start, arrow, end = str(entry["delta"]).partition("->")
        if not arrow:
            raise StoreError(f"{where}: delta must look like 'A -> B'")
        return DeltaAudit(
            package, parse_version(start, where), parse_version(end, where),
            criteria, who, notes, aggregated, overrides,
        )
    return Violation(
        package, parse_range(entry["violation"], where), criteria, who, notes, aggregated
    )


def parse_trusted_entry(
    package: str, entry: Mapping[str, Any], where: str
) -> TrustedPublisherGrant:
    publisher = entry.get("publisher")
    if not publisher:
        raise StoreError(f"{where}: trusted entry needs a 'publisher'")
    return TrustedPublisherGrant(
        package=package,
        versions=parse_range(entry.get("versions", "*"), where),
        criteria=parse_names(entry.get("criteria"), f"{where}.criteria"),
        publisher=str(publisher),
        notes=entry.get("notes"),
        aggregated_from=tuple(entry.get("aggregated-from") or ()),
    )


def parse_audits_document(
    data: Mapping[str, Any], where: str = AUDITS_FILE
) -> list[AuditRecord]:
    """Parse the ``audits`` and ``trusted`` sections of an audits document."""
    records: list[AuditRecord] = []
    for package, entries in package_entries(data.get("audits"), f"{where}: audits").items():
        for i, entry in enumerate(entries):
            records.append(parse_audit_entry(package, entry, f"{where}: audits.{package}[{i}]"))
    for package, entries in package_entries(data.get("trusted"), f"{where}: trusted").items():
        for i, entry in enumerate(entries):
            records.append(parse_trusted_entry(package, entry, f"{where}: trusted.{package}[{i}]"))
    return records

