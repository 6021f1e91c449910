"""Load a store directory and a dependency graph file.

A store is a directory (``supply-chain/`` by default) holding:

- ``audits.yaml``        -- custom criteria, audits, violations, trusted
  publisher grants.
- ``config.yaml``        -- default criteria, policies, exemptions, imports.
- ``imports.lock.yaml``  -- cached foreign ``audits.yaml`` documents.
- ``diffcache.yaml``     -- optional diff statistics for the diffstat cost.

Every file is optional; a missing store is an empty store. Malformed input
raises :class:`StoreError` naming the file and entry. Records that parse but
are semantically wrong (unknown criteria, self-deltas) are left for the
:class:`AuditStore` to reject individually.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trustvet.core.audits import (
    AuditRecord,
    AuditStore,
    Exemption,
    PackageVersion,
    Version,
)
from trustvet.core.criteria import DEFAULT_CRITERIA, CriteriaModel
from trustvet.core.dependency import (
    DependencyGraph,
    DependencyKind,
    PackageNode,
    Policy,
    PolicyTable,
)
from trustvet.core.suggest import DiffStat
from trustvet.exceptions import StoreError
from trustvet.store.documents import (
    AUDITS_FILE,
    CONFIG_FILE,
    DIFFCACHE_FILE,
    IMPORTS_LOCK_FILE,
    STORE_DIR,
    CriteriaMapping,
    ImportSource,
    package_entries,
    parse_audits_document,
    parse_criteria,
    parse_dependency_criteria,
    parse_flag,
    parse_names,
    parse_version,
    read_yaml,
)
from trustvet.store.imports import translate_import

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreConfig:
    """Parsed ``config.yaml``."""

    default_criteria: str = DEFAULT_CRITERIA
    policy: PolicyTable = field(default_factory=PolicyTable)
    exemptions: tuple[Exemption, ...] = ()
    imports: tuple[ImportSource, ...] = ()


@dataclass(frozen=True)
class LoadedStore:
    """Everything read from one store directory.

    Attributes:
        root: The store directory.
        criteria: Built-in plus custom criteria.
        config: Parsed configuration.
        store: Local audits, exemptions and imported records, validated.
        imported: Foreign documents from the imports lock, by import name.
    """

    root: Path
    criteria: CriteriaModel
    config: StoreConfig
    store: AuditStore
    imported: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# config.yaml
# ---------------------------------------------------------------------------


def _parse_policy(package: str, entry: Mapping[str, Any]) -> Policy:
    where = f"{CONFIG_FILE}: policy.{package}"
    overrides = entry.get("dependency-criteria") or {}
    if not isinstance(overrides, dict):
        raise StoreError(f"{where}.dependency-criteria must be a mapping")
    criteria = entry.get("criteria")
    dev_criteria = entry.get("dev-criteria")
    return Policy(
        criteria=parse_names(criteria, f"{where}.criteria") if criteria is not None else None,
        dev_criteria=(
            parse_names(dev_criteria, f"{where}.dev-criteria") if dev_criteria is not None else None
        ),
        dependency_criteria={
            str(dep): parse_names(names, f"{where}.dependency-criteria.{dep}")
            for dep, names in overrides.items()
        },
        notes=entry.get("notes"),
    )


def _parse_import(name: str, entry: object) -> ImportSource:
    where = f"{CONFIG_FILE}: imports.{name}"
    if isinstance(entry, str):
        entry = {"url": entry}
    if not isinstance(entry, dict) or not entry.get("url"):
        raise StoreError(f"{where}: needs a 'url'")
    mappings = []
    for i, item in enumerate(entry.get("criteria-map") or []):
        if not isinstance(item, dict) or "ours" not in item or "theirs" not in item:
            raise StoreError(f"{where}.criteria-map[{i}]: needs 'ours' and 'theirs'")
        mappings.append(
            CriteriaMapping(str(item["ours"]), parse_names(item["theirs"], f"{where}.criteria-map[{i}]"))
        )
    return ImportSource(
        name=name,
        url=str(entry["url"]),
        exclude=frozenset(str(p) for p in entry.get("exclude") or ()),
        criteria_map=tuple(mappings),
    )


def parse_config(data: Mapping[str, Any]) -> StoreConfig:
    """Parse ``config.yaml`` contents."""
    default = str(data.get("default-criteria") or DEFAULT_CRITERIA)

    policies = data.get("policy") or {}
    if not isinstance(policies, dict):
        raise StoreError(f"{CONFIG_FILE}: 'policy' must be a mapping")
    table = PolicyTable(
        {str(pkg): _parse_policy(str(pkg), entry or {}) for pkg, entry in policies.items()},
        default_criteria=default,
    )

    exemptions: list[Exemption] = []
    for package, entries in package_entries(data.get("exemptions"), f"{CONFIG_FILE}: exemptions").items():
        for i, entry in enumerate(entries):
            where = f"{CONFIG_FILE}: exemptions.{package}[{i}]"
            if "version" not in entry:
                raise StoreError(f"{where}: needs a 'version'")
            exemptions.append(Exemption(
                package=package,
                version=parse_version(entry["version"], where),
                criteria=parse_names(entry.get("criteria", default), f"{where}.criteria"),
                unconfirmed=parse_flag(entry, "unconfirmed", False, where),
                suggest=parse_flag(entry, "suggest", True, where),
                notes=entry.get("notes"),
                dependency_criteria=parse_dependency_criteria(
                    entry.get("dependency-criteria"), f"{where}.dependency-criteria"
                ),
            ))

    imports = data.get("imports") or {}
    if not isinstance(imports, dict):
        raise StoreError(f"{CONFIG_FILE}: 'imports' must be a mapping")
    return StoreConfig(
        default_criteria=default,
        policy=table,
        exemptions=tuple(exemptions),
        imports=tuple(_parse_import(str(n), e) for n, e in sorted(imports.items())),
    )


# ---------------------------------------------------------------------------
# Whole store
# ---------------------------------------------------------------------------


def load_store(root: Path | str = STORE_DIR) -> LoadedStore:
    """Load and validate every file of a store directory.

    Raises:
        StoreError: On malformed files.
        ConfigurationError: On criteria cycles, unknown names in criteria
            implications, the default criteria, or an import's criteria map.
    """
    root = Path(root)
    audits = read_yaml(root / AUDITS_FILE)
    config = parse_config(read_yaml(root / CONFIG_FILE))
    criteria = CriteriaModel.from_mapping(parse_criteria(audits.get("criteria")))
    criteria.check(config.default_criteria, context="default-criteria")
    for source in config.imports:
        for mapping in source.criteria_map:
            criteria.check(mapping.ours, context=f"criteria-map of import {source.name}")

    records: list[AuditRecord] = parse_audits_document(audits)
    records.extend(config.exemptions)

    imported = read_yaml(root / IMPORTS_LOCK_FILE)
    by_name = {s.name: s for s in config.imports}
    for name in sorted(imported):
        source = by_name.get(name)
        if source is None:
            logger.warning("Ignoring locked import %s: not configured", name)
            continue
        document = imported[name] or {}
        if not isinstance(document, dict):
            raise StoreError(f"{IMPORTS_LOCK_FILE}: {name} must be a mapping")
        records.extend(translate_import(source, document, criteria))

    store = AuditStore.from_records(criteria, records)
    logger.info("Loaded %d records from %s (%d rejected)", len(store), root, len(store.rejected))
    return LoadedStore(root, criteria, config, store, imported)


# ---------------------------------------------------------------------------
# Dependency graph file
# ---------------------------------------------------------------------------


def parse_dependency_graph(data: Mapping[str, Any], where: str = "graph") -> DependencyGraph:
    """Build a :class:`DependencyGraph` from its file representation.

    Expected shape::

        packages:
          - {name: my-app, version: 0.1.0, first_party: true}
          - {name: left-pad, version: 1.0.0}
        dependencies:
          - {from: my-app@0.1.0, to: left-pad@1.0.0, kind: normal}
    """
    graph = DependencyGraph()
    packages = data.get("packages") or []
    if not isinstance(packages, list):
        raise StoreError(f"{where}: 'packages' must be a list")
    for i, entry in enumerate(packages):
        if not isinstance(entry, dict) or "name" not in entry or "version" not in entry:
            raise StoreError(f"{where}: packages[{i}] needs 'name' and 'version'")
        graph.add_package(PackageNode(
            package=str(entry["name"]),
            version=parse_version(entry["version"], f"{where}: packages[{i}]"),
            first_party=bool(entry.get("first_party", entry.get("first-party", False))),
        ))

    for i, entry in enumerate(data.get("dependencies") or []):
        at = f"{where}: dependencies[{i}]"
        if not isinstance(entry, dict) or "from" not in entry or "to" not in entry:
            raise StoreError(f"{at}: needs 'from' and 'to'")
        try:
            parent = PackageVersion.parse(str(entry["from"]))
            child = PackageVersion.parse(str(entry["to"]))
            kind = DependencyKind(str(entry.get("kind", "normal")))
            graph.add_dependency(parent, child, kind)
        except (ValueError, KeyError) as exc:
            raise StoreError(f"{at}: {exc}") from exc
    return graph


def load_dependency_graph(path: Path | str) -> DependencyGraph:
    """Read a dependency graph from a ``.json`` or YAML file.

    Raises:
        StoreError: If the file is missing or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise StoreError(f"Dependency graph file not found: {path}")
    if path.suffix == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"{path}: expected an object at the top level")
    else:
        data = read_yaml(path)
    graph = parse_dependency_graph(data, str(path))
    logger.debug("Loaded dependency graph with %d nodes from %s", graph.node_count, path)
    return graph


# ---------------------------------------------------------------------------
# diffcache.yaml
# ---------------------------------------------------------------------------


def load_diffcache(
    root: Path | str = STORE_DIR,
) -> dict[str, dict[tuple[Version | None, Version], DiffStat]]:
    """Read recorded diff statistics.

    Keys under each package are ``"B"`` (full) or ``"A -> B"`` (delta)::

        diffs:
          left-pad:
            "1.0.0 -> 1.1.0": {insertions: 12, deletions: 3, files_changed: 1}
    """
    data = read_yaml(Path(root) / DIFFCACHE_FILE)
    result: dict[str, dict[tuple[Version | None, Version], DiffStat]] = {}
    diffs = data.get("diffs") or {}
    if not isinstance(diffs, dict):
        raise StoreError(f"{DIFFCACHE_FILE}: 'diffs' must be a mapping")
    for package, deltas in diffs.items():
        where = f"{DIFFCACHE_FILE}: diffs.{package}"
        if not isinstance(deltas, dict):
            raise StoreError(f"{where}: expected a mapping of delta to stats")
        entries: dict[tuple[Version | None, Version], DiffStat] = {}
        for delta, stat in deltas.items():
            start, arrow, end = str(delta).partition("->")
            key = (
                (parse_version(start, where), parse_version(end, where))
                if arrow else (None, parse_version(start, where))
            )
            if not isinstance(stat, dict):
                raise StoreError(f"{where}.{delta}: expected a mapping")
            entries[key] = DiffStat(
                insertions=int(stat.get("insertions", 0)),
                deletions=int(stat.get("deletions", 0)),
                files_changed=int(stat.get("files_changed", 0)),
            )
        result[str(package)] = entries
    return result
