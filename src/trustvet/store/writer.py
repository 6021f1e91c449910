"""Write records back into a store directory.

Output is deterministic: keys are sorted, packages are sorted, and entries
within a package keep their order with new entries appended. Two writes of
the same content produce byte-identical files.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from trustvet.core.audits import DeltaAudit, FullAudit
from trustvet.store.documents import AUDITS_FILE, IMPORTS_LOCK_FILE, read_yaml

logger = logging.getLogger(__name__)


def record_to_entry(record: FullAudit | DeltaAudit) -> dict[str, Any]:
    """Serialize an audit into its ``audits.yaml`` entry."""
    entry: dict[str, Any] = {"criteria": sorted(record.criteria)}
    if isinstance(record, DeltaAudit):
        entry["delta"] = f"{record.from_version} -> {record.to_version}"
    else:
        entry["version"] = str(record.version)
    if record.who:
        entry["who"] = record.who[0] if len(record.who) == 1 else list(record.who)
    if record.notes:
        entry["notes"] = record.notes
    if record.dependency_criteria:
        entry["dependency-criteria"] = {
            dep: sorted(names) for dep, names in record.dependency_criteria
        }
    return entry


def dump_yaml(path: Path, data: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(dict(data), sort_keys=True, default_flow_style=False, allow_unicode=True),
        encoding="utf-8",
    )


def append_audit(root: Path | str, record: FullAudit | DeltaAudit) -> Path:
    """Append *record* to ``audits.yaml`` under its package.

    Returns:
        Path of the file written.

    Raises:
        StoreError: If the existing file cannot be read.
    """
    path = Path(root) / AUDITS_FILE
    data = read_yaml(path)
    audits = data.get("audits") or {}
    audits.setdefault(record.package, []).append(record_to_entry(record))
    data["audits"] = dict(sorted(audits.items()))
    dump_yaml(path, data)
    logger.info("Recorded audit of %s in %s", record.package, path)
    return path


def write_imports_lock(root: Path | str, documents: Mapping[str, Any]) -> Path:
    """Replace ``imports.lock.yaml`` with freshly fetched documents."""
    path = Path(root) / IMPORTS_LOCK_FILE
    dump_yaml(path, dict(sorted(documents.items())))
    logger.info("Wrote %d imports to %s", len(documents), path)
    return path
