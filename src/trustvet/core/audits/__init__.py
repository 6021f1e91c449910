"""Audit Store and per-package audit graphs.

Submodules:
    versions -- Version, VersionRange, PackageVersion
    records  -- the five audit record variants and record validation
    store    -- AuditStore (validated, package-indexed, immutable)
    graph    -- PackageAuditGraph (arena of versions plus a virtual root)
"""

from trustvet.core.audits.versions import PackageVersion, Version, VersionRange
from trustvet.core.audits.records import (
    AuditRecord,
    DeltaAudit,
    Exemption,
    FullAudit,
    RecordKind,
    TrustedPublisherGrant,
    Violation,
    DependencyCriteria,
    dependency_criteria,
    dependency_criteria_of,
    describe,
    unhandled_record,
    validate_record,
)
from trustvet.core.audits.store import AuditStore, RejectedRecord, ViolationConflict
from trustvet.core.audits.graph import ROOT, AuditEdge, PackageAuditGraph

__all__ = [
    "ROOT",
    "AuditEdge",
    "AuditRecord",
    "AuditStore",
    "DeltaAudit",
    "DependencyCriteria",
    "Exemption",
    "FullAudit",
    "PackageAuditGraph",
    "PackageVersion",
    "RecordKind",
    "RejectedRecord",
    "TrustedPublisherGrant",
    "Version",
    "VersionRange",
    "Violation",
    "ViolationConflict",
    "dependency_criteria",
    "dependency_criteria_of",
    "describe",
    "unhandled_record",
    "validate_record",
]
