"""In-memory audit store.

The store indexes validated audit records by package and is immutable for
the duration of an invocation. Bad records do not abort loading: each one is
rejected individually (with a reason) so that a single typo in a large audit
database cannot hide every other finding.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from trustvet.core.audits.records import (
    AuditRecord,
    DeltaAudit,
    Exemption,
    FullAudit,
    TrustedPublisherGrant,
    Violation,
    claimed_versions,
    describe,
    unhandled_record,
    validate_record,
)
from trustvet.core.audits.versions import Version
from trustvet.core.criteria import CriteriaModel
from trustvet.exceptions import AuditRecordError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectedRecord:
    """A record the store refused to index, and why."""

    package: str
    record: AuditRecord
    reason: str


@dataclass(frozen=True)
class ViolationConflict:
    """A positive claim that contradicts a violation in the same store.

    Attributes:
        violation: The violation being contradicted.
        record: The audit or exemption claiming a denied criterion.
        version: The version both records talk about.
    """

    violation: Violation
    record: AuditRecord
    version: Version

    def describe(self) -> str:
        return (
            f"{self.violation.package}@{self.version}: {describe(self.record)} "
            f"claims {', '.join(sorted(self.record.criteria))} but "
            f"{describe(self.violation)} denies "
            f"{', '.join(sorted(self.violation.criteria))}"
        )


class AuditStore:
    """Validated audit records indexed by package name.

    Example::

        store = AuditStore(criteria, {
            "left-pad": [FullAudit("left-pad", Version.parse("1.0.0"),
                                   frozenset({"safe-to-deploy"}))],
        })
        store.records_for("left-pad")

    Args:
        criteria: Criteria model used to validate record criteria.
        records: Mapping of package name to that package's records, in
            file order.
    """

    def __init__(
        self,
        criteria: CriteriaModel,
        records: Mapping[str, Iterable[AuditRecord]] | None = None,
    ) -> None:
        self._criteria = criteria
        self._records: dict[str, tuple[AuditRecord, ...]] = {}
        self._rejected: list[RejectedRecord] = []

        for package in sorted(records or {}):
            accepted: list[AuditRecord] = []
            for record in (records or {})[package]:
                try:
                    validate_record(record, package, criteria)
                except AuditRecordError as exc:
                    logger.warning("Rejected record for %s: %s", package, exc)
                    self._rejected.append(RejectedRecord(package, record, str(exc)))
                    continue
                accepted.append(record)
            if accepted:
                self._records[package] = tuple(accepted)

    @classmethod
    def from_records(
        cls, criteria: CriteriaModel, records: Iterable[AuditRecord]
    ) -> AuditStore:
        """Build a store from a flat record list, grouping by package."""
        grouped: dict[str, list[AuditRecord]] = defaultdict(list)
        for record in records:
            grouped[record.package].append(record)
        return cls(criteria, grouped)

    # -- Queries ----------------------------------------------------------------

    @property
    def criteria(self) -> CriteriaModel:
        return self._criteria

    @property
    def packages(self) -> list[str]:
        """Sorted names of packages with at least one accepted record."""
        return sorted(self._records)

    @property
    def rejected(self) -> list[RejectedRecord]:
        """Records refused during loading, in load order."""
        return list(self._rejected)

    def records_for(self, package: str) -> tuple[AuditRecord, ...]:
        """All accepted records for *package*, in original order."""
        return self._records.get(package, ())

    def violations_for(self, package: str) -> tuple[Violation, ...]:
        return tuple(r for r in self.records_for(package) if isinstance(r, Violation))

    def exemptions_for(self, package: str, version: Version) -> tuple[Exemption, ...]:
        return tuple(
            r for r in self.records_for(package)
            if isinstance(r, Exemption) and r.version == version
        )

    def versions_for(self, package: str) -> list[Version]:
        """Sorted concrete versions mentioned by any record for *package*."""
        versions: set[Version] = set()
        for record in self.records_for(package):
            versions.update(claimed_versions(record))
        return sorted(versions)

    def __len__(self) -> int:
        return sum(len(r) for r in self._records.values())

    # -- Derivation ---------------------------------------------------------------

    def with_records(self, *records: AuditRecord) -> AuditStore:
        """Return a new store holding these records plus *records*.

        The receiver is not modified; used for hypothetical what-if checks.
        """
        merged: dict[str, list[AuditRecord]] = {
            pkg: list(recs) for pkg, recs in self._records.items()
        }
        for record in records:
            merged.setdefault(record.package, []).append(record)
        return AuditStore(self._criteria, merged)

    def violation_conflicts(
        self, packages: Iterable[str] | None = None
    ) -> list[ViolationConflict]:
        """Find positive claims that imply a criterion a violation denies.

        Only records naming concrete versions are checked; trusted publisher
        grants are range-based and are vetoed at resolution time instead.

        Args:
            packages: Restrict the search to these packages (default: all).
        """
        conflicts: list[ViolationConflict] = []
        for package in sorted(set(packages) if packages is not None else self._records):
            violations = self.violations_for(package)
            if not violations:
                continue
            for record in self.records_for(package):
                if isinstance(record, FullAudit):
                    versions: tuple[Version, ...] = (record.version,)
                elif isinstance(record, DeltaAudit):
                    versions = (record.to_version,)
                elif isinstance(record, Exemption):
                    versions = (record.version,)
                elif isinstance(record, (TrustedPublisherGrant, Violation)):
                    continue
                else:
                    unhandled_record(record)
                claimed = self._criteria.expand(record.criteria)
                for violation in violations:
                    if not claimed & violation.criteria:
                        continue
                    for version in versions:
                        if violation.versions.contains(version):
                            conflicts.append(ViolationConflict(violation, record, version))
        return conflicts
