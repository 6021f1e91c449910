"""Audit record variants.

An audit database is a list of append-only facts per package. Five kinds
exist, and every site that interprets records handles all five explicitly
(falling through to :func:`unhandled_record` otherwise):

- ``FullAudit``             -- a reviewed version satisfies some criteria.
- ``DeltaAudit``            -- the change ``from -> to`` preserves some
  criteria. Directional: it says nothing about ``to -> from``.
- ``Exemption``             -- criteria claimed for a version without review.
- ``TrustedPublisherGrant`` -- criteria granted to a version range because of
  who published it.
- ``Violation``             -- criteria explicitly denied for a version range.

Full audits, delta audits and exemptions may carry ``dependency_criteria``:
the claim holds provided the named dependencies meet the listed criteria
instead of the ones that would otherwise propagate to them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Union

from trustvet.core.audits.versions import Version, VersionRange
from trustvet.core.criteria import CriteriaModel
from trustvet.exceptions import AuditRecordError

DependencyCriteria = tuple[tuple[str, frozenset[str]], ...]


def dependency_criteria(mapping: Mapping[str, object]) -> DependencyCriteria:
    """Normalize ``{dependency: criteria}`` into the hashable sorted form records hold."""
    return tuple(sorted((str(dep), frozenset(names)) for dep, names in mapping.items()))


class RecordKind(Enum):
    """Discriminator for the audit record variants."""

    FULL = "full"
    DELTA = "delta"
    EXEMPTION = "exemption"
    TRUSTED = "trusted"
    VIOLATION = "violation"


@dataclass(frozen=True)
class FullAudit:
    """A direct review of one version.

    Attributes:
        package: Package name.
        version: The reviewed version.
        criteria: Criteria the reviewer certifies.
        who: Reviewer identities.
        notes: Free-text justification.
        aggregated_from: Import sources this record came through, most
            recent last. Empty for local audits.
        dependency_criteria: Per-dependency criteria the claim relies on,
            replacing what would otherwise be required of that dependency.
    """

    package: str
    version: Version
    criteria: frozenset[str]
    who: tuple[str, ...] = ()
    notes: str | None = None
    aggregated_from: tuple[str, ...] = ()
    dependency_criteria: DependencyCriteria = ()

    @property
    def kind(self) -> RecordKind:
        return RecordKind.FULL


@dataclass(frozen=True)
class DeltaAudit:
    """A review of the change between two versions."""

    package: str
    from_version: Version
    to_version: Version
    criteria: frozenset[str]
    who: tuple[str, ...] = ()
    notes: str | None = None
    aggregated_from: tuple[str, ...] = ()
    dependency_criteria: DependencyCriteria = ()

    @property
    def kind(self) -> RecordKind:
        return RecordKind.DELTA


@dataclass(frozen=True)
class Exemption:
    """An unreviewed trust placeholder for one version.

    Attributes:
        unconfirmed: True when the exemption was machine-suggested and no
            person has confirmed it yet.
        suggest: Whether suggestions should still propose replacing this
            exemption with a real audit.
    """

    package: str
    version: Version
    criteria: frozenset[str]
    unconfirmed: bool = False
    suggest: bool = True
    notes: str | None = None
    dependency_criteria: DependencyCriteria = ()

    @property
    def kind(self) -> RecordKind:
        return RecordKind.EXEMPTION


@dataclass(frozen=True)
class TrustedPublisherGrant:
    """Criteria granted to every version in a range by publisher identity."""

    package: str
    versions: VersionRange
    criteria: frozenset[str]
    publisher: str
    notes: str | None = None
    aggregated_from: tuple[str, ...] = ()

    @property
    def kind(self) -> RecordKind:
        return RecordKind.TRUSTED


@dataclass(frozen=True)
class Violation:
    """An absolute denial of criteria for a version range."""

    package: str
    versions: VersionRange
    criteria: frozenset[str]
    who: tuple[str, ...] = ()
    notes: str | None = None
    aggregated_from: tuple[str, ...] = ()

    @property
    def kind(self) -> RecordKind:
        return RecordKind.VIOLATION


AuditRecord = Union[FullAudit, DeltaAudit, Exemption, TrustedPublisherGrant, Violation]


def unhandled_record(record: object) -> NoReturn:
    """Fail loudly on a record kind a call site does not handle."""
    raise TypeError(f"Unhandled audit record type: {type(record).__name__}")


def describe(record: AuditRecord) -> str:
    """One-line human description, e.g. ``"delta audit 1.0.0 -> 1.1.0"``."""
    if isinstance(record, FullAudit):
        return f"full audit of {record.version}"
    elif isinstance(record, DeltaAudit):
        return f"delta audit {record.from_version} -> {record.to_version}"
    elif isinstance(record, Exemption):
        label = "unconfirmed exemption" if record.unconfirmed else "exemption"
        return f"{label} for {record.version}"
    elif isinstance(record, TrustedPublisherGrant):
        return f"trusted publisher {record.publisher} for {record.versions}"
    elif isinstance(record, Violation):
        return f"violation for {record.versions}"
    unhandled_record(record)


def claimed_versions(record: AuditRecord) -> tuple[Version, ...]:
    """Concrete versions a record mentions (ranges mention none)."""
    if isinstance(record, FullAudit):
        return (record.version,)
    elif isinstance(record, DeltaAudit):
        return (record.from_version, record.to_version)
    elif isinstance(record, Exemption):
        return (record.version,)
    elif isinstance(record, (TrustedPublisherGrant, Violation)):
        return ()
    unhandled_record(record)


def dependency_criteria_of(record: AuditRecord) -> dict[str, frozenset[str]]:
    """The ``{dependency: criteria}`` overrides a record relies on."""
    if isinstance(record, (FullAudit, DeltaAudit, Exemption)):
        return dict(record.dependency_criteria)
    elif isinstance(record, (TrustedPublisherGrant, Violation)):
        return {}
    unhandled_record(record)


def validate_record(
    record: AuditRecord, package: str, criteria: CriteriaModel
) -> None:
    """Check one record for internal consistency.

    Args:
        record: The record to check.
        package: The package the record is filed under.
        criteria: Criteria model used to resolve names.

    Raises:
        AuditRecordError: If the record is filed under the wrong package,
            claims no criteria, names an unknown criterion (directly or in
            its dependency criteria), or is a delta between a version and
            itself.
    """
    if not isinstance(
        record, (FullAudit, DeltaAudit, Exemption, TrustedPublisherGrant, Violation)
    ):
        unhandled_record(record)
    if record.package != package:
        raise AuditRecordError(
            f"{describe(record)} names package {record.package!r} "
            f"but is filed under {package!r}"
        )
    if not record.criteria:
        raise AuditRecordError(f"{describe(record)} claims no criteria")
    unknown = sorted(c for c in record.criteria if c not in criteria)
    if unknown:
        raise AuditRecordError(
            f"{describe(record)} names unknown criteria: {', '.join(unknown)}"
        )
    for dependency, names in dependency_criteria_of(record).items():
        unknown = sorted(c for c in names if c not in criteria)
        if unknown:
            raise AuditRecordError(
                f"{describe(record)} names unknown criteria for dependency "
                f"{dependency!r}: {', '.join(unknown)}"
            )
    if isinstance(record, DeltaAudit) and record.from_version == record.to_version:
        raise AuditRecordError(
            f"{describe(record)} has identical endpoints"
        )
