"""Suggestion data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from trustvet.core.audits import DeltaAudit, FullAudit, PackageVersion, Version, Violation


class SuggestionStatus(Enum):
    """Outcome of asking for a suggestion."""

    PROPOSED = "proposed"
    BLOCKED = "blocked"
    NO_CANDIDATE = "no-candidate"
    SATISFIED = "satisfied"


@dataclass(frozen=True)
class SuggestedAudit:
    """An audit that, once recorded, would close a gap.

    Attributes:
        package: Package to review.
        from_version: Start of a delta review, or None for a full review.
        to_version: Version the review ends at.
        criteria: Minimal criteria the review should certify.
        cost: Estimated effort according to the cost metric in use.
    """

    package: str
    from_version: Version | None
    to_version: Version
    criteria: frozenset[str]
    cost: int

    @property
    def is_delta(self) -> bool:
        return self.from_version is not None

    @property
    def delta(self) -> str:
        """``"A -> B"`` for deltas, ``"B"`` for full audits."""
        if self.from_version is None:
            return str(self.to_version)
        return f"{self.from_version} -> {self.to_version}"

    def describe(self) -> str:
        kind = "delta audit" if self.is_delta else "full audit"
        return f"{kind} of {self.package} {self.delta} for {', '.join(sorted(self.criteria))}"

    def to_record(
        self, who: tuple[str, ...] = (), notes: str | None = None
    ) -> FullAudit | DeltaAudit:
        """The record that would be written if the review is performed."""
        if self.from_version is None:
            return FullAudit(self.package, self.to_version, self.criteria, who, notes)
        return DeltaAudit(
            self.package, self.from_version, self.to_version, self.criteria, who, notes
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "from": str(self.from_version) if self.from_version is not None else None,
            "to": str(self.to_version),
            "criteria": sorted(self.criteria),
            "cost": self.cost,
        }


@dataclass(frozen=True)
class SuggestionResult:
    """The answer for one failing (node, criterion) pair.

    Attributes:
        node: The failing package version.
        criterion: The unmet criterion.
        status: Outcome.
        audit: The proposal when ``status`` is PROPOSED.
        violations: The blocking violations when ``status`` is BLOCKED.
        reason: Human-readable explanation for non-proposals.
    """

    node: PackageVersion
    criterion: str
    status: SuggestionStatus
    audit: SuggestedAudit | None = None
    violations: tuple[Violation, ...] = ()
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.node.package,
            "version": str(self.node.version),
            "criterion": self.criterion,
            "status": self.status.value,
            "audit": self.audit.to_dict() if self.audit is not None else None,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class SuggestionSet:
    """Merged suggestions for a whole report.

    Attributes:
        audits: Proposals merged per (package, from, to), cheapest first.
        blocked: Failures no audit can fix because of a violation.
        unresolved: Failures for which no valid candidate exists.
    """

    audits: tuple[SuggestedAudit, ...] = ()
    blocked: tuple[SuggestionResult, ...] = ()
    unresolved: tuple[SuggestionResult, ...] = ()

    @property
    def total_cost(self) -> int:
        return sum(a.cost for a in self.audits)

    def by_criteria(self) -> dict[str, list[SuggestedAudit]]:
        """Proposals grouped under a ``"crit-a, crit-b"`` label."""
        groups: dict[str, list[SuggestedAudit]] = {}
        for audit in self.audits:
            groups.setdefault(", ".join(sorted(audit.criteria)), []).append(audit)
        return dict(sorted(groups.items()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "groups": {
                label: [a.to_dict() for a in audits]
                for label, audits in self.by_criteria().items()
            },
            "blocked": [r.to_dict() for r in self.blocked],
            "unresolved": [r.to_dict() for r in self.unresolved],
        }
