"""Report data models: per-node verdicts and the aggregate verdict.

These are pure data holders. A failing vet is expressed entirely through
these values; nothing here raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from trustvet.core.audits import (
    PackageVersion,
    RejectedRecord,
    Violation,
    ViolationConflict,
    describe,
)
from trustvet.core.resolver import ExemptionMode


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FailureReason(Enum):
    """Why a required criterion is not satisfied."""

    VIOLATION = "violation"
    EXEMPTION_EXCLUDED = "exemption-excluded"
    NO_AUDIT_PATH = "no-audit-path"

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self]


_REASON_MESSAGES = {
    FailureReason.VIOLATION: "violation present",
    FailureReason.EXEMPTION_EXCLUDED: "exemption present but excluded by strict/locked mode",
    FailureReason.NO_AUDIT_PATH: "no path to any satisfying audit",
}


class VettingStatus(Enum):
    """How a node came to pass, or that it did not."""

    FULLY = "fully"
    PARTIALLY = "partially"
    WITH_EXEMPTIONS = "with-exemptions"
    UNVETTED = "unvetted"


class Conclusion(Enum):
    """Overall outcome of a vet."""

    SUCCESS = "success"
    FAIL_VIOLATION = "fail (violation)"
    FAIL_VETTING = "fail (vetting)"


# ---------------------------------------------------------------------------
# Verdict: one node
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CriterionFailure:
    """One unmet required criterion and its reason."""

    criterion: str
    reason: FailureReason
    violations: tuple[Violation, ...] = ()


@dataclass(frozen=True)
class Verdict:
    """Verdict for one third-party ``package@version``.

    Attributes:
        node: The package version judged.
        required: Criteria required of it by propagation.
        satisfied: Every criterion it satisfies (may exceed ``required``).
        failures: One entry per unmet required criterion, sorted by name.
        status: Vetting classification.
    """

    node: PackageVersion
    required: frozenset[str]
    satisfied: frozenset[str]
    failures: tuple[CriterionFailure, ...] = ()
    status: VettingStatus = VettingStatus.FULLY

    @property
    def unmet(self) -> frozenset[str]:
        return self.required - self.satisfied

    @property
    def violations(self) -> tuple[Violation, ...]:
        seen: list[Violation] = []
        for failure in self.failures:
            for violation in failure.violations:
                if violation not in seen:
                    seen.append(violation)
        return tuple(seen)

    @property
    def passed(self) -> bool:
        return not self.unmet and not self.violations

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.node.package,
            "version": str(self.node.version),
            "required": sorted(self.required),
            "satisfied": sorted(self.satisfied),
            "unmet": sorted(self.unmet),
            "passed": self.passed,
            "status": self.status.value,
            "failures": [
                {
                    "criterion": f.criterion,
                    "reason": f.reason.value,
                    "violations": [
                        {
                            "versions": str(v.versions),
                            "criteria": sorted(v.criteria),
                            "who": list(v.who),
                            "notes": v.notes,
                        }
                        for v in f.violations
                    ],
                }
                for f in self.failures
            ],
        }


# ---------------------------------------------------------------------------
# AggregateVerdict: the whole graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregateVerdict:
    """Verdicts for every node plus store-level findings.

    Attributes:
        verdicts: One verdict per third-party node, sorted by node.
        first_party: First-party nodes (trusted, not judged).
        conflicts: Positive claims contradicting violations, limited to
            packages in the graph.
        rejected: Records the store refused while loading.
        exemption_mode: The mode the resolution ran under.
    """

    verdicts: tuple[Verdict, ...]
    first_party: tuple[PackageVersion, ...] = ()
    conflicts: tuple[ViolationConflict, ...] = ()
    rejected: tuple[RejectedRecord, ...] = ()
    exemption_mode: ExemptionMode = ExemptionMode.ALLOW

    @property
    def failing(self) -> list[Verdict]:
        return [v for v in self.verdicts if not v.passed]

    @property
    def all_nodes_pass(self) -> bool:
        return all(v.passed for v in self.verdicts)

    @property
    def conclusion(self) -> Conclusion:
        failing = self.failing
        if self.conflicts or any(v.violations for v in failing):
            return Conclusion.FAIL_VIOLATION
        if failing:
            return Conclusion.FAIL_VETTING
        return Conclusion.SUCCESS

    @property
    def passed(self) -> bool:
        return self.conclusion is Conclusion.SUCCESS

    def get(self, node: PackageVersion) -> Verdict | None:
        for verdict in self.verdicts:
            if verdict.node == node:
                return verdict
        return None

    def count(self, status: VettingStatus) -> int:
        return sum(1 for v in self.verdicts if v.passed and v.status is status)

    def summary(self) -> dict[str, Any]:
        return {
            "conclusion": self.conclusion.value,
            "total": len(self.verdicts),
            "failing": len(self.failing),
            "vetted_fully": self.count(VettingStatus.FULLY),
            "vetted_partially": self.count(VettingStatus.PARTIALLY),
            "vetted_with_exemptions": self.count(VettingStatus.WITH_EXEMPTIONS),
            "conflicts": len(self.conflicts),
            "rejected_records": len(self.rejected),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary(),
            "exemption_mode": self.exemption_mode.value,
            "first_party": [str(n) for n in self.first_party],
            "verdicts": [v.to_dict() for v in self.verdicts],
            "conflicts": [c.describe() for c in self.conflicts],
            "rejected": [
                {"package": r.package, "record": describe(r.record), "reason": r.reason}
                for r in self.rejected
            ],
        }
