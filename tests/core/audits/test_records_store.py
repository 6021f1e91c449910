"""Tests for audit records and the AuditStore.

Validates:
- Record descriptions and the unhandled-kind guard
- Per-record validation (package, empty criteria, unknown names, self-deltas)
- Store indexing, individual rejection, and hypothetical extension
- Detection of positive claims that contradict violations
"""

from __future__ import annotations

import logging

import pytest

from trustvet.core.audits import (
    AuditStore,
    DeltaAudit,
    Exemption,
    FullAudit,
    RecordKind,
    TrustedPublisherGrant,
    Version,
    VersionRange,
    Violation,
    dependency_criteria,
    dependency_criteria_of,
    describe,
    unhandled_record,
    validate_record,
)
from trustvet.core.criteria import SAFE_TO_DEPLOY, SAFE_TO_RUN, CriteriaModel
from trustvet.exceptions import AuditRecordError

DEPLOY = frozenset({SAFE_TO_DEPLOY})
RUN = frozenset({SAFE_TO_RUN})


def _v(text: str) -> Version:
    return Version.parse(text)


def _full(version: str, criteria=DEPLOY, package: str = "left-pad") -> FullAudit:
    return FullAudit(package, _v(version), frozenset(criteria))


def _violation(versions: str, criteria=DEPLOY, package: str = "left-pad") -> Violation:
    return Violation(package, VersionRange(versions), frozenset(criteria))


# ===========================================================================
# Records
# ===========================================================================


class TestRecords:

    def test_describe_each_kind(self) -> None:
        assert describe(_full("1.0.0")) == "full audit of 1.0.0"
        assert describe(
            DeltaAudit("left-pad", _v("1.0.0"), _v("1.1.0"), DEPLOY)
        ) == "delta audit 1.0.0 -> 1.1.0"
        assert describe(
            Exemption("left-pad", _v("1.0.0"), DEPLOY, unconfirmed=True)
        ) == "unconfirmed exemption for 1.0.0"
        assert describe(
            TrustedPublisherGrant("left-pad", VersionRange("*"), DEPLOY, "alice")
        ) == "trusted publisher alice for *"
        assert describe(_violation(">=2.0.0")) == "violation for >=2.0.0"

    def test_kinds(self) -> None:
        assert _full("1.0.0").kind is RecordKind.FULL
        assert _violation("*").kind is RecordKind.VIOLATION

    def test_unhandled_record(self) -> None:
        with pytest.raises(TypeError, match="str"):
            unhandled_record("not a record")

    def test_describe_rejects_unknown_type(self) -> None:
        with pytest.raises(TypeError):
            describe(object())  # type: ignore[arg-type]


class TestValidateRecord:

    def test_valid(self, criteria: CriteriaModel) -> None:
        validate_record(_full("1.0.0"), "left-pad", criteria)

    def test_wrong_package(self, criteria: CriteriaModel) -> None:
        with pytest.raises(AuditRecordError, match="filed under"):
            validate_record(_full("1.0.0"), "right-pad", criteria)

    def test_empty_criteria(self, criteria: CriteriaModel) -> None:
        with pytest.raises(AuditRecordError, match="no criteria"):
            validate_record(_full("1.0.0", criteria=()), "left-pad", criteria)

    def test_unknown_criterion(self, criteria: CriteriaModel) -> None:
        with pytest.raises(AuditRecordError, match="safe-to-dance"):
            validate_record(_full("1.0.0", {"safe-to-dance"}), "left-pad", criteria)

    def test_self_delta(self, criteria: CriteriaModel) -> None:
        record = DeltaAudit("left-pad", _v("1.0.0"), _v("1.0.0"), DEPLOY)
        with pytest.raises(AuditRecordError, match="identical"):
            validate_record(record, "left-pad", criteria)

    def test_unknown_dependency_criterion(self, criteria: CriteriaModel) -> None:
        record = Exemption(
            "openssl", _v("1.0.0"), DEPLOY,
            dependency_criteria=dependency_criteria({"cc": {"safe-to-dance"}}),
        )
        with pytest.raises(AuditRecordError, match="dependency 'cc': safe-to-dance"):
            validate_record(record, "openssl", criteria)

    def test_dependency_criteria_of(self) -> None:
        overrides = dependency_criteria({"zlib": [SAFE_TO_RUN], "cc": ()})
        record = DeltaAudit(
            "openssl", _v("1.0.0"), _v("1.1.0"), DEPLOY, dependency_criteria=overrides,
        )
        assert overrides == (("cc", frozenset()), ("zlib", RUN))
        assert dependency_criteria_of(record) == {"cc": frozenset(), "zlib": RUN}
        assert dependency_criteria_of(_violation("*")) == {}


# ===========================================================================
# AuditStore
# ===========================================================================


class TestAuditStore:

    def test_indexes_by_package(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [
            _full("1.0.0"),
            _full("2.0.0", package="is-even"),
            DeltaAudit("left-pad", _v("1.0.0"), _v("1.1.0"), DEPLOY),
        ])
        assert store.packages == ["is-even", "left-pad"]
        assert len(store) == 3
        assert [r.kind for r in store.records_for("left-pad")] == [
            RecordKind.FULL, RecordKind.DELTA,
        ]
        assert store.records_for("unknown") == ()

    def test_versions_for(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [
            DeltaAudit("left-pad", _v("1.0.0"), _v("1.1.0"), DEPLOY),
            _full("1.0.0"),
            _violation(">=2.0.0"),
        ])
        assert store.versions_for("left-pad") == [_v("1.0.0"), _v("1.1.0")]

    def test_rejects_individually(self, criteria: CriteriaModel, caplog) -> None:
        good = _full("1.0.0")
        bad = _full("1.1.0", {"safe-to-dance"})
        with caplog.at_level(logging.WARNING, logger="trustvet.core.audits.store"):
            store = AuditStore(criteria, {"left-pad": [good, bad]})
        assert store.records_for("left-pad") == (good,)
        assert len(store.rejected) == 1
        assert store.rejected[0].record is bad
        assert "unknown criteria" in store.rejected[0].reason
        assert "Rejected record" in caplog.text

    def test_misfiled_record_rejected(self, criteria: CriteriaModel) -> None:
        store = AuditStore(criteria, {"right-pad": [_full("1.0.0")]})
        assert store.packages == []
        assert store.rejected[0].package == "right-pad"

    def test_violation_and_exemption_queries(self, criteria: CriteriaModel) -> None:
        exemption = Exemption("left-pad", _v("1.0.0"), DEPLOY)
        violation = _violation(">=2.0.0")
        store = AuditStore.from_records(criteria, [exemption, violation, _full("1.0.0")])
        assert store.violations_for("left-pad") == (violation,)
        assert store.exemptions_for("left-pad", _v("1.0.0")) == (exemption,)
        assert store.exemptions_for("left-pad", _v("1.1.0")) == ()

    def test_with_records_is_non_destructive(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [_full("1.0.0")])
        extended = store.with_records(_full("2.0.0"), _full("1.0.0", package="is-even"))
        assert len(store) == 1
        assert len(extended) == 3
        assert extended.packages == ["is-even", "left-pad"]


class TestViolationConflicts:

    def test_full_audit_inside_violation(self, criteria: CriteriaModel, caplog) -> None:
        store = AuditStore.from_records(criteria, [
            _full("1.5.0"), _violation(">=1.1.0, <2.0.0"),
        ])
        conflicts = store.violation_conflicts()
        assert len(conflicts) == 1
        assert conflicts[0].version == _v("1.5.0")
        assert "denies safe-to-deploy" in conflicts[0].describe()

    def test_deploy_claim_contradicts_run_violation(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [_full("1.5.0"), _violation("*", RUN)])
        assert len(store.violation_conflicts()) == 1

    def test_run_claim_does_not_contradict_deploy_violation(
        self, criteria: CriteriaModel
    ) -> None:
        store = AuditStore.from_records(criteria, [_full("1.5.0", RUN), _violation("*")])
        assert store.violation_conflicts() == []

    def test_outside_range(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [_full("1.0.0"), _violation(">=1.1.0")])
        assert store.violation_conflicts() == []

    def test_delta_target_checked(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [
            DeltaAudit("left-pad", _v("1.0.0"), _v("1.1.0"), DEPLOY),
            _violation("=1.1.0"),
        ])
        assert [c.version for c in store.violation_conflicts()] == [_v("1.1.0")]

    def test_restricted_to_packages(self, criteria: CriteriaModel) -> None:
        store = AuditStore.from_records(criteria, [_full("1.5.0"), _violation("*")])
        assert store.violation_conflicts(["is-even"]) == []
        assert len(store.violation_conflicts(["left-pad"])) == 1
