"""Tests for the criteria model.

Validates built-in criteria, transitive implication closure, satisfier
sets, load-time rejection of cycles, unknown names and shadowing, and the
minimize/expand/downgrade helpers.
"""

from __future__ import annotations

import pytest

from trustvet.core.criteria import (
    BUILTIN_CRITERIA,
    SAFE_TO_DEPLOY,
    SAFE_TO_RUN,
    CriteriaModel,
    Criterion,
)
from trustvet.exceptions import (
    ConfigurationError,
    CriteriaCycleError,
    UnknownCriterionError,
)


def _make_criterion(name: str, *implies: str) -> Criterion:
    return Criterion(name=name, description=f"{name} checked", implies=frozenset(implies))


# ===========================================================================
# Built-ins
# ===========================================================================


class TestBuiltins:
    """The two built-in criteria are always present."""

    def test_builtin_names(self, criteria: CriteriaModel) -> None:
        assert criteria.names == [SAFE_TO_DEPLOY, SAFE_TO_RUN]

    def test_deploy_implies_run(self, criteria: CriteriaModel) -> None:
        assert criteria.implies(SAFE_TO_DEPLOY, SAFE_TO_RUN)
        assert not criteria.implies(SAFE_TO_RUN, SAFE_TO_DEPLOY)

    def test_closure_includes_self(self, criteria: CriteriaModel) -> None:
        assert criteria.closure(SAFE_TO_RUN) == {SAFE_TO_RUN}
        assert criteria.closure(SAFE_TO_DEPLOY) == {SAFE_TO_DEPLOY, SAFE_TO_RUN}

    def test_satisfiers(self, criteria: CriteriaModel) -> None:
        """Anything implying safe-to-run can serve a safe-to-run search."""
        assert criteria.satisfiers(SAFE_TO_RUN) == {SAFE_TO_DEPLOY, SAFE_TO_RUN}
        assert criteria.satisfiers(SAFE_TO_DEPLOY) == {SAFE_TO_DEPLOY}

    def test_custom_criteria_excludes_builtins(self, custom_criteria: CriteriaModel) -> None:
        names = [c.name for c in custom_criteria.custom_criteria()]
        assert names == ["crypto-reviewed", "license-ok"]

    def test_builtin_descriptions(self) -> None:
        for criterion in BUILTIN_CRITERIA.values():
            assert criterion.description


# ===========================================================================
# Custom criteria and closure
# ===========================================================================


class TestClosure:
    """Implication is closed transitively at load time."""

    def test_transitive_chain(self) -> None:
        model = CriteriaModel([
            _make_criterion("audited-strict", "audited"),
            _make_criterion("audited", SAFE_TO_DEPLOY),
        ])
        assert model.closure("audited-strict") == {
            "audited-strict", "audited", SAFE_TO_DEPLOY, SAFE_TO_RUN,
        }
        assert "audited-strict" in model.satisfiers(SAFE_TO_RUN)

    def test_diamond_implication(self) -> None:
        model = CriteriaModel([
            _make_criterion("top", "left", "right"),
            _make_criterion("left", SAFE_TO_RUN),
            _make_criterion("right", SAFE_TO_RUN),
        ])
        assert model.closure("top") == {"top", "left", "right", SAFE_TO_RUN}

    def test_contains(self, custom_criteria: CriteriaModel) -> None:
        assert "license-ok" in custom_criteria
        assert "nope" not in custom_criteria

    def test_from_mapping_accepts_string_implies(self) -> None:
        model = CriteriaModel.from_mapping({
            "reviewed": {"description": "Reviewed", "implies": SAFE_TO_DEPLOY},
            "linked": {"description_url": "https://example.com/linked.txt"},
        })
        assert model.implies("reviewed", SAFE_TO_RUN)
        assert model.get("linked").description_url == "https://example.com/linked.txt"


# ===========================================================================
# Load-time errors
# ===========================================================================


class TestConfigurationErrors:
    """Broken criteria tables are rejected before anything runs."""

    def test_two_cycle(self) -> None:
        with pytest.raises(CriteriaCycleError) as excinfo:
            CriteriaModel([_make_criterion("a", "b"), _make_criterion("b", "a")])
        cycle = excinfo.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b"}

    def test_self_cycle(self) -> None:
        with pytest.raises(CriteriaCycleError) as excinfo:
            CriteriaModel([_make_criterion("a", "a")])
        assert excinfo.value.cycle == ["a", "a"]

    def test_cycle_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            CriteriaModel([_make_criterion("a", "b"), _make_criterion("b", "a")])

    def test_unknown_implied(self) -> None:
        with pytest.raises(UnknownCriterionError) as excinfo:
            CriteriaModel([_make_criterion("a", "missing")])
        assert excinfo.value.name == "missing"
        assert "a" in excinfo.value.valid_names

    def test_shadowing_builtin(self) -> None:
        with pytest.raises(ConfigurationError, match="shadows"):
            CriteriaModel([_make_criterion(SAFE_TO_RUN)])

    def test_duplicate(self) -> None:
        with pytest.raises(ConfigurationError, match="twice"):
            CriteriaModel([_make_criterion("a"), _make_criterion("a")])

    def test_check_reports_context(self, criteria: CriteriaModel) -> None:
        with pytest.raises(UnknownCriterionError, match="policy for app"):
            criteria.check("safe-to-dance", context="policy for app")

    def test_closure_of_unknown(self, criteria: CriteriaModel) -> None:
        with pytest.raises(UnknownCriterionError):
            criteria.closure("nope")


# ===========================================================================
# Set helpers
# ===========================================================================


class TestSetHelpers:
    """expand, minimize and the run-tier downgrade."""

    def test_expand(self, custom_criteria: CriteriaModel) -> None:
        assert custom_criteria.expand(["crypto-reviewed", "license-ok"]) == {
            "crypto-reviewed", "license-ok", SAFE_TO_RUN,
        }

    def test_minimize_drops_implied(self, criteria: CriteriaModel) -> None:
        assert criteria.minimize([SAFE_TO_DEPLOY, SAFE_TO_RUN]) == {SAFE_TO_DEPLOY}

    def test_minimize_keeps_independent(self, custom_criteria: CriteriaModel) -> None:
        assert custom_criteria.minimize(["license-ok", SAFE_TO_RUN]) == {
            "license-ok", SAFE_TO_RUN,
        }

    def test_downgrade_deploy(self, criteria: CriteriaModel) -> None:
        assert criteria.downgrade_to_run_tier({SAFE_TO_DEPLOY}) == {SAFE_TO_RUN}

    def test_downgrade_custom_implying_run(self, custom_criteria: CriteriaModel) -> None:
        assert custom_criteria.downgrade_to_run_tier({"crypto-reviewed"}) == {SAFE_TO_RUN}

    def test_downgrade_passes_untiered_through(self, custom_criteria: CriteriaModel) -> None:
        assert custom_criteria.downgrade_to_run_tier({SAFE_TO_DEPLOY, "license-ok"}) == {
            SAFE_TO_RUN, "license-ok",
        }

    def test_downgrade_empty(self, criteria: CriteriaModel) -> None:
        assert criteria.downgrade_to_run_tier(set()) == frozenset()
