"""Per-package vetting policy.

A policy belongs to a first-party (top-level) package and decides which
criteria its direct dependencies must meet:

- ``criteria``            -- required of normal dependencies
  (default: the store's default criteria, normally ``safe-to-deploy``).
- ``dev_criteria``        -- required of build and dev dependencies
  (default: ``safe-to-run``).
- ``dependency_criteria`` -- per-dependency-name override that replaces
  both of the above for that dependency.

Third-party packages never carry a policy: what they require of their own
dependencies is derived from what is required of them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from trustvet.core.criteria import DEFAULT_CRITERIA, SAFE_TO_RUN, CriteriaModel
from trustvet.core.dependency.graph import DependencyGraph, DependencyKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    """Vetting policy of one first-party package.

    Attributes:
        criteria: Criteria for normal dependencies, or None for the default.
        dev_criteria: Criteria for build/dev dependencies, or None for
            ``safe-to-run``.
        dependency_criteria: Overrides keyed by dependency package name.
        notes: Free-text justification.
    """

    criteria: frozenset[str] | None = None
    dev_criteria: frozenset[str] | None = None
    dependency_criteria: Mapping[str, frozenset[str]] = field(default_factory=dict)
    notes: str | None = None

    def criteria_for(
        self,
        dependency: str,
        kind: DependencyKind,
        default_criteria: str = DEFAULT_CRITERIA,
    ) -> frozenset[str]:
        """Criteria this package requires of *dependency* over a *kind* edge."""
        override = self.dependency_criteria.get(dependency)
        if override is not None:
            return frozenset(override)
        if kind.is_run_tier:
            if self.dev_criteria is not None:
                return self.dev_criteria
            return frozenset({SAFE_TO_RUN})
        if self.criteria is not None:
            return self.criteria
        return frozenset({default_criteria})

    def named_criteria(self) -> set[str]:
        """Every criterion name this policy mentions."""
        names = set(self.criteria or ()) | set(self.dev_criteria or ())
        for override in self.dependency_criteria.values():
            names.update(override)
        return names


class PolicyTable:
    """Policies keyed by first-party package name.

    Args:
        policies: Mapping of package name to its policy. Packages without an
            entry use ``Policy()`` (all defaults).
        default_criteria: Criterion required of normal dependencies when a
            policy does not say otherwise.
    """

    def __init__(
        self,
        policies: Mapping[str, Policy] | None = None,
        default_criteria: str = DEFAULT_CRITERIA,
    ) -> None:
        self._policies = dict(policies or {})
        self._default = default_criteria

    @property
    def default_criteria(self) -> str:
        return self._default

    @property
    def packages(self) -> list[str]:
        return sorted(self._policies)

    def for_package(self, package: str) -> Policy:
        return self._policies.get(package, Policy())

    def required_of(
        self, parent: str, dependency: str, kind: DependencyKind
    ) -> frozenset[str]:
        """Criteria first-party *parent* requires of *dependency*."""
        return self.for_package(parent).criteria_for(dependency, kind, self._default)

    def validate(
        self, criteria: CriteriaModel, graph: DependencyGraph | None = None
    ) -> None:
        """Check every criterion name against *criteria*.

        Policies for packages that are not first-party in *graph* are logged
        and otherwise ignored.

        Raises:
            UnknownCriterionError: If the default or any policy names an
                undefined criterion.
        """
        criteria.check(self._default, context="default-criteria")
        for package in sorted(self._policies):
            for name in sorted(self._policies[package].named_criteria()):
                criteria.check(name, context=f"policy for {package}")

        if graph is None:
            return
        first_party = {node.package for node in graph.first_party}
        for package in sorted(set(self._policies) - first_party):
            logger.warning(
                "Policy for %s ignored: not a first-party package in the graph",
                package,
            )

