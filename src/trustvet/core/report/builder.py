"""Report builder: joins required sets with satisfied sets.

The builder runs, in order:

1. Policy validation against the criteria model (fatal on unknown names).
2. Resolution of every third-party node, optionally primed on a thread pool.
3. Requirement propagation over the dependency graph (fatal on cycles),
   honoring dependency criteria on the audits that vet each parent.
4. Failure explanation and vetting classification per node.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from trustvet.core.audits import AuditStore, Exemption, PackageVersion
from trustvet.core.criteria import CriteriaModel
from trustvet.core.dependency import DependencyGraph, Policy, PolicyTable, RequirementPropagator
from trustvet.core.report.models import (
    AggregateVerdict,
    CriterionFailure,
    FailureReason,
    Verdict,
    VettingStatus,
)
from trustvet.core.resolver import AuditResolver, ExemptionMode

logger = logging.getLogger(__name__)


class ReportBuilder:
    """Build an :class:`AggregateVerdict` for one invocation.

    Args:
        criteria: The criteria model.
        store: The audit store.
        policy: Policies of the first-party packages.
        exemption_mode: Which exemptions may satisfy criteria.
        max_workers: Thread pool size for per-package resolution.
    """

    def __init__(
        self,
        criteria: CriteriaModel,
        store: AuditStore,
        policy: PolicyTable,
        exemption_mode: ExemptionMode = ExemptionMode.ALLOW,
        max_workers: int = 1,
    ) -> None:
        self._criteria = criteria
        self._store = store
        self._policy = policy
        self._mode = exemption_mode
        self._max_workers = max_workers
        self._resolver = AuditResolver(criteria, store, exemption_mode)
        self._lenient: AuditResolver | None = None
        self._audited: AuditResolver | None = None

    @property
    def resolver(self) -> AuditResolver:
        return self._resolver

    def _with_mode(self, mode: ExemptionMode) -> AuditResolver:
        if mode is self._mode:
            return self._resolver
        if mode is ExemptionMode.ALLOW:
            if self._lenient is None:
                self._lenient = AuditResolver(self._criteria, self._store, mode)
            return self._lenient
        if self._audited is None:
            self._audited = AuditResolver(self._criteria, self._store, mode)
        return self._audited

    def build(self, graph: DependencyGraph) -> AggregateVerdict:
        """Resolve every node of *graph*.

        Raises:
            UnknownCriterionError: If a policy names an undefined criterion.
            DependencyCycleError: If *graph* contains a cycle.
        """
        self._policy.validate(self._criteria, graph)
        third_party = [n.id for n in graph.nodes if not n.first_party]
        self._resolver.prime(third_party, self._max_workers)
        requirements = RequirementPropagator(
            self._criteria, self._policy, self._resolver
        ).propagate(graph)
        verdicts = tuple(
            self.verdict_for(node, requirements.for_node(node)) for node in third_party
        )
        conflicts = self._store.violation_conflicts(graph.packages)
        for conflict in conflicts:
            logger.warning("Audit conflicts with violation: %s", conflict.describe())

        report = AggregateVerdict(
            verdicts=verdicts,
            first_party=tuple(n.id for n in graph.first_party),
            conflicts=tuple(conflicts),
            rejected=tuple(self._store.rejected),
            exemption_mode=self._mode,
        )
        logger.info(
            "Vetted %d packages: %s", len(verdicts), report.conclusion.value
        )
        return report

    def verdict_for(self, node: PackageVersion, required: frozenset[str]) -> Verdict:
        """Judge one node against its required criteria."""
        satisfied = self._resolver.satisfied_criteria(node.package, node.version)
        failures = tuple(
            self._explain(node, criterion) for criterion in sorted(required - satisfied)
        )
        status = VettingStatus.UNVETTED if failures else self._classify(node, required)
        return Verdict(node, required, satisfied, failures, status)

    def _explain(self, node: PackageVersion, criterion: str) -> CriterionFailure:
        resolution = self._resolver.resolve_criterion(node.package, node.version, criterion)
        if resolution.vetoed:
            return CriterionFailure(criterion, FailureReason.VIOLATION, resolution.violations)
        if self._mode is not ExemptionMode.ALLOW:
            lenient = self._with_mode(ExemptionMode.ALLOW)
            if lenient.satisfies(node.package, node.version, criterion):
                return CriterionFailure(criterion, FailureReason.EXEMPTION_EXCLUDED)
        return CriterionFailure(criterion, FailureReason.NO_AUDIT_PATH)

    def _classify(self, node: PackageVersion, required: frozenset[str]) -> VettingStatus:
        if not required:
            return VettingStatus.FULLY
        audited = self._with_mode(ExemptionMode.NONE)
        if required <= audited.satisfied_criteria(node.package, node.version):
            return VettingStatus.FULLY
        paths = [
            self._resolver.resolve_criterion(node.package, node.version, c).path
            for c in sorted(required)
        ]
        if all(len(p) == 1 and isinstance(p[0], Exemption) for p in paths):
            return VettingStatus.WITH_EXEMPTIONS
        return VettingStatus.PARTIALLY


def resolve(
    criteria_model: CriteriaModel,
    audit_store: AuditStore,
    dependency_graph: DependencyGraph,
    policy: PolicyTable | Mapping[str, Policy] | None = None,
    *,
    locked: bool = False,
    exemption_mode: ExemptionMode | None = None,
    max_workers: int = 1,
) -> AggregateVerdict:
    """Vet *dependency_graph* against *audit_store*.

    Args:
        criteria_model: The criteria model.
        audit_store: The audit store.
        dependency_graph: The resolved dependency graph.
        policy: A :class:`PolicyTable`, a mapping of package name to
            :class:`Policy`, or None for all defaults.
        locked: Exclude every exemption. Shorthand for
            ``exemption_mode=ExemptionMode.NONE``; wins over *exemption_mode*.
        exemption_mode: Which exemptions may satisfy criteria.
        max_workers: Thread pool size for per-package resolution.

    Returns:
        The aggregate verdict. Failing packages are reported, not raised.

    Raises:
        ConfigurationError: On unknown policy criteria or a dependency cycle.
    """
    if not isinstance(policy, PolicyTable):
        policy = PolicyTable(policy)
    if locked:
        mode = ExemptionMode.NONE
    else:
        mode = exemption_mode or ExemptionMode.ALLOW
    builder = ReportBuilder(
        criteria_model, audit_store, policy, exemption_mode=mode, max_workers=max_workers
    )
    return builder.build(dependency_graph)
