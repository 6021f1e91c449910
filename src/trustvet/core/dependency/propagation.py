"""Dependency requirement propagation.

Computes R(N), the set of criteria required of every third-party node N, by
walking the dependency graph dependents-first:

- A first-party parent transmits what its policy requires for the edge.
- A third-party parent transmits R(parent) over a *normal* edge, and
  ``downgrade_to_run_tier(R(parent))`` over a *build* or *dev* edge: code
  that only runs at build or test time need only be safe to run.
- When the audit records that satisfy criterion ``c`` for a third-party
  parent carry ``dependency_criteria`` naming the child, the child owes the
  listed criteria in place of ``c``, whatever the edge kind.

Transmitted sets are unioned into the child. Because every parent precedes
its children in the topological order, a node's set is final by the time it
is itself processed.

Monotonicity: for a fixed audit store, adding an edge or raising a policy
can only grow required sets, never shrink them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from trustvet.core.audits import AuditRecord, PackageVersion, dependency_criteria_of
from trustvet.core.criteria import CriteriaModel
from trustvet.core.dependency.graph import DependencyGraph, DependencyKind
from trustvet.core.dependency.policy import PolicyTable
from trustvet.core.resolver import AuditResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Requirements:
    """Result of one propagation pass.

    Attributes:
        required: R(N) for every node. First-party nodes map to an empty set.
        sources: For every node, which parent contributed which criteria.
        order: The dependents-first order the nodes were processed in.
    """

    required: dict[PackageVersion, frozenset[str]]
    sources: dict[PackageVersion, dict[PackageVersion, frozenset[str]]]
    order: tuple[PackageVersion, ...]

    def for_node(self, node: PackageVersion) -> frozenset[str]:
        return self.required.get(node, frozenset())


class RequirementPropagator:
    """Derive per-node required criteria from policies and edge kinds.

    Args:
        criteria: The criteria model, used for edge-kind downgrades.
        policy: Policies of the first-party packages.
        resolver: Resolver used to find the records behind a third-party
            parent's criteria. Without one, per-audit dependency criteria
            are ignored.
    """

    def __init__(
        self,
        criteria: CriteriaModel,
        policy: PolicyTable,
        resolver: AuditResolver | None = None,
    ) -> None:
        self._criteria = criteria
        self._policy = policy
        self._resolver = resolver
        self._paths: dict[tuple[PackageVersion, str], tuple[AuditRecord, ...]] = {}

    def transmitted(
        self,
        graph: DependencyGraph,
        parent: PackageVersion,
        child: PackageVersion,
        kind: DependencyKind,
        parent_required: frozenset[str],
    ) -> frozenset[str]:
        """Criteria the edge ``parent -> child`` places on *child*."""
        node = graph.get_node(parent)
        if node is not None and node.first_party:
            return self._policy.required_of(parent.package, child.package, kind)
        sent: set[str] = set()
        passed: set[str] = set()
        for criterion in parent_required:
            override = self._audited_criteria(parent, criterion, child.package)
            if override is None:
                passed.add(criterion)
            else:
                sent |= override
        if kind.is_run_tier:
            return frozenset(sent | self._criteria.downgrade_to_run_tier(passed))
        return frozenset(sent | passed)

    def _audited_criteria(
        self, parent: PackageVersion, criterion: str, dependency: str
    ) -> frozenset[str] | None:
        """What the records satisfying *criterion* for *parent* ask of *dependency*.

        Returns None when no record on the path mentions *dependency*.
        """
        if self._resolver is None:
            return None
        key = (parent, criterion)
        if key not in self._paths:
            self._paths[key] = self._resolver.resolve_criterion(
                parent.package, parent.version, criterion
            ).path
        found: frozenset[str] | None = None
        for record in self._paths[key]:
            names = dependency_criteria_of(record).get(dependency)
            if names is not None:
                found = names if found is None else found | names
        return found

    def propagate(self, graph: DependencyGraph) -> Requirements:
        """Compute required sets for every node of *graph*.

        Raises:
            DependencyCycleError: If *graph* is not acyclic.
        """
        order = graph.topological_order()
        required: dict[PackageVersion, set[str]] = {key: set() for key in order}
        sources: dict[PackageVersion, dict[PackageVersion, frozenset[str]]] = {
            key: {} for key in order
        }

        for parent in order:
            node = graph.get_node(parent)
            parent_required = frozenset(required[parent])
            for edge in graph.dependencies(parent):
                child_node = graph.get_node(edge.child)
                if child_node is not None and child_node.first_party:
                    continue
                sent = self.transmitted(
                    graph, parent, edge.child, edge.kind, parent_required
                )
                if not sent:
                    continue
                required[edge.child] |= sent
                previous = sources[edge.child].get(parent, frozenset())
                sources[edge.child][parent] = previous | sent
            if node is not None and not node.first_party and not graph.dependents(parent):
                logger.debug("%s has no dependents; nothing is required of it", parent)

        logger.debug("Propagated requirements over %d nodes", len(order))
        return Requirements(
            required={key: frozenset(value) for key, value in required.items()},
            sources=sources,
            order=tuple(order),
        )
