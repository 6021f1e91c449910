"""Criterion reachability resolver.

Answers "does ``package@version`` satisfy criterion ``c``?" with a two-step
decision:

1. **Veto.** If any violation for the package covers the version and denies
   a criterion that ``c`` implies (``closure(c) & denied`` is non-empty), the
   answer is no, whatever audits exist. A version that is not safe to run is
   not safe to deploy either, so a violation of ``safe-to-run`` also vetoes
   ``safe-to-deploy``. The converse does not hold: a violation denying only
   ``safe-to-deploy`` leaves ``safe-to-run`` satisfiable.
2. **Reachability.** Otherwise, ``c`` is satisfied iff the version is
   reachable from the audit graph root through edges labeled with some
   criterion implying ``c``.

Each criterion is searched independently: a path valid for ``c1`` says
nothing about ``c2``.

Complexity: O(|criteria| * (|N| + |E|)) per package. Audit graphs are small
(bounded by the review history of one package), so this is never a concern in
practice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from trustvet.core.audits import (
    AuditEdge,
    AuditRecord,
    AuditStore,
    Exemption,
    PackageAuditGraph,
    PackageVersion,
    Version,
    Violation,
)
from trustvet.core.audits.graph import EdgeFilter
from trustvet.core.criteria import CriteriaModel

logger = logging.getLogger(__name__)


class ExemptionMode(Enum):
    """Which exemption edges may satisfy criteria.

    - ``ALLOW``          -- every exemption counts (default).
    - ``CONFIRMED_ONLY`` -- machine-suggested, unconfirmed exemptions are
      ignored ("strict" mode).
    - ``NONE``           -- no exemption counts ("locked" mode): only real
      audits and trusted publisher grants satisfy anything.
    """

    ALLOW = "allow"
    CONFIRMED_ONLY = "confirmed-only"
    NONE = "none"

    @classmethod
    def from_flags(cls, locked: bool = False, strict: bool = False) -> ExemptionMode:
        if locked:
            return cls.NONE
        if strict:
            return cls.CONFIRMED_ONLY
        return cls.ALLOW

    def edge_filter(self) -> EdgeFilter | None:
        if self is ExemptionMode.ALLOW:
            return None
        if self is ExemptionMode.CONFIRMED_ONLY:
            return _exclude_unconfirmed
        return _exclude_exemptions


def _exclude_unconfirmed(edge: AuditEdge) -> bool:
    record = edge.record
    return not (isinstance(record, Exemption) and record.unconfirmed)


def _exclude_exemptions(edge: AuditEdge) -> bool:
    return not edge.is_exemption


@dataclass(frozen=True)
class CriterionResolution:
    """Outcome of resolving one criterion for one version.

    Attributes:
        criterion: The criterion that was checked.
        satisfied: Whether the version satisfies it.
        violations: Violations vetoing the criterion (non-empty implies
            ``satisfied`` is False).
        path: Records along the audit path from root to the version, when
            satisfied. Empty otherwise.
    """

    criterion: str
    satisfied: bool
    violations: tuple[Violation, ...] = ()
    path: tuple[AuditRecord, ...] = ()

    @property
    def vetoed(self) -> bool:
        return bool(self.violations)

    @property
    def uses_exemption(self) -> bool:
        return any(isinstance(r, Exemption) for r in self.path)


def _check_version(version: object) -> Version:
    if not isinstance(version, Version):
        raise ValueError(
            f"Expected a concrete Version, got {version!r} "
            "(the audit graph root is not a queryable version)"
        )
    return version


class AuditResolver:
    """Invocation-scoped reachability resolver with memoization.

    Construct one per invocation and discard it afterwards. The resolver
    caches per-package audit graphs and per-version satisfied sets; the
    inputs must not change while it is alive.

    Args:
        criteria: The criteria model.
        store: The audit store.
        exemption_mode: Which exemptions may satisfy criteria.
    """

    def __init__(
        self,
        criteria: CriteriaModel,
        store: AuditStore,
        exemption_mode: ExemptionMode = ExemptionMode.ALLOW,
    ) -> None:
        self._criteria = criteria
        self._store = store
        self._mode = exemption_mode
        self._filter = exemption_mode.edge_filter()
        self._graphs: dict[str, PackageAuditGraph] = {}
        self._satisfied: dict[tuple[str, Version], frozenset[str]] = {}

    @property
    def criteria(self) -> CriteriaModel:
        return self._criteria

    @property
    def store(self) -> AuditStore:
        return self._store

    @property
    def exemption_mode(self) -> ExemptionMode:
        return self._mode

    # -- Graphs ---------------------------------------------------------------

    def graph_for(self, package: str, version: Version | None = None) -> PackageAuditGraph:
        """Return the audit graph for *package*, containing *version* as a node.

        The graph is rebuilt when a new version is requested. Adding a node
        that no record names only adds grant edges into it, so previously
        computed answers for other versions stay valid.
        """
        graph = self._graphs.get(package)
        if graph is None or (version is not None and graph.index_of(version) is None):
            extra = set(graph.versions) if graph is not None else set()
            if version is not None:
                extra.add(version)
            graph = PackageAuditGraph.build(self._store, package, extra)
            self._graphs[package] = graph
            logger.debug(
                "Built audit graph for %s: %d nodes, %d edges",
                package, graph.node_count, graph.edge_count,
            )
        return graph

    # -- Single criterion -------------------------------------------------------

    def blocking_violations(
        self, package: str, version: Version, criterion: str
    ) -> tuple[Violation, ...]:
        """Violations covering *version* that deny something *criterion* implies."""
        implied = self._criteria.closure(criterion)
        return tuple(
            v for v in self._store.violations_for(package)
            if v.versions.contains(version) and v.criteria & implied
        )

    def resolve_criterion(
        self, package: str, version: Version, criterion: str
    ) -> CriterionResolution:
        """Resolve one criterion, returning the veto list or the audit path."""
        version = _check_version(version)
        violations = self.blocking_violations(package, version, criterion)
        if violations:
            return CriterionResolution(criterion, False, violations=violations)
        graph = self.graph_for(package, version)
        parents = graph.search(self._criteria.satisfiers(criterion), self._filter)
        index = graph.index_of(version)
        if index is None or index not in parents:
            return CriterionResolution(criterion, False)
        path = tuple(e.record for e in graph.path_to(parents, index))
        return CriterionResolution(criterion, True, path=path)

    def satisfies(self, package: str, version: Version, criterion: str) -> bool:
        """Return True if ``package@version`` satisfies *criterion*."""
        self._criteria.check(criterion)
        return criterion in self.satisfied_criteria(package, version)

    # -- Batch --------------------------------------------------------------------

    def satisfied_criteria(self, package: str, version: Version) -> frozenset[str]:
        """Every criterion ``package@version`` satisfies (memoized)."""
        version = _check_version(version)
        key = (package, version)
        cached = self._satisfied.get(key)
        if cached is not None:
            return cached
        result = self._compute_satisfied(self.graph_for(package, version), version)
        self._satisfied[key] = result
        return result

    def _compute_satisfied(self, graph: PackageAuditGraph, version: Version) -> frozenset[str]:
        satisfied: set[str] = set()
        index = graph.index_of(version)
        for criterion in self._criteria.names:
            if self.blocking_violations(graph.package, version, criterion):
                continue
            parents = graph.search(self._criteria.satisfiers(criterion), self._filter)
            if index is not None and index in parents:
                satisfied.add(criterion)
        return frozenset(satisfied)

    def frontier(self, package: str, criterion: str) -> list[Version]:
        """Sorted versions of *package* known to satisfy *criterion*."""
        graph = self.graph_for(package)
        return [
            v for v in graph.versions
            if self.resolve_criterion(package, v, criterion).satisfied
        ]

    def prime(self, nodes: Iterable[PackageVersion], max_workers: int = 1) -> None:
        """Precompute satisfied sets for *nodes*, one task per package.

        Packages are independent read-only views of the store, so with
        ``max_workers > 1`` they are resolved on a thread pool. Results are
        merged into the cache on the calling thread.
        """
        by_package: dict[str, set[Version]] = defaultdict(set)
        for node in nodes:
            by_package[node.package].add(_check_version(node.version))
        pending = {
            pkg: vers for pkg, vers in by_package.items()
            if any((pkg, v) not in self._satisfied for v in vers)
        }
        if not pending:
            return

        def _work(package: str) -> tuple[PackageAuditGraph, dict[Version, frozenset[str]]]:
            known = self._graphs.get(package)
            extra = set(pending[package]) | (set(known.versions) if known else set())
            graph = PackageAuditGraph.build(self._store, package, extra)
            return graph, {v: self._compute_satisfied(graph, v) for v in pending[package]}

        packages = sorted(pending)
        if max_workers > 1 and len(packages) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(_work, packages))
        else:
            results = [_work(p) for p in packages]

        for package, (graph, satisfied) in zip(packages, results):
            self._graphs[package] = graph
            for version, criteria in satisfied.items():
                self._satisfied.setdefault((package, version), criteria)
        logger.debug("Primed %d packages (%d workers)", len(packages), max_workers)
