"""Resolved dependency graph and graph algorithms.

The dependency graph is DG = (P, E) where P is the set of concrete
``package@version`` nodes that take part in the build and E is the set of
``parent -> child`` edges, each labeled with a dependency kind. The graph is
supplied by the package manager after resolution; trustvet never resolves
version constraints itself.

The graph may contain diamonds (shared dependencies with several parents)
but must be acyclic: propagation relies on a topological order.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from enum import Enum

from trustvet.core.audits import PackageVersion, Version
from trustvet.exceptions import DependencyCycleError

logger = logging.getLogger(__name__)


class DependencyKind(Enum):
    """How a parent depends on a child."""

    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"

    @property
    def is_run_tier(self) -> bool:
        """Build and dev dependencies only ever run on developer machines or CI."""
        return self is not DependencyKind.NORMAL


@dataclass(frozen=True)
class PackageNode:
    """A node in the dependency graph.

    Attributes:
        package: Package name.
        version: Resolved version.
        first_party: True for packages developed in this project. First-party
            packages are implicitly trusted; their outgoing edges are governed
            by policy instead of by what their dependents require.
    """

    package: str
    version: Version
    first_party: bool = False

    @property
    def id(self) -> PackageVersion:
        return PackageVersion(self.package, self.version)


@dataclass(frozen=True)
class DependencyEdge:
    """A directed dependency ``parent -> child`` of a given kind."""

    parent: PackageVersion
    child: PackageVersion
    kind: DependencyKind


class DependencyGraph:
    """The resolved dependency graph of one build.

    Supports:
    - Adding package nodes and kind-labeled dependency edges
    - Querying dependencies and dependents of a node
    - Cycle detection via DFS coloring
    - Dependents-first topological ordering (Kahn's algorithm)

    Thread safety: This class is NOT thread-safe. Build it completely before
    handing it to the engine, which only reads it.
    """

    def __init__(self) -> None:
        self._nodes: dict[PackageVersion, PackageNode] = {}
        self._edges: dict[PackageVersion, list[DependencyEdge]] = defaultdict(list)
        self._reverse: dict[PackageVersion, list[DependencyEdge]] = defaultdict(list)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[PackageNode]:
        """All nodes, sorted by package then version."""
        return [self._nodes[k] for k in sorted(self._nodes)]

    @property
    def first_party(self) -> list[PackageNode]:
        return [n for n in self.nodes if n.first_party]

    @property
    def packages(self) -> set[str]:
        return {key.package for key in self._nodes}

    def add_package(self, node: PackageNode) -> None:
        """Add a node. Re-adding the same ``package@version`` replaces it."""
        self._nodes[node.id] = node

    def add_dependency(
        self,
        parent: PackageVersion,
        child: PackageVersion,
        kind: DependencyKind = DependencyKind.NORMAL,
    ) -> None:
        """Add a ``parent -> child`` edge.

        Raises:
            KeyError: If either endpoint has not been added.
        """
        for end in (parent, child):
            if end not in self._nodes:
                raise KeyError(f"Unknown package node: {end}")
        edge = DependencyEdge(parent, child, kind)
        if edge in self._edges[parent]:
            return
        self._edges[parent].append(edge)
        self._reverse[child].append(edge)

    def get_node(self, key: PackageVersion) -> PackageNode | None:
        return self._nodes.get(key)

    def dependencies(self, key: PackageVersion) -> list[DependencyEdge]:
        """Outgoing edges of *key*, in insertion order."""
        return list(self._edges.get(key, ()))

    def dependents(self, key: PackageVersion) -> list[DependencyEdge]:
        """Incoming edges of *key*, in insertion order."""
        return list(self._reverse.get(key, ()))

    def detect_cycles(self) -> list[list[PackageVersion]]:
        """Detect dependency cycles using DFS coloring.

        Returns:
            A list of cycles, each a list of nodes whose first element is
            repeated at the end. Empty if the graph is acyclic.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {key: WHITE for key in self._nodes}
        cycles: list[list[PackageVersion]] = []
        stack: list[PackageVersion] = []

        def _dfs(u: PackageVersion) -> None:
            color[u] = GRAY
            stack.append(u)
            for edge in self._edges.get(u, ()):
                v = edge.child
                if color[v] == GRAY:
                    cycles.append(stack[stack.index(v):] + [v])
                elif color[v] == WHITE:
                    _dfs(v)
            stack.pop()
            color[u] = BLACK

        for key in sorted(self._nodes):
            if color[key] == WHITE:
                _dfs(key)
        return cycles

    def topological_order(self) -> list[PackageVersion]:
        """Order nodes so every node follows all of its dependents.

        Ties are broken by (package, version) so the order is deterministic.

        Raises:
            DependencyCycleError: If the graph contains a cycle.
        """
        in_degree = {key: len(self._reverse.get(key, ())) for key in self._nodes}
        ready = deque(sorted(k for k, d in in_degree.items() if d == 0))
        order: list[PackageVersion] = []
        while ready:
            current = ready.popleft()
            order.append(current)
            released = []
            for edge in self._edges.get(current, ()):
                in_degree[edge.child] -= 1
                if in_degree[edge.child] == 0:
                    released.append(edge.child)
            ready.extend(sorted(set(released)))

        if len(order) != len(self._nodes):
            cycles = self.detect_cycles()
            cycle = cycles[0] if cycles else sorted(set(self._nodes) - set(order))
            raise DependencyCycleError([str(k) for k in cycle])
        logger.debug("Topological order over %d nodes", len(order))
        return order
