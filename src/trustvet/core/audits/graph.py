"""Per-package audit graph.

For one package the audit graph is PAG = (N, E) where:

- **N** = {root} + every version mentioned by a record (plus any versions
  the caller asks about). Node 0 is the virtual *root*: the empty package
  with no code, trivially safe for every criterion.
- **E** = one edge per positive record, labeled with the record's criteria:
  ``FullAudit`` and ``Exemption`` give root -> version, ``DeltaAudit`` gives
  from -> to, and ``TrustedPublisherGrant`` gives root -> v for every node
  v inside its range.

Violations add no edges; the resolver applies them as vetoes.

Nodes live in an arena (a list indexed by int) with adjacency lists, since
the graph is rebuilt wholesale per invocation and never edited in place.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from trustvet.core.audits.records import (
    AuditRecord,
    DeltaAudit,
    Exemption,
    FullAudit,
    TrustedPublisherGrant,
    Violation,
    unhandled_record,
)
from trustvet.core.audits.store import AuditStore
from trustvet.core.audits.versions import Version

ROOT = 0


@dataclass(frozen=True)
class AuditEdge:
    """A labeled edge in a package audit graph.

    Attributes:
        source: Arena index of the source node (``ROOT`` for full audits,
            exemptions and grants).
        target: Arena index of the target node.
        criteria: Criteria the record asserts along this edge.
        record: The record that produced the edge.
    """

    source: int
    target: int
    criteria: frozenset[str]
    record: AuditRecord

    @property
    def is_exemption(self) -> bool:
        return isinstance(self.record, Exemption)


EdgeFilter = Callable[[AuditEdge], bool]


class PackageAuditGraph:
    """Arena-indexed audit graph for a single package.

    Use :meth:`build` rather than the constructor.
    """

    def __init__(
        self,
        package: str,
        nodes: list[Version | None],
        adjacency: list[list[AuditEdge]],
    ) -> None:
        self._package = package
        self._nodes = nodes
        self._adjacency = adjacency
        self._index = {v: i for i, v in enumerate(nodes) if v is not None}

    @classmethod
    def build(
        cls,
        store: AuditStore,
        package: str,
        extra_versions: Iterable[Version] = (),
    ) -> PackageAuditGraph:
        """Materialize the audit graph of *package* from *store*.

        Args:
            store: Source of records.
            package: Package name.
            extra_versions: Versions to include as nodes even when no record
                names them, so that range-based grants can reach them.
        """
        versions = set(store.versions_for(package)) | set(extra_versions)
        nodes: list[Version | None] = [None, *sorted(versions)]
        index = {v: i for i, v in enumerate(nodes) if v is not None}
        adjacency: list[list[AuditEdge]] = [[] for _ in nodes]

        def _add(source: int, target: int, record: AuditRecord) -> None:
            adjacency[source].append(AuditEdge(source, target, record.criteria, record))

        for record in store.records_for(package):
            if isinstance(record, FullAudit):
                _add(ROOT, index[record.version], record)
            elif isinstance(record, DeltaAudit):
                _add(index[record.from_version], index[record.to_version], record)
            elif isinstance(record, Exemption):
                _add(ROOT, index[record.version], record)
            elif isinstance(record, TrustedPublisherGrant):
                for i, version in enumerate(nodes):
                    if version is not None and record.versions.contains(version):
                        _add(ROOT, i, record)
            elif isinstance(record, Violation):
                continue
            else:
                unhandled_record(record)

        return cls(package, nodes, adjacency)

    # -- Structure --------------------------------------------------------------

    @property
    def package(self) -> str:
        return self._package

    @property
    def node_count(self) -> int:
        """Number of nodes, root included."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency)

    @property
    def versions(self) -> list[Version]:
        """Sorted versions in the graph (root excluded)."""
        return [v for v in self._nodes if v is not None]

    def index_of(self, version: Version) -> int | None:
        return self._index.get(version)

    def version_at(self, index: int) -> Version | None:
        """The version stored at *index*; None for the root."""
        return self._nodes[index]

    def out_edges(self, index: int) -> list[AuditEdge]:
        return list(self._adjacency[index])

    def edges(self) -> list[AuditEdge]:
        return [edge for edges in self._adjacency for edge in edges]

    # -- Search ---------------------------------------------------------------------

    def search(
        self,
        labels: frozenset[str],
        edge_filter: EdgeFilter | None = None,
    ) -> dict[int, AuditEdge | None]:
        """Breadth-first search from the root.

        An edge is traversed iff its label shares a criterion with *labels*
        (typically ``CriteriaModel.satisfiers(c)``) and *edge_filter* (if
        given) accepts it. Edges are explored in record order, so the
        resulting tree is deterministic.

        Returns:
            Mapping of every reachable arena index to the edge it was first
            reached through. The root maps to None.
        """
        parents: dict[int, AuditEdge | None] = {ROOT: None}
        queue: deque[int] = deque([ROOT])
        while queue:
            current = queue.popleft()
            for edge in self._adjacency[current]:
                if edge.target in parents or not (edge.criteria & labels):
                    continue
                if edge_filter is not None and not edge_filter(edge):
                    continue
                parents[edge.target] = edge
                queue.append(edge.target)
        return parents

    @staticmethod
    def path_to(parents: dict[int, AuditEdge | None], index: int) -> list[AuditEdge]:
        """Edges from the root to *index* in a :meth:`search` result."""
        path: list[AuditEdge] = []
        edge = parents.get(index)
        while edge is not None:
            path.append(edge)
            edge = parents[edge.source]
        path.reverse()
        return path
