"""Cost metrics for suggested audits.

A cost metric is any callable ``(package, from_version, to_version) -> int``
where ``from_version`` is None for a full audit. Lower is cheaper. The
engine only compares costs, so the unit is up to the metric.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from trustvet.core.audits import Version

CostFn = Callable[[str, "Version | None", Version], int]

_ZERO = Version(0, 0, 0)


def _position(version: Version) -> int:
    return 10000 * version.major + 100 * version.minor + version.patch


def version_distance(
    package: str, from_version: Version | None, to_version: Version
) -> int:
    """Estimate review effort from how far apart two versions are.

    Versions are placed on one line at ``10000 * major + 100 * minor +
    patch`` and the distance is the gap between them, so ``1.9.0 -> 2.0.0``
    is cheaper than ``1.0.0 -> 2.0.0``. Components of 100 or more overlap
    the next field up. A full audit is measured from ``0.0.0``. Differing
    pre-release tags or git revisions add one.
    """
    base = from_version if from_version is not None else _ZERO
    distance = abs(_position(to_version) - _position(base))
    if base.pre != to_version.pre or base.git_rev != to_version.git_rev:
        distance += 1
    return distance


@dataclass(frozen=True)
class DiffStat:
    """Size of a source diff."""

    insertions: int
    deletions: int
    files_changed: int = 0

    @property
    def count(self) -> int:
        return self.insertions + self.deletions

    def __str__(self) -> str:
        text = f"{self.files_changed} files changed"
        if self.insertions:
            text += f", {self.insertions} insertions(+)"
        if self.deletions:
            text += f", {self.deletions} deletions(-)"
        return text


DiffKey = tuple["Version | None", Version]


class DiffStatCost:
    """Cost metric backed by recorded diff statistics.

    Uses ``insertions + deletions`` of the recorded diff for the exact
    ``(from, to)`` pair, and *fallback* when nothing is recorded.

    Args:
        stats: ``{package: {(from_version | None, to_version): DiffStat}}``.
        fallback: Metric for unrecorded pairs.
    """

    def __init__(
        self,
        stats: Mapping[str, Mapping[DiffKey, DiffStat]],
        fallback: CostFn = version_distance,
    ) -> None:
        self._stats = stats
        self._fallback = fallback

    def lookup(
        self, package: str, from_version: Version | None, to_version: Version
    ) -> DiffStat | None:
        return self._stats.get(package, {}).get((from_version, to_version))

    def __call__(
        self, package: str, from_version: Version | None, to_version: Version
    ) -> int:
        stat = self.lookup(package, from_version, to_version)
        if stat is None:
            return self._fallback(package, from_version, to_version)
        return stat.count
