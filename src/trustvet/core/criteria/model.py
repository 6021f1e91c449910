"""Criteria implication model.

A criterion is a named trust property ("safe-to-deploy"). Criteria form a
directed acyclic implication graph: satisfying ``safe-to-deploy`` implies
satisfying ``safe-to-run``. The model closes the implication relation
transitively at load time so that every later query is a set lookup.

Two built-in criteria are always present and may not be redefined:

- ``safe-to-deploy`` -- implies ``safe-to-run``.
- ``safe-to-run``    -- the "run tier" that build and dev dependencies are
  downgraded to during requirement propagation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from trustvet.exceptions import (
    ConfigurationError,
    CriteriaCycleError,
    UnknownCriterionError,
)

logger = logging.getLogger(__name__)

SAFE_TO_DEPLOY = "safe-to-deploy"
SAFE_TO_RUN = "safe-to-run"
DEFAULT_CRITERIA = SAFE_TO_DEPLOY


# ---------------------------------------------------------------------------
# Criterion: one named trust property
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Criterion:
    """A named trust criterion.

    Attributes:
        name: Identifier used in audits and policies.
        description: Human-readable summary of what is checked.
        description_url: Alternative to ``description``: a public URL holding
            the criterion text, shared across repositories.
        implies: Names of the criteria this one *directly* implies.
    """

    name: str
    description: str = ""
    description_url: str | None = None
    implies: frozenset[str] = field(default_factory=frozenset)


BUILTIN_CRITERIA: dict[str, Criterion] = {
    SAFE_TO_DEPLOY: Criterion(
        name=SAFE_TO_DEPLOY,
        description=(
            "This package will not introduce a serious security vulnerability "
            "to production software exposed to untrusted input."
        ),
        implies=frozenset({SAFE_TO_RUN}),
    ),
    SAFE_TO_RUN: Criterion(
        name=SAFE_TO_RUN,
        description=(
            "This package can be built, run, and tested on a local workstation "
            "or in controlled automation without surprising consequences."
        ),
    ),
}


# ---------------------------------------------------------------------------
# CriteriaModel: the closed implication graph
# ---------------------------------------------------------------------------


class CriteriaModel:
    """Immutable criteria set with a transitively closed implication relation.

    For every criterion ``c`` the model stores:

    - ``closure(c)``: every criterion ``c`` implies, including ``c`` itself.
    - ``satisfiers(c)``: every criterion that implies ``c``, including ``c``.
      An audit edge labeled with any of these can serve a search for ``c``.

    Args:
        criteria: Custom criteria to add to the built-ins.

    Raises:
        ConfigurationError: If a custom criterion shadows a built-in one.
        UnknownCriterionError: If an ``implies`` entry names an undefined
            criterion.
        CriteriaCycleError: If the implication graph contains a cycle.
    """

    def __init__(self, criteria: Iterable[Criterion] = ()) -> None:
        entries: dict[str, Criterion] = dict(BUILTIN_CRITERIA)
        for criterion in criteria:
            if criterion.name in BUILTIN_CRITERIA:
                raise ConfigurationError(
                    f"Criterion {criterion.name!r} shadows a built-in criterion"
                )
            if criterion.name in entries:
                raise ConfigurationError(
                    f"Criterion {criterion.name!r} is defined twice"
                )
            entries[criterion.name] = criterion

        for criterion in entries.values():
            for implied in criterion.implies:
                if implied not in entries:
                    raise UnknownCriterionError(
                        implied, entries, context=f"implies of {criterion.name!r}"
                    )

        _check_acyclic(entries)

        self._entries = entries
        self._closure: dict[str, frozenset[str]] = {}
        for name in sorted(entries):
            self._closure[name] = _closure_of(entries, name)
        satisfiers: dict[str, set[str]] = {name: set() for name in entries}
        for name, implied in self._closure.items():
            for target in implied:
                satisfiers[target].add(name)
        self._satisfiers = {k: frozenset(v) for k, v in satisfiers.items()}
        logger.debug("Loaded %d criteria", len(entries))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, object]]) -> CriteriaModel:
        """Build a model from ``{name: {"description": ..., "implies": [...]}}``."""
        criteria = []
        for name, entry in mapping.items():
            implies = entry.get("implies", ())
            if isinstance(implies, str):
                implies = [implies]
            criteria.append(
                Criterion(
                    name=name,
                    description=str(entry.get("description") or ""),
                    description_url=entry.get("description_url"),  # type: ignore[arg-type]
                    implies=frozenset(implies),  # type: ignore[arg-type]
                )
            )
        return cls(criteria)

    # -- Queries --------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        """Sorted names of every known criterion, built-ins included."""
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> Criterion:
        self.check(name)
        return self._entries[name]

    def custom_criteria(self) -> list[Criterion]:
        """Return the non-built-in criteria sorted by name."""
        return [
            self._entries[n] for n in self.names if n not in BUILTIN_CRITERIA
        ]

    def check(self, name: str, context: str = "") -> None:
        """Raise UnknownCriterionError if *name* is not defined."""
        if name not in self._entries:
            raise UnknownCriterionError(name, self._entries, context=context)

    def closure(self, name: str) -> frozenset[str]:
        """Every criterion implied by *name*, including *name* itself."""
        self.check(name)
        return self._closure[name]

    def satisfiers(self, name: str) -> frozenset[str]:
        """Every criterion that implies *name*, including *name* itself."""
        self.check(name)
        return self._satisfiers[name]

    def implies(self, stronger: str, weaker: str) -> bool:
        """Return True if satisfying *stronger* implies satisfying *weaker*."""
        return weaker in self.closure(stronger)

    def expand(self, criteria: Iterable[str]) -> frozenset[str]:
        """Union of the closures of *criteria*."""
        result: set[str] = set()
        for name in criteria:
            result |= self.closure(name)
        return frozenset(result)

    def minimize(self, criteria: Iterable[str]) -> frozenset[str]:
        """Drop every criterion already implied by another member of the set."""
        names = set(criteria)
        return frozenset(
            c for c in names
            if not any(o != c and c in self.closure(o) for o in names)
        )

    def downgrade_to_run_tier(self, criteria: Iterable[str]) -> frozenset[str]:
        """Translate requirements across a build or dev dependency edge.

        Every criterion that implies ``safe-to-run`` becomes ``safe-to-run``.
        Criteria with no run/deploy tiering pass through unchanged.
        """
        return frozenset(
            SAFE_TO_RUN if SAFE_TO_RUN in self.closure(c) else c
            for c in criteria
        )


def _check_acyclic(entries: Mapping[str, Criterion]) -> None:
    """Reject implication cycles using DFS coloring.

    Raises:
        CriteriaCycleError: On the first back edge found.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    color = {name: WHITE for name in entries}
    stack: list[str] = []

    def _dfs(u: str) -> None:
        color[u] = GRAY
        stack.append(u)
        for v in sorted(entries[u].implies):
            if color[v] == GRAY:
                raise CriteriaCycleError(stack[stack.index(v):] + [v])
            if color[v] == WHITE:
                _dfs(v)
        stack.pop()
        color[u] = BLACK

    for name in sorted(entries):
        if color[name] == WHITE:
            _dfs(name)


def _closure_of(entries: Mapping[str, Criterion], name: str) -> frozenset[str]:
    result = {name}
    pending = [name]
    while pending:
        for implied in entries[pending.pop()].implies:
            if implied not in result:
                result.add(implied)
                pending.append(implied)
    return frozenset(result)
