"""trustvet exception hierarchy.

All public exceptions inherit from TrustVetError, giving callers a single
base class to catch when they want to handle any trustvet-specific failure
without swallowing unrelated errors.

A failing vet is *not* an exception: unmet criteria and violations are
reported as values in the aggregate verdict. Exceptions are reserved for
inputs that make the verdict meaningless.
"""

from __future__ import annotations

from collections.abc import Sequence


class TrustVetError(Exception):
    """Base exception for all trustvet errors."""


class ConfigurationError(TrustVetError):
    """Raised when the criteria, policy, or dependency graph is unusable.

    Configuration errors are fatal and are reported before any resolution
    runs, since every verdict computed from a broken configuration would be
    meaningless.
    """


class CriteriaCycleError(ConfigurationError):
    """Raised when the criteria implication graph contains a cycle.

    Attributes:
        cycle: Criteria names forming the cycle, first name repeated last
            (e.g. ``["a", "b", "a"]``).
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            "Criteria implication cycle: " + " -> ".join(self.cycle)
        )


class UnknownCriterionError(ConfigurationError):
    """Raised when configuration names a criterion that is not defined.

    Attributes:
        name: The undefined criterion name.
        valid_names: Sorted list of the criteria that do exist.
        context: Where the name was found (e.g. ``"policy for my-app"``).
    """

    def __init__(
        self, name: str, valid_names: Sequence[str], context: str = ""
    ) -> None:
        self.name = name
        self.valid_names = sorted(valid_names)
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(
            f"Unknown criterion {name!r}{where} "
            f"(valid: {', '.join(self.valid_names)})"
        )


class DependencyCycleError(ConfigurationError):
    """Raised when the resolved dependency graph is not acyclic.

    Attributes:
        cycle: ``package@version`` labels forming the cycle.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            "Dependency graph contains a cycle: " + " -> ".join(self.cycle)
        )


class AuditRecordError(TrustVetError):
    """Raised when a single audit record is internally inconsistent.

    Covers deltas whose endpoints are equal, records filed under the wrong
    package, empty criteria sets, and references to undefined criteria. The
    audit store catches this per record and keeps going.
    """


class StoreError(TrustVetError):
    """Raised when store files are missing, unreadable, or malformed.

    Covers YAML syntax errors, entries of the wrong shape, and invalid
    version strings in ``audits.yaml``, ``config.yaml`` and friends.
    """


class ImportFetchError(TrustVetError):
    """Raised when a foreign audits file cannot be fetched or decoded."""
