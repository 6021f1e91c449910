"""Suggestion engine: the cheapest audit that closes a gap.

For a failing ``(package@version, criterion)``:

- If a violation vetoes the criterion at that version, nothing can help:
  the result is BLOCKED and carries the violations.
- Otherwise compute the *frontier*, the versions of the package that already
  satisfy the criterion. If it is non-empty, propose a delta audit from the
  cheapest frontier version to the target. Ties go to the highest version.
- If the frontier is empty, propose a full audit of the target for every
  required criterion that is neither already satisfied there nor denied by
  a violation covering it.

Every proposal is checked by adding it to a copy of the store and resolving
again; a proposal that would not make the criterion pass is never returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from trustvet.core.audits import AuditStore, PackageVersion, Version
from trustvet.core.criteria import CriteriaModel
from trustvet.core.report import AggregateVerdict, FailureReason
from trustvet.core.resolver import AuditResolver, ExemptionMode
from trustvet.core.suggest.cost import CostFn, version_distance
from trustvet.core.suggest.models import (
    SuggestedAudit,
    SuggestionResult,
    SuggestionSet,
    SuggestionStatus,
)

logger = logging.getLogger(__name__)


class SuggestionEngine:
    """Propose audits against one store for one invocation.

    Args:
        criteria: The criteria model.
        store: The audit store.
        cost: Cost metric used to rank candidates.
        exemption_mode: Must match the mode the failures were found under.
    """

    def __init__(
        self,
        criteria: CriteriaModel,
        store: AuditStore,
        cost: CostFn = version_distance,
        exemption_mode: ExemptionMode = ExemptionMode.ALLOW,
    ) -> None:
        self._criteria = criteria
        self._store = store
        self._cost = cost
        self._mode = exemption_mode
        self._resolver = AuditResolver(criteria, store, exemption_mode)

    def suggest(
        self,
        node: PackageVersion,
        criterion: str,
        required: Iterable[str] | None = None,
    ) -> SuggestionResult:
        """Suggest an audit making *node* satisfy *criterion*.

        Args:
            node: The failing package version.
            criterion: The unmet criterion.
            required: Everything required of *node*; a full-audit proposal
                covers all of it. Defaults to ``{criterion}``.
        """
        self._criteria.check(criterion)
        package, version = node.package, node.version
        resolution = self._resolver.resolve_criterion(package, version, criterion)
        if resolution.vetoed:
            return SuggestionResult(
                node, criterion, SuggestionStatus.BLOCKED,
                violations=resolution.violations,
                reason="a violation denies this criterion for this version",
            )
        if resolution.satisfied:
            return SuggestionResult(node, criterion, SuggestionStatus.SATISFIED)
        if self._exemption_opted_out(node, criterion):
            return SuggestionResult(
                node, criterion, SuggestionStatus.NO_CANDIDATE,
                reason="an exemption covers this version and is marked suggest: false",
            )

        frontier = [v for v in self._resolver.frontier(package, criterion) if v != version]
        if frontier:
            candidates = sorted(frontier, reverse=True)
            start = min(candidates, key=lambda v: self._cost(package, v, version))
            audit = SuggestedAudit(
                package, start, version,
                frozenset({criterion}),
                self._cost(package, start, version),
            )
        else:
            satisfied = self._resolver.satisfied_criteria(package, version)
            wanted = {
                c for c in set(required or ()) | {criterion}
                if c not in satisfied
                and not self._resolver.blocking_violations(package, version, c)
            }
            audit = SuggestedAudit(
                package, None, version,
                self._criteria.minimize(wanted),
                self._cost(package, None, version),
            )

        if not self._closes_gap(audit, criterion):
            logger.warning("Discarded %s: it would not satisfy %s", audit.describe(), criterion)
            return SuggestionResult(
                node, criterion, SuggestionStatus.NO_CANDIDATE,
                reason="no candidate audit would satisfy this criterion",
            )
        return SuggestionResult(node, criterion, SuggestionStatus.PROPOSED, audit=audit)

    def _exemption_opted_out(self, node: PackageVersion, criterion: str) -> bool:
        satisfiers = self._criteria.satisfiers(criterion)
        covering = [
            e for e in self._store.exemptions_for(node.package, node.version)
            if e.criteria & satisfiers
        ]
        return bool(covering) and not any(e.suggest for e in covering)

    def _closes_gap(self, audit: SuggestedAudit, criterion: str) -> bool:
        hypothetical = self._store.with_records(audit.to_record())
        check = AuditResolver(self._criteria, hypothetical, self._mode)
        return check.resolve_criterion(audit.package, audit.to_version, criterion).satisfied

    def suggest_all(self, report: AggregateVerdict) -> SuggestionSet:
        """Suggest audits for every failing node of *report*.

        Proposals for the same ``(package, from, to)`` are merged, their
        criteria unioned and minimized.
        """
        merged: dict[tuple[str, Version | None, Version], SuggestedAudit] = {}
        blocked: list[SuggestionResult] = []
        unresolved: list[SuggestionResult] = []

        for verdict in report.failing:
            for failure in verdict.failures:
                if failure.reason is FailureReason.VIOLATION:
                    blocked.append(SuggestionResult(
                        verdict.node, failure.criterion, SuggestionStatus.BLOCKED,
                        violations=failure.violations,
                        reason="a violation denies this criterion for this version",
                    ))
                    continue
                result = self.suggest(verdict.node, failure.criterion, verdict.required)
                if result.status is SuggestionStatus.BLOCKED:
                    blocked.append(result)
                elif result.status is SuggestionStatus.NO_CANDIDATE:
                    unresolved.append(result)
                elif result.audit is not None:
                    audit = result.audit
                    key = (audit.package, audit.from_version, audit.to_version)
                    existing = merged.get(key)
                    if existing is not None:
                        audit = SuggestedAudit(
                            audit.package, audit.from_version, audit.to_version,
                            self._criteria.minimize(existing.criteria | audit.criteria),
                            audit.cost,
                        )
                    merged[key] = audit

        audits = sorted(
            merged.values(), key=lambda a: (a.cost, a.package, a.to_version)
        )
        logger.debug("Suggested %d audits", len(audits))
        return SuggestionSet(tuple(audits), tuple(blocked), tuple(unresolved))

    def suggested_criteria(
        self, package: str, from_version: Version | None, to_version: Version
    ) -> frozenset[str]:
        """Criteria a new audit of ``from -> to`` could usefully certify.

        That is: what holds at *from_version* (every criterion for a full
        audit), minus what already holds at *to_version*, minus what a
        violation denies there, minimized.
        """
        if from_version is None:
            base = set(self._criteria.names)
        else:
            base = set(self._resolver.satisfied_criteria(package, from_version))
        base -= self._resolver.satisfied_criteria(package, to_version)
        useful = {
            c for c in base
            if not self._resolver.blocking_violations(package, to_version, c)
        }
        return self._criteria.minimize(useful)


def suggest(
    criteria_model: CriteriaModel,
    audit_store: AuditStore,
    failing_node: PackageVersion,
    criterion: str,
    *,
    required: Iterable[str] | None = None,
    cost: CostFn = version_distance,
    locked: bool = False,
    exemption_mode: ExemptionMode | None = None,
) -> SuggestionResult:
    """Suggest the cheapest audit making *failing_node* satisfy *criterion*."""
    mode = ExemptionMode.NONE if locked else (exemption_mode or ExemptionMode.ALLOW)
    engine = SuggestionEngine(criteria_model, audit_store, cost, mode)
    return engine.suggest(failing_node, criterion, required)


def suggest_all(
    criteria_model: CriteriaModel,
    audit_store: AuditStore,
    report: AggregateVerdict,
    *,
    cost: CostFn = version_distance,
) -> SuggestionSet:
    """Suggest audits for every failing node of *report*."""
    engine = SuggestionEngine(criteria_model, audit_store, cost, report.exemption_mode)
    return engine.suggest_all(report)


def suggested_criteria(
    criteria_model: CriteriaModel,
    audit_store: AuditStore,
    package: str,
    from_version: Version | None,
    to_version: Version,
) -> frozenset[str]:
    """Module-level shortcut for :meth:`SuggestionEngine.suggested_criteria`."""
    engine = SuggestionEngine(criteria_model, audit_store)
    return engine.suggested_criteria(package, from_version, to_version)
