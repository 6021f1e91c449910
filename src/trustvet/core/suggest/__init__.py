"""Suggestion Engine: proposes the cheapest audits that close vetting gaps.

Submodules:
    models  -- SuggestionStatus, SuggestedAudit, SuggestionResult, SuggestionSet
    cost    -- version_distance, DiffStat, DiffStatCost
    engine  -- SuggestionEngine and the ``suggest`` entry points
"""

from trustvet.core.suggest.cost import CostFn, DiffStat, DiffStatCost, version_distance
from trustvet.core.suggest.models import (
    SuggestedAudit,
    SuggestionResult,
    SuggestionSet,
    SuggestionStatus,
)
from trustvet.core.suggest.engine import (
    SuggestionEngine,
    suggest,
    suggest_all,
    suggested_criteria,
)

__all__ = [
    "CostFn",
    "DiffStat",
    "DiffStatCost",
    "SuggestedAudit",
    "SuggestionEngine",
    "SuggestionResult",
    "SuggestionSet",
    "SuggestionStatus",
    "suggest",
    "suggest_all",
    "suggested_criteria",
    "version_distance",
]
