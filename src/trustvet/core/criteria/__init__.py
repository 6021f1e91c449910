"""Criteria Model: named trust criteria and their implication closure.

All public names are re-exported here so callers can write
``from trustvet.core.criteria import CriteriaModel``.
"""

from trustvet.core.criteria.model import (
    BUILTIN_CRITERIA,
    DEFAULT_CRITERIA,
    SAFE_TO_DEPLOY,
    SAFE_TO_RUN,
    CriteriaModel,
    Criterion,
)

__all__ = [
    "BUILTIN_CRITERIA",
    "DEFAULT_CRITERIA",
    "SAFE_TO_DEPLOY",
    "SAFE_TO_RUN",
    "CriteriaModel",
    "Criterion",
]
