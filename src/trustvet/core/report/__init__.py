"""Report Builder: per-node verdicts and the aggregate pass/fail.

Submodules:
    models   -- FailureReason, VettingStatus, Conclusion, Verdict, AggregateVerdict
    builder  -- ReportBuilder and the top-level ``resolve`` entry point
"""

from trustvet.core.report.models import (
    AggregateVerdict,
    Conclusion,
    CriterionFailure,
    FailureReason,
    Verdict,
    VettingStatus,
)
from trustvet.core.report.builder import ReportBuilder, resolve

__all__ = [
    "AggregateVerdict",
    "Conclusion",
    "CriterionFailure",
    "FailureReason",
    "ReportBuilder",
    "Verdict",
    "VettingStatus",
    "resolve",
]
