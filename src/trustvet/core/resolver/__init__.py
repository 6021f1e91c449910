"""Criterion Reachability Resolver.

Decides which criteria a package version satisfies by searching its audit
graph, with violations as absolute vetoes.
"""

from trustvet.core.resolver.engine import (
    AuditResolver,
    CriterionResolution,
    ExemptionMode,
)

__all__ = [
    "AuditResolver",
    "CriterionResolution",
    "ExemptionMode",
]
