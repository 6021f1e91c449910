"""Resolved dependency graph, per-package policy, and requirement propagation.

Submodules:
    graph        -- DependencyKind, PackageNode, DependencyEdge, DependencyGraph
    policy       -- Policy, PolicyTable
    propagation  -- RequirementPropagator, Requirements

All public names are re-exported here.
"""

from trustvet.core.dependency.graph import (
    DependencyEdge,
    DependencyGraph,
    DependencyKind,
    PackageNode,
)
from trustvet.core.dependency.policy import Policy, PolicyTable
from trustvet.core.dependency.propagation import Requirements, RequirementPropagator

__all__ = [
    "DependencyEdge",
    "DependencyGraph",
    "DependencyKind",
    "PackageNode",
    "Policy",
    "PolicyTable",
    "RequirementPropagator",
    "Requirements",
]
