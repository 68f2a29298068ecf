"""Workspace graph -- nodes, dependency edges and config chains.

Key classes:
    WorkspaceGraphBuilder      - ChoiceSet -> validated WorkspaceGraph
    ConfigInheritanceResolver  - fills per-node config chains, freezes the graph
"""

from .builder import WorkspaceGraphBuilder, find_cycle, topological_order, validate_shape
from .models import GraphFrozenError, NodeKind, PackageNode, WorkspaceGraph
from .resolver import ConfigInheritanceResolver, relative_path

__all__ = [
    "ConfigInheritanceResolver",
    "GraphFrozenError",
    "NodeKind",
    "PackageNode",
    "WorkspaceGraph",
    "WorkspaceGraphBuilder",
    "find_cycle",
    "relative_path",
    "topological_order",
    "validate_shape",
]
