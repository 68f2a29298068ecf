"""Workspace graph data model.

A ``WorkspaceGraph`` is built once per run from a ``ChoiceSet``, annotated by
the config resolver, frozen, and then consumed by the file tree writer.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional

from monoforge.catalog.bundles import ConfigCategory
from monoforge.choices.models import AppChoice, AppKind, ChoiceSet, PackageKind


class NodeKind(str, Enum):
    APP = "app"
    PACKAGE = "package"


class GraphFrozenError(RuntimeError):
    """Raised when a frozen graph is mutated."""


@dataclass
class PackageNode:
    """One workspace member (an app under ``apps/`` or a shared package).

    Nodes are purely structural: they know their id and relative path, but
    never how config files are laid out on disk (the resolver and writer
    compute relative paths from the graph).
    """

    id: str
    kind: NodeKind
    name: str
    path: str
    app_kind: Optional[AppKind] = None
    package_kind: Optional[PackageKind] = None
    app: Optional[AppChoice] = None
    depends_on: set[str] = field(default_factory=set)
    template_bundle_ids: list[str] = field(default_factory=list)
    config_chain: dict[ConfigCategory, list[str]] = field(default_factory=dict)

    @property
    def target(self) -> str:
        """Kind string matched against bundle targets (``backend``, ``package:ui``)."""
        if self.kind is NodeKind.APP:
            assert self.app_kind is not None
            return self.app_kind.value
        assert self.package_kind is not None
        return f"package:{self.package_kind.value}"

    @property
    def facets(self) -> list[str]:
        """Bundle ids that can contribute config overrides (all but ``workspace:*``)."""
        return [b for b in self.template_bundle_ids if not b.startswith("workspace:")]

    @property
    def is_config_package(self) -> bool:
        return self.package_kind is PackageKind.CONFIG


@dataclass
class WorkspaceGraph:
    """DAG of app/package nodes for one generation run.

    ``nodes`` keeps insertion order (apps, then packages, each in ChoiceSet
    declaration order); ``order`` is a topological order in which every node
    comes after all of its dependencies.
    """

    choices: ChoiceSet
    nodes: dict[str, PackageNode] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    root_bundle_ids: list[str] = field(default_factory=list)
    config_home: str = "config"
    _frozen: bool = field(default=False, repr=False)

    # -- Construction ----------------------------------------------------------

    def add_node(self, node: PackageNode) -> PackageNode:
        self._check_mutable()
        if node.id in self.nodes:
            raise ValueError(f"Duplicate node id '{node.id}'")
        self.nodes[node.id] = node
        return node

    def add_edge(self, source: str, target: str) -> None:
        self._check_mutable()
        self.nodes[source].depends_on.add(target)

    def set_config_chain(self, node_id: str, category: ConfigCategory, chain: list[str]) -> None:
        self._check_mutable()
        self.nodes[node_id].config_chain[category] = list(chain)

    def freeze(self) -> None:
        """Make the graph read-only; called once config chains are resolved."""
        for node in self.nodes.values():
            node.depends_on = frozenset(node.depends_on)  # type: ignore[assignment]
            node.config_chain = MappingProxyType(  # type: ignore[assignment]
                {cat: tuple(chain) for cat, chain in node.config_chain.items()}
            )
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("WorkspaceGraph is frozen after config resolution")

    # -- Queries ---------------------------------------------------------------

    def __iter__(self) -> Iterator[PackageNode]:
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __getitem__(self, node_id: str) -> PackageNode:
        return self.nodes[node_id]

    @property
    def scope(self) -> str:
        return f"@{self.choices.project_name}"

    def package_name(self, node_id: str) -> str:
        """npm package name of a node, e.g. ``@acme/types``."""
        return f"{self.scope}/{self.nodes[node_id].name}"

    def dependencies(self, node_id: str) -> list[str]:
        """Direct dependencies of *node_id*, in graph insertion order."""
        deps = self.nodes[node_id].depends_on
        return [nid for nid in self.nodes if nid in deps]

    def transitive_dependencies(self, node_id: str) -> set[str]:
        seen: set[str] = set()
        stack = list(self.nodes[node_id].depends_on)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.nodes[current].depends_on)
        return seen

    def package_node(self, kind: PackageKind) -> str | None:
        """Id of the shared package node of *kind*, if it was requested."""
        node_id = f"packages/{kind.value}"
        return node_id if node_id in self.nodes else None

    def levels(self) -> list[list[str]]:
        """Group nodes into dependency levels.

        Level 0 holds nodes without dependencies; every other node sits one
        level above its deepest dependency.  Nodes in the same level never
        depend on each other, directly or transitively.
        """
        order = self.order or list(self.nodes)
        depth: dict[str, int] = {}
        for node_id in order:
            deps = self.nodes[node_id].depends_on
            depth[node_id] = 1 + max((depth[d] for d in deps), default=-1)

        levels: list[list[str]] = []
        for node_id in order:
            level = depth[node_id]
            while len(levels) <= level:
                levels.append([])
            levels[level].append(node_id)
        return levels
