"""Config inheritance resolution.

Every node gets one chain per config category (compiler, lint, format): the
category's single base config followed by at most one override contributed
by the node's facets.  Two facets overriding the same category is a
``ConfigConflict``; the resolver never picks one on its own.

The resolver is also the only place that knows where config files live (the
"config home"), so nodes can extend their chain through relative paths
without knowing the layout.
"""

from __future__ import annotations

import posixpath

from monoforge.catalog import ConfigCategory, ConfigEntry, TemplateCatalog, default_catalog
from monoforge.errors import ConfigConflict, MissingBaseConfig

from .models import WorkspaceGraph


class ConfigInheritanceResolver:
    """Computes ``config_chain`` for every node and freezes the graph."""

    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        self.catalog = catalog or default_catalog()

    def resolve(self, graph: WorkspaceGraph) -> WorkspaceGraph:
        """Annotate every node with its config chains, then freeze the graph.

        Raises:
            MissingBaseConfig: A category has no base config, or an override
                points at a config id the catalog does not define.
            ConfigConflict: Two facets of one node override the same category.
        """
        bases: dict[ConfigCategory, ConfigEntry] = {}
        for category in ConfigCategory:
            base = self.catalog.base_config(category)
            if base is None:
                raise MissingBaseConfig(category.value)
            bases[category] = base

        for node in graph:
            for category in ConfigCategory:
                contributions: list[tuple[str, str]] = []
                for bundle_id in node.facets:
                    bundle = self.catalog.bundle(bundle_id)
                    override = bundle.config_overrides.get(category)
                    if override:
                        contributions.append((bundle.facet, override))

                if len(contributions) > 1:
                    raise ConfigConflict(node.id, category.value, [facet for facet, _ in contributions])

                chain = [bases[category].id]
                for _, config_id in contributions:
                    entry = self.catalog.config_entry(config_id)
                    if entry is None or entry.category is not category or entry.base:
                        raise MissingBaseConfig(category.value, config_id, node.id)
                    chain.append(config_id)
                graph.set_config_chain(node.id, category, chain)

        graph.freeze()
        return graph

    # -- Path helpers ------------------------------------------------------

    def config_file(self, graph: WorkspaceGraph, config_id: str) -> str:
        """Workspace-relative path of a config chain link."""
        entry = self.catalog.config_entry(config_id)
        if entry is None:
            raise MissingBaseConfig(config_id.partition(":")[0], config_id)
        return posixpath.join(graph.config_home, entry.path)

    def relative_extends(
        self, graph: WorkspaceGraph, node_id: str, category: ConfigCategory
    ) -> list[str]:
        """Chain links of *node_id* as paths relative to the node's directory,
        most general first."""
        node = graph[node_id]
        return [
            relative_path(node.path, self.config_file(graph, config_id))
            for config_id in node.config_chain.get(category, ())
        ]

    def referenced_configs(self, graph: WorkspaceGraph) -> list[ConfigEntry]:
        """Config entries any node's chain uses, in catalog order."""
        used = {cid for node in graph for chain in node.config_chain.values() for cid in chain}
        return [entry for entry in self.catalog.config_entries() if entry.id in used]


def relative_path(from_dir: str, to_path: str) -> str:
    """POSIX path from directory *from_dir* to *to_path*, always explicit.

    ``relative_path("apps/web", "packages/config/base.json")`` returns
    ``"../../packages/config/base.json"``; paths inside the directory get a
    ``./`` prefix so JS module specifiers resolve them as files.
    """
    rel = posixpath.relpath(to_path, start=from_dir or ".")
    if not rel.startswith("../") and rel != "..":
        rel = f"./{rel}"
    return rel
