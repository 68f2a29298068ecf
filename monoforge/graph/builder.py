"""Workspace graph construction.

``WorkspaceGraphBuilder.build`` is a pure function of a ``ChoiceSet`` and the
template catalog: it creates one node per app and per requested shared
package, resolves every node's template bundles, derives the dependency edges
and checks that the result is a DAG.  Nothing here touches the filesystem.
"""

from __future__ import annotations

from monoforge.catalog import CATEGORY_PRIORITY, TemplateBundle, TemplateCatalog, default_catalog
from monoforge.choices.models import (
    AppChoice,
    AppKind,
    ChoiceSet,
    Layout,
    Orm,
    PackageKind,
)
from monoforge.errors import (
    CyclicDependency,
    IncompatibleTemplate,
    InvalidChoiceSet,
    InvalidEdge,
    UnknownNode,
)

from .models import NodeKind, PackageNode, WorkspaceGraph

# App kinds that consume the shared ``ui`` / ``validation`` packages.
_UI_CONSUMERS = frozenset({AppKind.FRONTEND, AppKind.ADMIN, AppKind.MOBILE})
_VALIDATION_CONSUMERS = frozenset({AppKind.FRONTEND, AppKind.ADMIN, AppKind.BACKEND})


class WorkspaceGraphBuilder:
    """Builds a validated ``WorkspaceGraph`` from a ``ChoiceSet``."""

    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        self.catalog = catalog or default_catalog()

    # -- Public API --------------------------------------------------------

    def build(self, choices: ChoiceSet) -> WorkspaceGraph:
        """Build the workspace graph.

        Raises:
            InvalidChoiceSet: Field combinations that cannot be generated.
            UnknownTemplate / IncompatibleTemplate: Bad template references.
            InvalidEdge: An app declared a dependency on another app.
            UnknownNode: A declared dependency is not part of the workspace.
            CyclicDependency: The package dependencies form a cycle.
        """
        validate_shape(choices)
        standalone = choices.layout is Layout.STANDALONE

        graph = WorkspaceGraph(
            choices=choices,
            config_home=(
                f"packages/{PackageKind.CONFIG.value}"
                if choices.has_package(PackageKind.CONFIG)
                else "config"
            ),
        )

        for app in choices.apps:
            node = PackageNode(
                id=f"apps/{app.name}",
                kind=NodeKind.APP,
                name=app.name,
                path="." if standalone else f"apps/{app.name}",
                app_kind=app.kind,
                app=app,
            )
            node.template_bundle_ids = self._app_bundles(node, app, choices)
            graph.add_node(node)

        for kind in choices.shared_packages:
            node = PackageNode(
                id=f"packages/{kind.value}",
                kind=NodeKind.PACKAGE,
                name=kind.value,
                path=f"packages/{kind.value}",
                package_kind=kind,
            )
            node.template_bundle_ids = self._package_bundles(node, choices)
            graph.add_node(node)

        root_bundles = ["root"] if standalone else ["root", "monorepo-root"]
        graph.root_bundle_ids = [self.catalog.get("workspace", b).id for b in root_bundles]

        # Explicit edges first: app -> app is rejected before cycle detection.
        self._add_declared_edges(graph)
        self._add_derived_edges(graph)
        graph.order = topological_order(graph)
        return graph

    # -- Bundle resolution -------------------------------------------------

    def _resolve(self, category: str, choice: str, node: PackageNode) -> TemplateBundle:
        bundle = self.catalog.get(category, choice, node.id)
        if not bundle.supports(node.target):
            raise IncompatibleTemplate(bundle.id, node.id, node.target)
        return bundle

    def _app_bundles(self, node: PackageNode, app: AppChoice, choices: ChoiceSet) -> list[str]:
        requested: list[tuple[str, str]] = [
            ("workspace", "node"),
            ("framework", app.framework),
        ]
        # Standalone backends carry the ORM themselves (no database package).
        if (
            choices.layout is Layout.STANDALONE
            and app.kind is AppKind.BACKEND
            and choices.orm is not Orm.NONE
        ):
            requested.append(("orm", choices.orm.value))
        if app.styling:
            requested.append(("styling", app.styling))
        if app.styling_override:
            requested.append(("styling-override", app.styling_override))
        if app.state_management:
            requested.append(("state", app.state_management))
        requested.extend(("testing", t) for t in app.testing)
        return self._ordered_ids(node, requested)

    def _package_bundles(self, node: PackageNode, choices: ChoiceSet) -> list[str]:
        assert node.package_kind is not None
        requested: list[tuple[str, str]] = [
            ("workspace", "node"),
            ("package", node.package_kind.value),
        ]
        if node.package_kind is PackageKind.DATABASE and choices.orm is not Orm.NONE:
            requested.append(("orm", choices.orm.value))
        return self._ordered_ids(node, requested)

    def _ordered_ids(self, node: PackageNode, requested: list[tuple[str, str]]) -> list[str]:
        bundles = [self._resolve(category, choice, node) for category, choice in requested]
        # Stable sort keeps declaration order within a category (testing ids).
        bundles.sort(key=lambda b: CATEGORY_PRIORITY.index(b.category))
        _check_scripts(node, bundles)
        return [b.id for b in bundles]

    # -- Edges -------------------------------------------------------------

    def _add_declared_edges(self, graph: WorkspaceGraph) -> None:
        for node in list(graph):
            if node.app is None:
                continue
            for ref in node.app.depends_on:
                target = _resolve_reference(graph, ref)
                if target is None:
                    raise UnknownNode(node.id, ref)
                if graph[target].kind is NodeKind.APP:
                    raise InvalidEdge(node.id, target)
                graph.add_edge(node.id, target)

    def _add_derived_edges(self, graph: WorkspaceGraph) -> None:
        choices = graph.choices
        config_id = graph.package_node(PackageKind.CONFIG)

        for node in list(graph):
            if node.kind is NodeKind.APP:
                assert node.app_kind is not None
                implied = [PackageKind.TYPES, PackageKind.UTILS]
                if node.app_kind in _UI_CONSUMERS:
                    implied.append(PackageKind.UI)
                if node.app_kind in _VALIDATION_CONSUMERS:
                    implied.append(PackageKind.VALIDATION)
                if node.app_kind is AppKind.BACKEND and choices.orm is not Orm.NONE:
                    implied.append(PackageKind.DATABASE)
                for kind in implied:
                    target = graph.package_node(kind)
                    if target:
                        graph.add_edge(node.id, target)

            if config_id and node.id != config_id:
                graph.add_edge(node.id, config_id)

            for bundle_id in node.template_bundle_ids:
                for required in self.catalog.bundle(bundle_id).requires_packages:
                    target = graph.package_node(PackageKind(required))
                    if target and target != node.id:
                        graph.add_edge(node.id, target)


# ---------------------------------------------------------------------------
# Validation and graph algorithms
# ---------------------------------------------------------------------------

def validate_shape(choices: ChoiceSet) -> None:
    """Check field combinations a single-field validator cannot see."""
    has_database = choices.has_package(PackageKind.DATABASE)
    if has_database and choices.orm is Orm.NONE:
        raise InvalidChoiceSet(
            "The 'database' shared package requires an orm (drizzle, prisma, kysely or raw)",
            subject="orm",
        )

    if choices.layout is Layout.STANDALONE:
        if len(choices.apps) != 1:
            raise InvalidChoiceSet(
                f"Standalone layout needs exactly one app, got {len(choices.apps)}",
                subject="apps",
            )
        if choices.shared_packages:
            raise InvalidChoiceSet(
                "Standalone layout cannot have shared packages", subject="shared_packages"
            )
        if choices.orm is not Orm.NONE and choices.apps[0].kind is not AppKind.BACKEND:
            raise InvalidChoiceSet(
                "An orm in standalone layout needs a backend app", subject="orm"
            )
        if choices.apps[0].depends_on:
            raise InvalidChoiceSet(
                "Standalone apps cannot declare workspace dependencies",
                subject=f"apps/{choices.apps[0].name}",
            )
    elif choices.orm is not Orm.NONE and not has_database:
        raise InvalidChoiceSet(
            f"orm '{choices.orm.value}' requires the 'database' shared package in a monorepo",
            subject="shared_packages",
        )


def _resolve_reference(graph: WorkspaceGraph, ref: str) -> str | None:
    """Map a declared dependency (node id or bare name) to a node id."""
    if ref in graph:
        return ref
    for candidate in (f"packages/{ref}", f"apps/{ref}"):
        if candidate in graph:
            return candidate
    return None


def topological_order(graph: WorkspaceGraph) -> list[str]:
    """Kahn's algorithm with ties broken by node insertion order.

    Raises:
        CyclicDependency: Some nodes can never become ready.
    """
    ids = list(graph.nodes)
    pending = {nid: set(graph[nid].depends_on) for nid in ids}
    order: list[str] = []

    while pending:
        ready = next((nid for nid in ids if nid in pending and not pending[nid]), None)
        if ready is None:
            raise CyclicDependency(find_cycle(graph, set(pending)))
        order.append(ready)
        del pending[ready]
        for deps in pending.values():
            deps.discard(ready)

    return order


def find_cycle(graph: WorkspaceGraph, candidates: set[str]) -> list[str]:
    """Return one cycle among *candidates*, rotated to start at its smallest id.

    Start nodes and neighbours are visited in sorted order, so the same graph
    always yields the same cycle.
    """
    visited: set[str] = set()

    def dfs(node_id: str, path: list[str]) -> list[str] | None:
        if node_id in path:
            return path[path.index(node_id):]
        if node_id in visited:
            return None
        visited.add(node_id)
        path.append(node_id)
        for dep in sorted(graph[node_id].depends_on & candidates):
            cycle = dfs(dep, path)
            if cycle:
                return cycle
        path.pop()
        return None

    for start in sorted(candidates):
        cycle = dfs(start, [])
        if cycle:
            pivot = cycle.index(min(cycle))
            return cycle[pivot:] + cycle[:pivot]
    return sorted(candidates)


def _check_scripts(node: PackageNode, bundles: list[TemplateBundle]) -> None:
    """Two bundles may not define the same npm script with different commands."""
    owners: dict[str, TemplateBundle] = {}
    for bundle in bundles:
        for script, command in bundle.scripts.items():
            first = owners.setdefault(script, bundle)
            if first is not bundle and first.scripts[script] != command:
                raise IncompatibleTemplate(
                    bundle.id,
                    node.id,
                    node.target,
                    reason=f"its '{script}' script clashes with '{first.id}'",
                )
