"""File tree writer.

Walks a resolved ``WorkspaceGraph`` in dependency order and materializes the
workspace on disk:

1. The root unit first: root files, the workspace manifest and (when there is
   no shared config package) the config chain links under ``config/``.
2. Then one unit per node, level by level.  Nodes in the same level never
   depend on each other and are written concurrently, bounded by
   ``Config.max_parallel_writes``.

Each unit is rendered in memory, classified against the previous generation
state, staged under ``.monoforge/staging/`` and then moved into place with
``os.replace``; a failing node therefore never leaves half-written files.

Regeneration is hash-based: a file is overwritten only while its on-disk
content still matches the hash recorded when the generator last wrote it.
"""

from __future__ import annotations

import asyncio
import os
import posixpath
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from monoforge.adapters import PackageManagerAdapter, adapter_for
from monoforge.catalog import (
    ConfigCategory,
    ConfigEntry,
    TemplateCatalog,
    TemplateFile,
    TemplateRenderer,
    default_catalog,
)
from monoforge.choices.loader import dump_answers
from monoforge.choices.models import PackageKind
from monoforge.config import Config
from monoforge.graph import ConfigInheritanceResolver, PackageNode, WorkspaceGraph, relative_path
from monoforge.utils import console, content_hash, file_hash

from .report import FileOutcome, FileStatus, WriteReport
from .state import GenerationState

ROOT_UNIT = "<root>"


@dataclass
class PlannedFile:
    """Rendered content for one workspace-relative path."""

    path: str
    node_id: str
    content: Optional[str] = None
    error: str = ""


@dataclass
class _Decision:
    planned: PlannedFile
    status: FileStatus
    digest: str = ""
    detail: str = ""


class FileTreeWriter:
    """Writes a resolved workspace graph to a target directory."""

    def __init__(
        self,
        config: Config | None = None,
        catalog: TemplateCatalog | None = None,
        renderer: TemplateRenderer | None = None,
        adapter: PackageManagerAdapter | None = None,
        resolver: ConfigInheritanceResolver | None = None,
    ) -> None:
        self.config = config or Config()
        self.catalog = catalog or default_catalog()
        self.renderer = renderer or TemplateRenderer()
        self.adapter = adapter
        self.resolver = resolver or ConfigInheritanceResolver(self.catalog)

    # -- Public API --------------------------------------------------------

    async def write(
        self,
        graph: WorkspaceGraph,
        target_root: str | Path | None = None,
        *,
        dry_run: bool | None = None,
        cancel: asyncio.Event | None = None,
    ) -> WriteReport:
        """Materialize *graph* under *target_root*.

        Args:
            graph: A graph already annotated and frozen by the resolver.
            target_root: Workspace root; defaults to ``config.target_dir``.
            dry_run: Classify every file without touching the filesystem.
            cancel: Checked between node writes; once set, the remaining
                files are reported as ``skipped``.

        Returns:
            The per-path report.  Conflicts and per-file errors never raise.
        """
        if not graph.frozen:
            raise ValueError("WorkspaceGraph must be resolved before it is written")

        config = self.config
        if target_root is not None:
            config = config.model_copy(update={"target_dir": Path(target_root)})
        dry_run = config.dry_run if dry_run is None else dry_run
        adapter = self.adapter or adapter_for(graph.choices.runtime)

        state = GenerationState.load(config.state_file)
        baseline = state.content() if config.state_file.exists() else None
        report = WriteReport(dry_run=dry_run)
        run = _Run(
            config=config,
            state=state,
            report=report,
            dry_run=dry_run,
            staging=config.staging_dir / uuid.uuid4().hex[:12],
        )

        if not dry_run:
            config.ensure_directories()

        root_files = self._plan_root(graph, adapter)
        await self._commit(run, ROOT_UNIT, root_files)

        semaphore = asyncio.Semaphore(config.max_parallel_writes)

        async def write_node(node_id: str) -> None:
            async with semaphore:
                files = await asyncio.to_thread(self._plan_node, graph, graph[node_id], adapter)
                if cancel is not None and cancel.is_set():
                    run.skip(files)
                    return
                await self._commit(run, node_id, files)

        for level in graph.levels():
            if cancel is not None and cancel.is_set():
                for node_id in level:
                    run.skip(self._plan_node(graph, graph[node_id], adapter))
                continue
            await asyncio.gather(*(write_node(node_id) for node_id in level))

        report.cancelled = cancel is not None and cancel.is_set()

        for path in sorted(state.files):
            if path not in run.claimed:
                report.add(FileOutcome(path, FileStatus.STALE, detail="no longer generated; left in place"))

        if not dry_run:
            state.choices = dump_answers(graph.choices)
            state.package_manager = adapter.name
            # A no-op sync leaves state.json byte-identical.
            if state.content() != baseline:
                state.save(config.state_file)
            shutil.rmtree(run.staging, ignore_errors=True)
        return report

    # -- Planning (pure: graph -> rendered files) --------------------------

    def _plan_root(self, graph: WorkspaceGraph, adapter: PackageManagerAdapter) -> list[PlannedFile]:
        ctx = self._root_context(graph, adapter)
        planned: dict[str, PlannedFile] = {}
        for bundle_id in graph.root_bundle_ids:
            bundle = self.catalog.bundle(bundle_id)
            for tf in bundle.files:
                path = _join(".", tf.path)
                planned[path] = self._render(tf, path, ROOT_UNIT, ctx)

        if graph.package_node(PackageKind.CONFIG) is None:
            for entry in self.resolver.referenced_configs(graph):
                path = _join(graph.config_home, entry.path)
                planned[path] = self._render_config(entry, path, ROOT_UNIT, graph)

        if adapter.has_manifest(graph):
            manifest = adapter.manifest_path
            existing = planned.get(manifest)
            try:
                content = adapter.emit_workspace_manifest(
                    graph, existing.content if existing is not None else None
                )
                planned[manifest] = PlannedFile(manifest, ROOT_UNIT, content)
            except ValueError as exc:
                planned[manifest] = PlannedFile(manifest, ROOT_UNIT, error=f"manifest: {exc}")
        return list(planned.values())

    def _plan_node(
        self, graph: WorkspaceGraph, node: PackageNode, adapter: PackageManagerAdapter
    ) -> list[PlannedFile]:
        ctx = self._node_context(graph, node, adapter)
        planned: dict[str, PlannedFile] = {}
        for bundle_id in node.template_bundle_ids:
            bundle = self.catalog.bundle(bundle_id)
            for tf in bundle.files:
                path = _join(node.path, tf.path)
                planned[path] = self._render(tf, path, node.id, ctx)

        if node.is_config_package:
            for entry in self.resolver.referenced_configs(graph):
                path = _join(graph.config_home, entry.path)
                planned[path] = self._render_config(entry, path, node.id, graph)
        return list(planned.values())

    def _render(self, tf: TemplateFile, path: str, node_id: str, ctx: dict[str, Any]) -> PlannedFile:
        # A broken template fails only its own file.
        try:
            if tf.generator is not None:
                content = tf.generator(ctx)
            else:
                assert tf.template is not None
                content = self.renderer.render(tf.template, ctx)
        except Exception as exc:
            return PlannedFile(path, node_id, error=f"render failed: {type(exc).__name__}: {exc}")
        return PlannedFile(path, node_id, content)

    def _render_config(
        self, entry: ConfigEntry, path: str, node_id: str, graph: WorkspaceGraph
    ) -> PlannedFile:
        ctx = {"entry": entry, "project_name": graph.choices.project_name}
        return self._render(TemplateFile(path, generator=entry.generator), path, node_id, ctx)

    # -- Render contexts ---------------------------------------------------

    def _base_context(self, graph: WorkspaceGraph) -> dict[str, Any]:
        choices = graph.choices
        return {
            "project_name": choices.project_name,
            "description": choices.description,
            "scope": graph.scope,
            "layout": choices.layout.value,
            "runtime": choices.runtime.value,
            "orm": choices.orm.value,
        }

    def _node_info(self, graph: WorkspaceGraph, node: PackageNode) -> dict[str, Any]:
        return {
            "id": node.id,
            "name": node.name,
            "kind": node.kind.value,
            "app_kind": node.app_kind.value if node.app_kind else None,
            "package_kind": node.package_kind.value if node.package_kind else None,
            "path": node.path,
            "package_name": graph.package_name(node.id),
        }

    def _node_context(
        self, graph: WorkspaceGraph, node: PackageNode, adapter: PackageManagerAdapter
    ) -> dict[str, Any]:
        ctx = self._base_context(graph)
        deps = graph.dependencies(node.id)

        dependencies: dict[str, str] = {}
        dev_dependencies: dict[str, str] = {}
        scripts: dict[str, str] = {}
        for bundle_id in node.template_bundle_ids:
            bundle = self.catalog.bundle(bundle_id)
            dependencies.update(bundle.dependencies)
            dev_dependencies.update(bundle.dev_dependencies)
            scripts.update(bundle.scripts)

        internal: dict[str, str] = {}
        internal_dev: dict[str, str] = {}
        for dep in deps:
            target = internal_dev if graph[dep].is_config_package else internal
            target[graph.package_name(dep)] = adapter.workspace_protocol

        ctx.update(
            node=self._node_info(graph, node),
            app=node.app.model_dump(mode="json") if node.app is not None else None,
            internal_packages=[
                {
                    "id": dep,
                    "name": graph[dep].name,
                    "kind": graph[dep].package_kind.value if graph[dep].package_kind else None,
                    "package_name": graph.package_name(dep),
                    "path": graph[dep].path,
                }
                for dep in deps
            ],
            config_extends={
                category.value: self.resolver.relative_extends(graph, node.id, category)
                for category in ConfigCategory
            },
            references=[
                relative_path(node.path, graph[dep].path)
                for dep in deps
                if not graph[dep].is_config_package
            ],
            internal_dependencies=internal,
            internal_dev_dependencies=internal_dev,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            scripts=scripts,
        )
        return ctx

    def _root_context(self, graph: WorkspaceGraph, adapter: PackageManagerAdapter) -> dict[str, Any]:
        ctx = self._base_context(graph)
        scripts: dict[str, str] = {}
        dev_dependencies: dict[str, str] = {}
        for bundle_id in graph.root_bundle_ids:
            bundle = self.catalog.bundle(bundle_id)
            scripts.update(bundle.scripts)
            dev_dependencies.update(bundle.dev_dependencies)

        ctx.update(
            nodes=[self._node_info(graph, node) for node in graph],
            install_command=" ".join(adapter.install_command),
            package_manager=adapter.name,
            root_scripts=scripts,
            root_dev_dependencies=dev_dependencies,
            solution_references=[
                relative_path(".", graph[node_id].path)
                for node_id in graph.order
                if not graph[node_id].is_config_package
            ],
        )
        return ctx

    # -- Commit (classify, stage, move into place) -------------------------

    async def _commit(self, run: "_Run", unit_id: str, files: list[PlannedFile]) -> None:
        files = run.claim(files)
        decisions = await asyncio.to_thread(self._classify, run, files)

        if run.dry_run:
            for d in decisions:
                run.report.add(FileOutcome(d.planned.path, d.status, d.planned.node_id, d.detail))
            return

        outcomes = await asyncio.to_thread(self._stage_and_move, run, unit_id, decisions)
        for outcome, digest in outcomes:
            if digest:
                run.state.record(outcome.path, digest)
            run.report.add(outcome)
            if self.config.verbose:
                console.print(f"  [dim]{outcome.status.value:>9}[/dim] {outcome.path}")

    def _classify(self, run: "_Run", files: list[PlannedFile]) -> list[_Decision]:
        decisions: list[_Decision] = []
        for planned in files:
            if planned.content is None:
                decisions.append(_Decision(planned, FileStatus.ERROR, detail=planned.error))
                continue

            proposed = content_hash(planned.content)
            try:
                existing = file_hash(run.config.target_dir / planned.path)
            except OSError as exc:
                decisions.append(_Decision(planned, FileStatus.ERROR, detail=f"read failed: {exc}"))
                continue

            recorded = run.state.recorded(planned.path)
            if existing is None:
                decisions.append(_Decision(planned, FileStatus.CREATED, proposed))
            elif existing == proposed:
                decisions.append(_Decision(planned, FileStatus.UNCHANGED, proposed))
            elif recorded is not None and existing == recorded:
                decisions.append(_Decision(planned, FileStatus.UPDATED, proposed))
            else:
                detail = (
                    "modified since last generation"
                    if recorded is not None
                    else "existing file not created by monoforge"
                )
                decisions.append(_Decision(planned, FileStatus.CONFLICT, detail=detail))
        return decisions

    def _stage_and_move(
        self, run: "_Run", unit_id: str, decisions: list[_Decision]
    ) -> list[tuple[FileOutcome, str]]:
        """Write a unit's files to its staging dir, then move them into place.

        Returns (outcome, digest-to-record) pairs; an empty digest leaves the
        recorded hash untouched (conflicts keep their previous record).
        """
        results: list[tuple[FileOutcome, str]] = []
        stage_root = run.staging / _stage_name(unit_id)
        staged: list[tuple[_Decision, Path]] = []

        for d in decisions:
            path, node_id = d.planned.path, d.planned.node_id
            if d.status in (FileStatus.CREATED, FileStatus.UPDATED):
                staged_path = stage_root / path
                try:
                    staged_path.parent.mkdir(parents=True, exist_ok=True)
                    staged_path.write_text(d.planned.content or "", encoding="utf-8")
                except OSError as exc:
                    results.append((FileOutcome(path, FileStatus.ERROR, node_id, f"staging failed: {exc}"), ""))
                    continue
                staged.append((d, staged_path))
            elif d.status is FileStatus.UNCHANGED:
                results.append((FileOutcome(path, d.status, node_id), d.digest))
            else:
                results.append((FileOutcome(path, d.status, node_id, d.detail), ""))

        for d, staged_path in staged:
            path, node_id = d.planned.path, d.planned.node_id
            dest = run.config.target_dir / path
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                os.replace(staged_path, dest)
            except OSError as exc:
                results.append((FileOutcome(path, FileStatus.ERROR, node_id, f"write failed: {exc}"), ""))
                continue
            results.append((FileOutcome(path, d.status, node_id), d.digest))

        shutil.rmtree(stage_root, ignore_errors=True)
        return results


# ---------------------------------------------------------------------------
# Per-run bookkeeping
# ---------------------------------------------------------------------------


@dataclass
class _Run:
    config: Config
    state: GenerationState
    report: WriteReport
    dry_run: bool
    staging: Path

    def __post_init__(self) -> None:
        self.claimed: dict[str, str] = {}

    def claim(self, files: list[PlannedFile]) -> list[PlannedFile]:
        """Reserve each path for one unit; a second producer is an error."""
        accepted: list[PlannedFile] = []
        for planned in files:
            owner = self.claimed.get(planned.path)
            if owner is not None:
                self.report.add(
                    FileOutcome(
                        planned.path,
                        FileStatus.ERROR,
                        planned.node_id,
                        f"path already produced by {owner}",
                    )
                )
                continue
            self.claimed[planned.path] = planned.node_id
            accepted.append(planned)
        return accepted

    def skip(self, files: list[PlannedFile]) -> None:
        for planned in self.claim(files):
            self.report.add(FileOutcome(planned.path, FileStatus.SKIPPED, planned.node_id, "run cancelled"))


def _join(base: str, path: str) -> str:
    return posixpath.normpath(posixpath.join(base, path))


def _stage_name(unit_id: str) -> str:
    return "_root" if unit_id == ROOT_UNIT else unit_id.replace("/", "__")
