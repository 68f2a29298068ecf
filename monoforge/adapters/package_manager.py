"""Package manager adapters.

The generator core only needs two things from a package manager: the
workspace manifest that declares every member path, and an install
invocation.  Each adapter also names the protocol marker that internal
dependencies are pinned to (``workspace:*`` rather than a registry version).
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

import yaml

from monoforge.choices.models import Layout, Runtime
from monoforge.errors import AdapterError, InvalidChoiceSet
from monoforge.graph.models import WorkspaceGraph
from monoforge.utils import dump_json, run_command


class PackageManagerAdapter(ABC):
    """Interface every package manager adapter implements."""

    name: str = ""
    runtime: Runtime = Runtime.NODE
    manifest_path: str = ""
    lockfiles: tuple[str, ...] = ()
    workspace_protocol: str = "workspace:*"
    install_command: tuple[str, ...] = ()

    def workspace_members(self, graph: WorkspaceGraph) -> list[str]:
        """Every node path exactly once, in graph insertion order."""
        members: list[str] = []
        for node in graph:
            if node.path not in members:
                members.append(node.path)
        return members

    def has_manifest(self, graph: WorkspaceGraph) -> bool:
        """Standalone workspaces have a single member and no manifest."""
        return graph.choices.layout is Layout.MONOREPO

    @abstractmethod
    def emit_workspace_manifest(self, graph: WorkspaceGraph, existing: str | None = None) -> str:
        """Render the workspace manifest.

        Args:
            graph: The resolved workspace graph.
            existing: Content already planned for ``manifest_path`` (set when
                the manifest lives inside a file the generator also renders,
                such as the root ``package.json``).
        """

    async def install(self, target_root: str | Path, timeout: int = 600) -> int:
        """Run the install command in *target_root*.

        Returns:
            The process exit status (always 0; failures raise).

        Raises:
            AdapterError: The command is missing, timed out or exited non-zero.
        """
        cmd = list(self.install_command)
        cmd_str = " ".join(cmd)
        try:
            code, _stdout, stderr = await run_command(cmd, cwd=target_root, timeout=timeout)
        except FileNotFoundError as exc:
            raise AdapterError(f"{self.name} is not installed: {exc}", command=cmd_str) from exc

        if code != 0:
            raise AdapterError(
                f"{cmd_str} failed (exit {code}) in {target_root}",
                command=cmd_str,
                stderr=stderr,
            )
        return code


class PnpmAdapter(PackageManagerAdapter):
    """Node workspaces managed by pnpm (``pnpm-workspace.yaml``)."""

    name = "pnpm"
    runtime = Runtime.NODE
    manifest_path = "pnpm-workspace.yaml"
    lockfiles = ("pnpm-lock.yaml",)
    install_command = ("pnpm", "install")

    def emit_workspace_manifest(self, graph: WorkspaceGraph, existing: str | None = None) -> str:
        data = {"packages": self.workspace_members(graph)}
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


class _PackageJsonWorkspaces(PackageManagerAdapter):
    """Adapters that declare workspaces in the root ``package.json``."""

    manifest_path = "package.json"

    def emit_workspace_manifest(self, graph: WorkspaceGraph, existing: str | None = None) -> str:
        data: dict = json.loads(existing) if existing else {"name": graph.choices.project_name, "private": True}
        merged: dict = {}
        for key, value in data.items():
            if key == "workspaces":
                continue
            merged[key] = value
            if key == "type":
                merged["workspaces"] = self.workspace_members(graph)
        merged.setdefault("workspaces", self.workspace_members(graph))
        return dump_json(merged)


class NpmAdapter(_PackageJsonWorkspaces):
    """Node workspaces managed by npm; npm has no ``workspace:`` protocol."""

    name = "npm"
    runtime = Runtime.NODE
    lockfiles = ("package-lock.json",)
    workspace_protocol = "*"
    install_command = ("npm", "install")


class BunAdapter(_PackageJsonWorkspaces):
    """Bun workspaces (root ``package.json`` ``workspaces``)."""

    name = "bun"
    runtime = Runtime.BUN
    lockfiles = ("bun.lock", "bun.lockb")
    install_command = ("bun", "install")


class DenoAdapter(PackageManagerAdapter):
    """Deno workspaces (``deno.json`` ``workspace`` member list)."""

    name = "deno"
    runtime = Runtime.DENO
    manifest_path = "deno.json"
    lockfiles = ("deno.lock",)
    install_command = ("deno", "install")

    def emit_workspace_manifest(self, graph: WorkspaceGraph, existing: str | None = None) -> str:
        data = {
            "workspace": [f"./{path}" for path in self.workspace_members(graph)],
            "nodeModulesDir": "auto",
        }
        return dump_json(data)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

_DEFAULTS: dict[Runtime, type[PackageManagerAdapter]] = {
    Runtime.NODE: PnpmAdapter,
    Runtime.BUN: BunAdapter,
    Runtime.DENO: DenoAdapter,
}

_ALL: tuple[type[PackageManagerAdapter], ...] = (PnpmAdapter, NpmAdapter, BunAdapter, DenoAdapter)


def adapter_for(runtime: Runtime, name: str | None = None) -> PackageManagerAdapter:
    """Return the adapter for *runtime*, or the one called *name*.

    Raises:
        InvalidChoiceSet: *name* is unknown or does not target *runtime*.
    """
    if name is None:
        return _DEFAULTS[runtime]()
    for cls in _ALL:
        if cls.name == name:
            if cls.runtime is not runtime:
                raise InvalidChoiceSet(
                    f"Package manager '{name}' does not target the {runtime.value} runtime",
                    subject="package_manager",
                )
            return cls()
    raise InvalidChoiceSet(f"Unknown package manager '{name}'", subject="package_manager")


def detect_adapter(
    target_root: str | Path,
    runtime: Runtime,
    recorded: str | None = None,
) -> PackageManagerAdapter:
    """Pick the adapter for an existing or fresh *target_root*.

    *recorded* is the package manager the previous generation used; it wins
    while it still targets *runtime*.  Otherwise lockfiles already present
    decide, and a fresh target gets the runtime default.
    """
    for cls in _ALL:
        if cls.name == recorded and cls.runtime is runtime:
            return cls()
    root = Path(target_root)
    for cls in _ALL:
        if cls.runtime is not runtime:
            continue
        if any((root / lockfile).exists() for lockfile in cls.lockfiles):
            return cls()
    return adapter_for(runtime)
