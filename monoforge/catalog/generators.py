"""Python content generators for structured workspace files.

JSON and config-module files are built as data and serialised here rather
than through Jinja2, so key order and quoting stay stable between runs (a
requirement for hash-based idempotent regeneration).  Each generator takes the
render context assembled by the writer and returns the file content.
"""

from __future__ import annotations

import json
import textwrap
from typing import Any

from monoforge.utils import dump_json

from .bundles import ConfigCategory


# ---------------------------------------------------------------------------
# Per-node files
# ---------------------------------------------------------------------------


def node_package_json(ctx: dict[str, Any]) -> str:
    """``package.json`` for one app or package node.

    Internal workspace packages are pinned to the package manager's workspace
    protocol marker instead of a registry version.
    """
    node = ctx["node"]
    data: dict[str, Any] = {
        "name": node["package_name"],
        "version": "0.0.0",
        "private": True,
        "type": "module",
    }
    if ctx.get("description") and node["kind"] == "app":
        data["description"] = ctx["description"]
    if node["kind"] == "package":
        if node["package_kind"] == "config":
            data["exports"] = {"./*": "./*"}
        else:
            data["main"] = "./src/index.ts"
            data["types"] = "./src/index.ts"
            data["exports"] = {".": "./src/index.ts"}

    if ctx.get("scripts"):
        data["scripts"] = dict(sorted(ctx["scripts"].items()))

    dependencies = {**ctx.get("dependencies", {}), **ctx.get("internal_dependencies", {})}
    if dependencies:
        data["dependencies"] = dict(sorted(dependencies.items()))
    dev_dependencies = {**ctx.get("dev_dependencies", {}), **ctx.get("internal_dev_dependencies", {})}
    if dev_dependencies:
        data["devDependencies"] = dict(sorted(dev_dependencies.items()))
    return dump_json(data)


def node_tsconfig(ctx: dict[str, Any]) -> str:
    """``tsconfig.json`` extending every compiler chain link, general first."""
    node = ctx["node"]
    extends = list(ctx["config_extends"].get(ConfigCategory.COMPILER.value, []))
    data: dict[str, Any] = {"extends": extends}

    if node.get("package_kind") == "config":
        data["files"] = []
        return dump_json(data)

    data["compilerOptions"] = {
        "composite": True,
        "rootDir": "src",
        "outDir": "dist",
        "tsBuildInfoFile": "dist/.tsbuildinfo",
    }
    data["include"] = ["src"]
    references = ctx.get("references", [])
    if references:
        data["references"] = [{"path": ref} for ref in references]
    return dump_json(data)


def node_eslint_config(ctx: dict[str, Any]) -> str:
    """``eslint.config.js`` composing the lint chain (flat config arrays)."""
    links = ctx["config_extends"].get(ConfigCategory.LINT.value, [])
    lines = [f"import lint{i} from {json.dumps(path)};" for i, path in enumerate(links)]
    spread = ", ".join(f"...lint{i}" for i in range(len(links)))
    lines.append("")
    lines.append(f"export default [{spread}];")
    return "\n".join(lines) + "\n"


def node_prettier_config(ctx: dict[str, Any]) -> str:
    """``prettier.config.js`` merging the format chain, later links win."""
    links = ctx["config_extends"].get(ConfigCategory.FORMAT.value, [])
    lines = [f"import format{i} from {json.dumps(path)};" for i, path in enumerate(links)]
    spread = ", ".join(f"...format{i}" for i in range(len(links)))
    lines.append("")
    lines.append(f"export default {{ {spread} }};" if links else "export default {};")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Config chain links (materialized once at the config home)
# ---------------------------------------------------------------------------


def compiler_config(ctx: dict[str, Any]) -> str:
    entry = ctx["entry"]
    data: dict[str, Any] = {}
    if entry.base:
        data["$schema"] = "https://json.schemastore.org/tsconfig"
    data["compilerOptions"] = dict(entry.settings)
    return dump_json(data)


def lint_config(ctx: dict[str, Any]) -> str:
    entry = ctx["entry"]
    body = json.dumps(dict(entry.settings), indent=2)
    return "export default [\n" + textwrap.indent(body, "  ") + ",\n];\n"


def format_config(ctx: dict[str, Any]) -> str:
    entry = ctx["entry"]
    return f"export default {json.dumps(dict(entry.settings), indent=2)};\n"


# ---------------------------------------------------------------------------
# Workspace root files
# ---------------------------------------------------------------------------


def root_package_json(ctx: dict[str, Any]) -> str:
    """Root ``package.json``.

    ``workspaces`` is only present in the context for package managers that
    keep workspace membership in this file (bun).
    """
    workspaces = ctx.get("workspaces")
    data: dict[str, Any] = {
        "name": ctx["project_name"],
        "version": "0.0.0",
        "private": True,
        "type": "module",
    }
    if ctx.get("description"):
        data["description"] = ctx["description"]
    if workspaces is not None:
        data["workspaces"] = list(workspaces)
    data["scripts"] = dict(ctx.get("root_scripts", {}))
    if ctx.get("root_dev_dependencies"):
        data["devDependencies"] = dict(sorted(ctx["root_dev_dependencies"].items()))
    return dump_json(data)


def root_tsconfig(ctx: dict[str, Any]) -> str:
    """Solution-style root ``tsconfig.json`` referencing every compiled node."""
    data = {
        "files": [],
        "references": [{"path": path} for path in ctx.get("solution_references", [])],
    }
    return dump_json(data)
