"""Shared pytest fixtures for the monoforge test suite.

Provides reusable fixtures for:
- Answers documents (the acceptance scenarios and a full-featured workspace)
- ChoiceSet construction and planned (resolved, frozen) graphs
- Temporary target directories and matching Config objects
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from monoforge.catalog import TemplateCatalog, default_catalog
from monoforge.choices import ChoiceSet, choice_set_from_dict
from monoforge.config import Config
from monoforge.graph import ConfigInheritanceResolver, WorkspaceGraph, WorkspaceGraphBuilder


# ---------------------------------------------------------------------------
# Answers documents
# ---------------------------------------------------------------------------

SCENARIO_A: dict[str, Any] = {
    "project_name": "acme",
    "layout": "monorepo",
    "runtime": "node",
    "apps": [{"name": "api", "kind": "backend", "framework": "express"}],
    "shared_packages": ["types", "utils", "config"],
}

FULL_WORKSPACE: dict[str, Any] = {
    "project_name": "shop",
    "description": "Storefront and API",
    "layout": "monorepo",
    "runtime": "node",
    "apps": [
        {
            "name": "web",
            "kind": "frontend",
            "framework": "react",
            "styling": "tailwind",
            "state_management": "zustand",
            "testing": ["vitest", "playwright"],
        },
        {"name": "api", "kind": "backend", "framework": "fastify", "testing": ["vitest"]},
        {"name": "mobile", "kind": "mobile", "framework": "expo", "styling": "styled-components"},
    ],
    "shared_packages": ["types", "utils", "config", "validation", "ui", "database"],
    "orm": "drizzle",
}

STANDALONE: dict[str, Any] = {
    "project_name": "solo",
    "layout": "standalone",
    "runtime": "node",
    "apps": [{"name": "web", "kind": "frontend", "framework": "react", "testing": ["vitest"]}],
}


@pytest.fixture
def scenario_a_answers() -> dict[str, Any]:
    """Backend app plus types / utils / config packages."""
    return copy.deepcopy(SCENARIO_A)


@pytest.fixture
def full_answers() -> dict[str, Any]:
    """Three apps, every shared package and an ORM."""
    return copy.deepcopy(FULL_WORKSPACE)


@pytest.fixture
def standalone_answers() -> dict[str, Any]:
    return copy.deepcopy(STANDALONE)


@pytest.fixture
def write_answers(tmp_path: Path) -> Callable[..., Path]:
    """Write an answers document to a YAML (default) or JSON file."""

    def _write(data: dict[str, Any], name: str = "answers.yaml") -> Path:
        path = tmp_path / name
        if path.suffix == ".json":
            import json

            path.write_text(json.dumps(data), encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Choices and graphs
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog() -> TemplateCatalog:
    return default_catalog()


@pytest.fixture
def make_choices() -> Callable[..., ChoiceSet]:
    """Build a ChoiceSet from an answers dict (Scenario A by default)."""

    def _make(data: dict[str, Any] | None = None, **overrides: Any) -> ChoiceSet:
        base = copy.deepcopy(data if data is not None else SCENARIO_A)
        base.update(overrides)
        return choice_set_from_dict(base)

    return _make


@pytest.fixture
def plan(catalog: TemplateCatalog) -> Callable[[ChoiceSet], WorkspaceGraph]:
    """Build and resolve a graph the way the Planning/Validating phases do."""

    def _plan(choices: ChoiceSet) -> WorkspaceGraph:
        graph = WorkspaceGraphBuilder(catalog).build(choices)
        return ConfigInheritanceResolver(catalog).resolve(graph)

    return _plan


# ---------------------------------------------------------------------------
# Paths & Config
# ---------------------------------------------------------------------------

@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Empty workspace root for generated files (auto-cleanup)."""
    target = tmp_path / "workspace"
    target.mkdir()
    return target


@pytest.fixture
def config(target_dir: Path) -> Config:
    return Config(target_dir=target_dir)


def tree_files(root: Path) -> set[str]:
    """Every file under *root* as a POSIX relative path, metadata excluded."""
    return {
        p.relative_to(root).as_posix()
        for p in root.rglob("*")
        if p.is_file() and ".monoforge" not in p.relative_to(root).parts
    }


@pytest.fixture
def list_tree() -> Callable[[Path], set[str]]:
    return tree_files
