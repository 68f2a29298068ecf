"""Tests for the Jinja2 TemplateRenderer (monoforge.catalog.templates)."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import TemplateNotFound, UndefinedError

from monoforge.catalog import TemplateRenderer

pytestmark = pytest.mark.unit


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def node_ctx() -> dict:
    return {
        "project_name": "acme",
        "description": "",
        "runtime": "node",
        "layout": "monorepo",
        "orm": "none",
        "scope": "@acme",
        "node": {
            "id": "apps/web",
            "name": "web",
            "kind": "app",
            "app_kind": "frontend",
            "package_kind": None,
            "path": "apps/web",
            "package_name": "@acme/web",
        },
        "app": {"name": "web", "styling": "tailwind", "state_management": None},
        "internal_packages": [],
    }


class TestFilters:
    def test_filters(self, tmp_path: Path):
        (tmp_path / "names.j2").write_text(
            "{{ 'admin-portal' | pascal_case }} {{ 'admin-portal' | camel_case }} "
            "{{ 'AdminPortal' | snake_case }} {{ 'Admin Portal' | slugify }}",
            encoding="utf-8",
        )
        out = TemplateRenderer(tmp_path).render("names.j2", {})
        assert out == "AdminPortal adminPortal admin_portal admin-portal"


class TestRendering:
    def test_undefined_variable_raises(self, tmp_path: Path):
        (tmp_path / "gap.j2").write_text("{{ missing }}", encoding="utf-8")
        with pytest.raises(UndefinedError):
            TemplateRenderer(tmp_path).render("gap.j2", {})

    def test_missing_template_raises(self, renderer):
        with pytest.raises(TemplateNotFound):
            renderer.render("framework/nope.j2", {})

    def test_react_app_uses_node_name(self, renderer, node_ctx):
        out = renderer.render("framework/react/App.tsx.j2", node_ctx)
        assert "Web" in out

    def test_gitignore_renders(self, renderer, node_ctx):
        out = renderer.render("workspace/gitignore.j2", node_ctx)
        assert "node_modules" in out

    def test_keeps_trailing_newline(self, renderer, node_ctx):
        assert renderer.render("workspace/gitignore.j2", node_ctx).endswith("\n")

    def test_custom_template_dir(self, tmp_path: Path):
        (tmp_path / "hello.txt.j2").write_text("hi {{ name }}\n", encoding="utf-8")
        renderer = TemplateRenderer(tmp_path)
        assert renderer.render("hello.txt.j2", {"name": "there"}) == "hi there\n"


class TestListing:
    def test_has_template(self, renderer):
        assert renderer.has_template("workspace/README.md.j2")
        assert not renderer.has_template("workspace/missing.j2")
