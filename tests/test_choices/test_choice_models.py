"""Tests for the ChoiceSet / AppChoice models (monoforge.choices.models)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from monoforge.choices import AppChoice, AppKind, ChoiceSet, Layout, Orm, PackageKind, Runtime

pytestmark = pytest.mark.unit


def _app(**kwargs):
    data = {"name": "web", "kind": "frontend", "framework": "react"}
    data.update(kwargs)
    return AppChoice.model_validate(data)


class TestAppChoice:
    def test_minimal(self):
        app = _app()
        assert app.kind is AppKind.FRONTEND
        assert app.styling is None
        assert app.testing == ()
        assert app.depends_on == ()

    def test_styling_override_alias(self):
        app = _app(**{"styling": "tailwind", "styling-override": "custom-preset"})
        assert app.styling_override == "custom-preset"

    def test_populate_by_field_name(self):
        assert _app(styling_override="custom-preset").styling_override == "custom-preset"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            _app(kind="desktop")

    @pytest.mark.parametrize("name", ["Web", "../web", "a b", ""])
    def test_unsafe_name_rejected(self, name):
        with pytest.raises(ValidationError):
            _app(name=name)

    def test_duplicate_testing_rejected(self):
        with pytest.raises(ValidationError):
            _app(testing=["vitest", "vitest"])

    def test_extra_field_rejected(self):
        with pytest.raises(ValidationError):
            _app(color="blue")

    def test_frozen(self):
        app = _app()
        with pytest.raises(ValidationError):
            app.name = "other"


class TestChoiceSet:
    def test_defaults(self):
        choices = ChoiceSet(project_name="acme", apps=(_app(),))
        assert choices.layout is Layout.MONOREPO
        assert choices.runtime is Runtime.NODE
        assert choices.orm is Orm.NONE
        assert choices.shared_packages == ()

    def test_requires_an_app(self):
        with pytest.raises(ValidationError):
            ChoiceSet(project_name="acme", apps=())

    def test_duplicate_app_names(self):
        with pytest.raises(ValidationError, match="duplicate app names: web"):
            ChoiceSet(project_name="acme", apps=(_app(), _app(kind="admin")))

    def test_duplicate_packages(self):
        with pytest.raises(ValidationError):
            ChoiceSet(project_name="acme", apps=(_app(),), shared_packages=("types", "types"))

    def test_unsafe_project_name(self):
        with pytest.raises(ValidationError):
            ChoiceSet(project_name="Acme Corp", apps=(_app(),))

    def test_has_package(self):
        choices = ChoiceSet(project_name="acme", apps=(_app(),), shared_packages=("types",))
        assert choices.has_package(PackageKind.TYPES)
        assert not choices.has_package(PackageKind.UI)
