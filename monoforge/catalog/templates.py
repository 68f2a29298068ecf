"""Jinja2 rendering for template bundle files.

Template sources live under ``monoforge/catalog/templates/`` as
``<category>/<choice>/<file>.j2``.  Rendering returns text only; the
FileTreeWriter hashes and stages the result before anything reaches disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from monoforge.utils import slugify, to_camel, to_pascal, to_snake

TEMPLATE_ROOT = Path(__file__).parent / "templates"

FILTERS: dict[str, Callable[[str], str]] = {
    "slugify": slugify,
    "pascal_case": to_pascal,
    "camel_case": to_camel,
    "snake_case": to_snake,
}


def build_environment(template_dir: Path) -> Environment:
    """Jinja2 environment for TypeScript / JSON / Markdown sources.

    No autoescaping (nothing rendered here is HTML served to a browser) and
    ``StrictUndefined`` so a context gap fails the file instead of emitting
    an empty string.
    """
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters.update(FILTERS)
    return env


class TemplateRenderer:
    """Renders bundle templates with a node's context.

    The environment is only read after construction, so one renderer is
    shared by every concurrent node render in a run.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else TEMPLATE_ROOT
        self.env = build_environment(self.template_dir)

    def render(self, template: str, context: dict[str, Any]) -> str:
        """Render *template* (a path such as ``framework/react/main.tsx.j2``)."""
        return self.env.get_template(template).render(context)

    def has_template(self, template: str) -> bool:
        return (self.template_dir / template).is_file()

