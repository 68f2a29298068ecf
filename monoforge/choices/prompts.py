"""Interactive ChoiceSet construction with ``rich.prompt``.

Only the options the catalog can actually generate for each app kind are
offered, so an interactively built ChoiceSet never trips ``UnknownTemplate``.
The answers are still validated through ``choice_set_from_dict``.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.prompt import Confirm, Prompt

from monoforge.catalog import TemplateCatalog, default_catalog
from monoforge.utils import console as default_console

from .loader import choice_set_from_dict
from .models import AppKind, ChoiceSet, Layout, Orm, PackageKind, Runtime

_NONE = "none"


def _ask_optional(console: Console, label: str, options: list[str]) -> str | None:
    if not options:
        return None
    answer = Prompt.ask(label, choices=[_NONE, *options], default=_NONE, console=console)
    return None if answer == _NONE else answer


def _ask_many(console: Console, label: str, options: list[str]) -> list[str]:
    """Comma-separated multi-select restricted to *options*."""
    if not options:
        return []
    while True:
        raw = Prompt.ask(f"{label} ({', '.join(options)}; comma-separated)", default="", console=console)
        picked = [item.strip() for item in raw.split(",") if item.strip()]
        unknown = [item for item in picked if item not in options]
        if not unknown:
            return list(dict.fromkeys(picked))
        console.print(f"[red]Unknown option(s): {', '.join(unknown)}[/red]")


def prompt_app(
    catalog: TemplateCatalog,
    console: Console,
    index: int,
) -> dict[str, Any]:
    """Ask for one app's fields and return them in answers-file shape."""
    kind = Prompt.ask(
        f"App #{index} kind",
        choices=[k.value for k in AppKind],
        default=AppKind.FRONTEND.value,
        console=console,
    )
    name = Prompt.ask(f"App #{index} name", default="web" if kind != "backend" else "api", console=console)
    frameworks = catalog.choices("framework", kind)
    app: dict[str, Any] = {
        "name": name,
        "kind": kind,
        "framework": Prompt.ask("Framework", choices=frameworks, default=frameworks[0], console=console),
    }

    styling = _ask_optional(console, "Styling", catalog.choices("styling", kind))
    if styling:
        app["styling"] = styling
        override = _ask_optional(console, "Style preset override", catalog.choices("styling-override", kind))
        if override:
            app["styling-override"] = override

    state = _ask_optional(console, "State management", catalog.choices("state", kind))
    if state:
        app["state_management"] = state

    testing = _ask_many(console, "Testing", catalog.choices("testing", kind))
    if testing:
        app["testing"] = testing
    return app


def prompt_choice_set(
    catalog: TemplateCatalog | None = None,
    defaults: dict[str, Any] | None = None,
    console: Console | None = None,
) -> ChoiceSet:
    """Build a ``ChoiceSet`` interactively.

    Args:
        catalog: Catalog used to list the available options.
        defaults: Values already fixed on the command line (``--name``,
            ``--layout``, ``--runtime``); those fields are not asked again.
        console: Rich console to prompt on.
    """
    catalog = catalog or default_catalog()
    console = console or default_console
    fixed = {k: v for k, v in (defaults or {}).items() if v is not None}

    data: dict[str, Any] = {}
    data["project_name"] = fixed.get("project_name") or Prompt.ask("Project name", console=console)
    data["description"] = Prompt.ask("Description", default="", console=console)
    data["layout"] = fixed.get("layout") or Prompt.ask(
        "Layout", choices=[layout.value for layout in Layout], default=Layout.MONOREPO.value, console=console
    )
    data["runtime"] = fixed.get("runtime") or Prompt.ask(
        "Runtime", choices=[r.value for r in Runtime], default=Runtime.NODE.value, console=console
    )
    standalone = data["layout"] == Layout.STANDALONE.value

    apps: list[dict[str, Any]] = [prompt_app(catalog, console, 1)]
    while not standalone and Confirm.ask("Add another app?", default=False, console=console):
        apps.append(prompt_app(catalog, console, len(apps) + 1))
    data["apps"] = apps

    has_backend = any(app["kind"] == AppKind.BACKEND.value for app in apps)
    if not standalone:
        data["shared_packages"] = _ask_many(console, "Shared packages", [p.value for p in PackageKind])
        if PackageKind.DATABASE.value in data["shared_packages"]:
            data["orm"] = Prompt.ask(
                "ORM",
                choices=[o.value for o in Orm if o is not Orm.NONE],
                default=Orm.DRIZZLE.value,
                console=console,
            )
    elif has_backend:
        data["orm"] = Prompt.ask("ORM", choices=[o.value for o in Orm], default=Orm.NONE.value, console=console)

    return choice_set_from_dict(data)
