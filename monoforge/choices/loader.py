"""Answers-file loading.

An answers file is a YAML or JSON mapping whose keys mirror ``ChoiceSet``
fields exactly.  Unknown keys are rejected with ``UnknownField`` instead of
being ignored, so a typo such as ``shared_pakages`` fails loudly.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from monoforge.errors import InvalidChoiceSet, UnknownField

from .models import AppChoice, ChoiceSet


def _known_keys(model: type[BaseModel]) -> set[str]:
    keys: set[str] = set()
    for name, info in model.model_fields.items():
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
    return keys


def check_unknown_fields(data: dict[str, Any]) -> None:
    """Raise ``UnknownField`` for the first key not present on the models.

    Keys are checked in document order so the reported field is stable.
    """
    choice_keys = _known_keys(ChoiceSet)
    for key in data:
        if key not in choice_keys:
            raise UnknownField(str(key))

    apps = data.get("apps") or []
    if not isinstance(apps, list):
        return
    app_keys = _known_keys(AppChoice)
    for index, app in enumerate(apps):
        if not isinstance(app, dict):
            continue
        for key in app:
            if key not in app_keys:
                raise UnknownField(f"apps[{index}].{key}")


def choice_set_from_dict(
    data: dict[str, Any],
    overrides: dict[str, Any] | None = None,
) -> ChoiceSet:
    """Validate a raw mapping (plus CLI overrides) into a ``ChoiceSet``.

    Args:
        data: Parsed answers document.
        overrides: Values from command-line flags (``--name`` and friends);
            ``None`` values are ignored.

    Raises:
        UnknownField: A key does not exist on ``ChoiceSet`` / ``AppChoice``.
        InvalidChoiceSet: Any other shape or value error.
    """
    if not isinstance(data, dict):
        raise InvalidChoiceSet("Answers document must be a mapping of ChoiceSet fields")

    merged = {**data, **{k: v for k, v in (overrides or {}).items() if v is not None}}
    check_unknown_fields(merged)

    try:
        return ChoiceSet.model_validate(merged)
    except PydanticValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()))
            problems.append(f"{loc}: {err.get('msg', 'invalid value')}" if loc else err.get("msg", ""))
        raise InvalidChoiceSet("Invalid ChoiceSet: " + "; ".join(problems)) from exc


def load_answers(path: str | Path, overrides: dict[str, Any] | None = None) -> ChoiceSet:
    """Load an answers file (``.yaml``/``.yml`` or JSON) into a ``ChoiceSet``."""
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidChoiceSet(f"Cannot read answers file {file_path}: {exc}", subject=str(file_path)) from exc

    try:
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(raw) or {}
        else:
            data = json.loads(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise InvalidChoiceSet(f"Answers file {file_path} is not valid: {exc}", subject=str(file_path)) from exc

    return choice_set_from_dict(data, overrides)


def dump_answers(choices: ChoiceSet) -> dict[str, Any]:
    """Serialise a ``ChoiceSet`` into the answers-file shape (JSON-compatible)."""
    return choices.model_dump(mode="json", exclude_defaults=False)
