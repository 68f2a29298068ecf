"""Template bundle data types.

A bundle is a tagged variant keyed by ``<category>:<choice>``: adding a new
framework means registering a new bundle, never subclassing.  Everything here
is frozen so the catalog can be shared safely across concurrent renders.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional


ContentGenerator = Callable[[dict[str, Any]], str]


class ConfigCategory(str, Enum):
    """Config families that carry an inheritance chain."""
    COMPILER = "compiler"
    LINT = "lint"
    FORMAT = "format"


# Bundle categories in the order their bundles are applied to a node.
CATEGORY_PRIORITY: tuple[str, ...] = (
    "workspace",
    "framework",
    "package",
    "orm",
    "styling",
    "styling-override",
    "state",
    "testing",
)


@dataclass(frozen=True)
class TemplateFile:
    """One file a bundle contributes.

    Exactly one of ``template`` (a Jinja2 template name under the catalog's
    template directory) or ``generator`` (a python callable receiving the
    render context) must be set.
    """

    path: str
    template: Optional[str] = None
    generator: Optional[ContentGenerator] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if (self.template is None) == (self.generator is None):
            raise ValueError(f"TemplateFile '{self.path}' needs exactly one of template/generator")


@dataclass(frozen=True)
class TemplateBundle:
    """A named set of file templates plus the dependencies they need."""

    category: str
    choice: str
    targets: frozenset[str]
    files: tuple[TemplateFile, ...] = ()
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)
    config_overrides: Mapping[ConfigCategory, str] = field(default_factory=dict)
    requires_packages: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        # Freeze the mappings; dataclass(frozen=True) only guards attributes.
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        object.__setattr__(self, "dev_dependencies", MappingProxyType(dict(self.dev_dependencies)))
        object.__setattr__(self, "scripts", MappingProxyType(dict(self.scripts)))
        object.__setattr__(self, "config_overrides", MappingProxyType(dict(self.config_overrides)))

    @property
    def id(self) -> str:
        return f"{self.category}:{self.choice}"

    @property
    def facet(self) -> str:
        """Facet id reported in config conflicts (same shape as ``id``)."""
        return self.id

    def supports(self, target: str) -> bool:
        """Whether the bundle may be applied to a node of kind *target*.

        Targets are app kinds (``frontend``) or ``package:<kind>``; ``*``
        matches everything.
        """
        return "*" in self.targets or target in self.targets


@dataclass(frozen=True)
class ConfigEntry:
    """One link of a config chain, materialized once at the config home."""

    id: str
    category: ConfigCategory
    path: str
    generator: ContentGenerator = field(compare=False)
    base: bool = False
    settings: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))
