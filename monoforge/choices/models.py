"""Pydantic v2 models for the generator's declarative input.

A ``ChoiceSet`` is the complete, immutable record of what the user asked for.
It carries no behaviour: the graph builder reads it, and the CLI layer
produces it from prompts or an answers file.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from monoforge.utils import is_safe_name


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Layout(str, Enum):
    """Workspace shape."""
    STANDALONE = "standalone"
    MONOREPO = "monorepo"


class Runtime(str, Enum):
    """JavaScript runtime the workspace targets; selects the package manager."""
    NODE = "node"
    BUN = "bun"
    DENO = "deno"


class AppKind(str, Enum):
    """Role of an application inside the workspace."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    MOBILE = "mobile"
    ADMIN = "admin"


class PackageKind(str, Enum):
    """Shared package kinds that can live under ``packages/``."""
    TYPES = "types"
    UTILS = "utils"
    CONFIG = "config"
    DATABASE = "database"
    VALIDATION = "validation"
    UI = "ui"


class Orm(str, Enum):
    """Persistence layer used by the ``database`` package."""
    NONE = "none"
    DRIZZLE = "drizzle"
    PRISMA = "prisma"
    KYSELY = "kysely"
    RAW = "raw"


# ---------------------------------------------------------------------------
# Choice records
# ---------------------------------------------------------------------------

class AppChoice(BaseModel):
    """Choices for one application under ``apps/``."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(..., description="Directory and package name, e.g. 'web'")
    kind: AppKind = Field(..., description="frontend, backend, mobile or admin")
    framework: str = Field(..., description="Framework template id, e.g. 'react'")
    styling: Optional[str] = Field(default=None, description="Styling template id")
    styling_override: Optional[str] = Field(
        default=None,
        alias="styling-override",
        description="Extra style preset applied on top of the styling choice",
    )
    state_management: Optional[str] = Field(default=None, description="State library template id")
    testing: tuple[str, ...] = Field(default=(), description="Testing template ids")
    depends_on: tuple[str, ...] = Field(
        default=(),
        description="Extra dependencies: node ids ('packages/types') or bare package names",
    )

    @field_validator("name")
    @classmethod
    def _safe_name(cls, value: str) -> str:
        if not is_safe_name(value):
            raise ValueError(
                f"app name '{value}' must be lowercase and filesystem-safe "
                "(letters, digits, '.', '_' and '-')"
            )
        return value

    @field_validator("testing")
    @classmethod
    def _unique_testing(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(value)) != len(value):
            raise ValueError("testing ids must be unique")
        return value


class ChoiceSet(BaseModel):
    """The resolved set of user decisions driving one generation run."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    project_name: str = Field(..., description="Workspace name; used as the npm scope")
    description: str = Field(default="", description="Short project description")
    layout: Layout = Field(default=Layout.MONOREPO)
    runtime: Runtime = Field(default=Runtime.NODE)
    apps: tuple[AppChoice, ...] = Field(..., min_length=1)
    shared_packages: tuple[PackageKind, ...] = Field(default=())
    orm: Orm = Field(default=Orm.NONE)

    @field_validator("project_name")
    @classmethod
    def _safe_project_name(cls, value: str) -> str:
        if not value or not is_safe_name(value):
            raise ValueError(
                f"project name '{value}' must be non-empty, lowercase and filesystem-safe"
            )
        return value

    @field_validator("apps")
    @classmethod
    def _unique_app_names(cls, value: tuple[AppChoice, ...]) -> tuple[AppChoice, ...]:
        names = [app.name for app in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate app names: {', '.join(duplicates)}")
        return value

    @field_validator("shared_packages")
    @classmethod
    def _unique_packages(cls, value: tuple[PackageKind, ...]) -> tuple[PackageKind, ...]:
        if len(set(value)) != len(value):
            raise ValueError("shared_packages must not contain duplicates")
        return value

    def has_package(self, kind: PackageKind) -> bool:
        """Return ``True`` if the shared package *kind* was requested."""
        return kind in self.shared_packages
