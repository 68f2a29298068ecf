"""monoforge configuration.

Typed run configuration for the generator.  Settings use Pydantic v2 models so
they are validated at construction time and can be serialised to/from JSON or
read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Global monoforge run configuration.

    Created once by the CLI entry point (or by tests) and passed to the
    ``Generator``.  None of the derived directories are created until the
    writing phase calls :meth:`ensure_directories`.
    """

    target_dir: Path = Field(default=Path("."))
    state_dir: str = Field(default=".monoforge")
    max_parallel_writes: int = Field(
        default=4, ge=1, description="Maximum nodes rendered and written concurrently"
    )
    install: bool = Field(default=False, description="Run the package manager after writing")
    install_timeout: int = Field(default=600, ge=10, description="Install timeout in seconds")
    dry_run: bool = Field(default=False)
    verbose: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def state_path(self) -> Path:
        """Root of the ``.monoforge/`` metadata directory inside the target."""
        return self.target_dir / self.state_dir

    @property
    def state_file(self) -> Path:
        """Path to the persisted generation state (content hashes + choices)."""
        return self.state_path / "state.json"

    @property
    def staging_dir(self) -> Path:
        """Directory where node files are staged before being moved into place."""
        return self.state_path / "staging"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<state_path>/config.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.state_path / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            MONOFORGE_TARGET, MONOFORGE_MAX_PARALLEL_WRITES,
            MONOFORGE_INSTALL, MONOFORGE_INSTALL_TIMEOUT.

        Keyword arguments take precedence over the environment.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("MONOFORGE_TARGET"):
            kwargs["target_dir"] = Path(os.environ["MONOFORGE_TARGET"])
        if os.environ.get("MONOFORGE_MAX_PARALLEL_WRITES"):
            kwargs["max_parallel_writes"] = int(os.environ["MONOFORGE_MAX_PARALLEL_WRITES"])
        if os.environ.get("MONOFORGE_INSTALL"):
            kwargs["install"] = os.environ["MONOFORGE_INSTALL"].strip().lower() in (
                "1",
                "true",
                "yes",
            )
        if os.environ.get("MONOFORGE_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["MONOFORGE_INSTALL_TIMEOUT"])

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create the metadata directories used during the writing phase."""
        for directory in (self.state_path, self.staging_dir):
            directory.mkdir(parents=True, exist_ok=True)
