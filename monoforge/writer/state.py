"""Persisted generation state.

Records the content hash of every file the generator last wrote, plus the
ChoiceSet used, in ``.monoforge/state.json``.  A file whose on-disk hash still
matches its recorded hash is generator-owned and may be overwritten; anything
else was changed by the user and is left alone.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from monoforge.utils import print_warning

STATE_VERSION = 1


class GenerationState(BaseModel):
    """Hashes of generator-owned files and the choices that produced them."""

    version: int = Field(default=STATE_VERSION)
    generated_at: str = Field(default="")
    choices: Optional[dict[str, Any]] = Field(default=None)
    package_manager: Optional[str] = Field(default=None, description="Adapter name used to write the tree")
    files: dict[str, str] = Field(default_factory=dict, description="path -> sha256")

    def recorded(self, path: str) -> str | None:
        return self.files.get(path)

    def record(self, path: str, digest: str) -> None:
        self.files[path] = digest

    @classmethod
    def load(cls, path: Path) -> "GenerationState":
        """Load state from *path*; a missing file yields an empty state.

        A corrupted state file is treated as missing (with a warning): every
        existing file then counts as user-owned, so nothing is overwritten.
        """
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (PydanticValidationError, ValueError) as exc:
            print_warning(f"Ignoring unreadable generation state {path}: {exc}")
            return cls()

    def content(self) -> dict[str, Any]:
        """Everything except the timestamp; equal content means nothing to save."""
        return self.model_dump(exclude={"generated_at"})

    def save(self, path: Path) -> Path:
        """Write the state atomically (temp file + ``os.replace``)."""
        self.generated_at = datetime.now(timezone.utc).isoformat()
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
        return path
