"""Shared utility functions for monoforge.

Provides async command execution, JSON output, content hashing, name helpers and
Rich-based console reporting.  All console output in the project goes through
the module-level ``console``.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    argv: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *argv* (no shell) and collect its output.

    Returns ``(returncode, stdout, stderr)`` with both streams decoded and
    stripped.  On timeout the child is killed and ``-1`` is returned with
    the reason in stderr.  A missing executable raises ``FileNotFoundError``.
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=None if cwd is None else str(cwd),
        env={**os.environ, **env} if env else None,
    )
    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {' '.join(argv)}"

    return process.returncode or 0, _decode(out), _decode(err)


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def slugify(text: str) -> str:
    """Convert text to a filename/package-name safe slug (hyphenated).

    Examples::

        slugify("Admin Portal") -> "admin-portal"
        slugify("  API (v2)  ") -> "api-v2"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower().strip())
    return slug.strip("-")


def is_safe_name(name: str) -> bool:
    """Return ``True`` if *name* is usable as a directory and npm package name."""
    return bool(_SLUG_RE.match(name)) and name not in (".", "..")


def to_pascal(name: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s.]+", name)
    return "".join(word.capitalize() for word in parts if word)


def to_camel(name: str) -> str:
    pascal = to_pascal(name)
    return pascal[:1].lower() + pascal[1:]


def to_snake(name: str) -> str:
    """``AdminPortal`` / ``admin-portal`` -> ``admin_portal``."""
    words = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    return "_".join(w for w in re.split(r"[-_\s.]+", words.lower()) if w)


# ---------------------------------------------------------------------------
# JSON I/O and hashing
# ---------------------------------------------------------------------------


def dump_json(data: Any) -> str:
    """Serialise *data* the way every generated JSON file is written.

    Two-space indentation and a trailing newline, keys kept in insertion
    order so callers control the layout.
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def content_hash(content: str | bytes) -> str:
    """Return the sha256 hex digest of *content* (text is UTF-8 encoded)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def file_hash(path: Path) -> str | None:
    """Hash a file on disk, or return ``None`` if it does not exist."""
    if not path.is_file():
        return None
    return content_hash(path.read_bytes())


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``; negatives clamp to zero."""
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}m {rest}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

PHASE_COLORS: dict[str, str] = {
    "planning": "bright_cyan",
    "validating": "bright_yellow",
    "writing": "bright_green",
    "reporting": "bright_blue",
}


def print_phase_header(name: str) -> None:
    """Print a full-width rule announcing a run phase."""
    color = PHASE_COLORS.get(name.lower(), "white")
    console.print(Rule(f"[bold {color}] {name.upper()} [/bold {color}]", style=color))


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Status", style="dim", no_wrap=True)
    table.add_column("Count", justify="right")
    for label, value in data.items():
        table.add_row(label, str(value))
    console.print(table)
    console.print()


def _say(style: str, message: str) -> None:
    console.print(f"[{style}]{message}[/{style}]")


def print_success(message: str) -> None:
    _say("bold green", message)


def print_error(message: str) -> None:
    _say("bold red", message)


def print_warning(message: str) -> None:
    _say("bold yellow", message)
