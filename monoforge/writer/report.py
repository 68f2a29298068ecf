"""Per-path outcomes of one writing phase.

Writing fails open: a file that cannot be written, or that the user changed
since the last generation, is recorded here and the run carries on.  The
report is the single place every writing-phase problem ends up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from rich.table import Table


class FileStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"
    ERROR = "error"
    SKIPPED = "skipped"
    STALE = "stale"


_STATUS_STYLES: dict[FileStatus, str] = {
    FileStatus.CREATED: "green",
    FileStatus.UPDATED: "cyan",
    FileStatus.UNCHANGED: "dim",
    FileStatus.CONFLICT: "bold yellow",
    FileStatus.ERROR: "bold red",
    FileStatus.SKIPPED: "magenta",
    FileStatus.STALE: "yellow",
}


@dataclass
class FileOutcome:
    """What happened (or would happen, in a dry run) to one path."""

    path: str
    status: FileStatus
    node_id: str = ""
    detail: str = ""


@dataclass
class WriteReport:
    """Aggregated result of ``FileTreeWriter.write``.

    Attributes:
        outcomes: One entry per planned path, plus ``stale`` entries for
            previously generated files the current choices no longer produce.
        dry_run: Outcomes were computed without touching the filesystem.
        cancelled: The run stopped between nodes; remaining files are
            ``skipped``.
        adapter_error: Message of a failed package-manager invocation.
    """

    outcomes: list[FileOutcome] = field(default_factory=list)
    dry_run: bool = False
    cancelled: bool = False
    adapter_error: str = ""

    def add(self, outcome: FileOutcome) -> None:
        self.outcomes.append(outcome)

    def by_status(self, status: FileStatus) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status is status]

    def outcome_for(self, path: str) -> FileOutcome | None:
        for outcome in self.outcomes:
            if outcome.path == path:
                return outcome
        return None

    @property
    def conflicts(self) -> list[FileOutcome]:
        return self.by_status(FileStatus.CONFLICT)

    @property
    def errors(self) -> list[FileOutcome]:
        return self.by_status(FileStatus.ERROR)

    @property
    def changed(self) -> list[FileOutcome]:
        """Files created or updated by the run."""
        return [o for o in self.outcomes if o.status in (FileStatus.CREATED, FileStatus.UPDATED)]

    @property
    def exit_code(self) -> int:
        """0 clean, 2 partial success (conflicts / per-file errors / cancelled),
        3 package-manager failure."""
        if self.adapter_error:
            return 3
        if self.conflicts or self.errors or self.cancelled:
            return 2
        return 0

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in FileStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    def to_table(self, include_unchanged: bool = False) -> Table:
        """Rich table of outcomes (unchanged files hidden by default)."""
        title = "Planned changes (dry run)" if self.dry_run else "Write report"
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Status", no_wrap=True)
        table.add_column("Path")
        table.add_column("Node", style="dim")
        table.add_column("Detail")
        for outcome in self.outcomes:
            if outcome.status is FileStatus.UNCHANGED and not include_unchanged:
                continue
            style = _STATUS_STYLES[outcome.status]
            table.add_row(
                f"[{style}]{outcome.status.value}[/{style}]",
                outcome.path,
                outcome.node_id,
                outcome.detail,
            )
        return table
