"""monoforge run orchestrator.

Drives one generation run through four phases:

PLANNING   -- Build the workspace graph from the ChoiceSet.
VALIDATING -- Resolve config chains; reject conflicts and cycles.
WRITING    -- Stage and write files (and optionally install).
REPORTING  -- Print the write report and the run summary.

Planning and Validating never touch the filesystem, so any error there leaves
the target untouched.  Writing fails open per file.

Usage::

    monoforge init ./acme --answers answers.yaml --yes
    monoforge sync ./acme --dry-run
    python -m monoforge.pipeline init ./acme
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from rich.panel import Panel

from monoforge.adapters import PackageManagerAdapter, adapter_for, detect_adapter
from monoforge.catalog import TemplateCatalog, TemplateRenderer, default_catalog
from monoforge.choices import ChoiceSet, Layout, Runtime, choice_set_from_dict, load_answers
from monoforge.choices.prompts import prompt_choice_set
from monoforge.config import Config
from monoforge.errors import (
    AdapterError,
    ConfigError,
    GraphError,
    MonoforgeError,
    ValidationError,
    WriteError,
)
from monoforge.graph import ConfigInheritanceResolver, WorkspaceGraph, WorkspaceGraphBuilder
from monoforge.utils import (
    console,
    format_duration,
    print_error,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
)
from monoforge.writer import FileTreeWriter, GenerationState, WriteReport

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_PARTIAL = 2
EXIT_INTERNAL = 3


class Phase(str, Enum):
    PLANNING = "planning"
    VALIDATING = "validating"
    WRITING = "writing"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class RunMode(str, Enum):
    INIT = "init"
    SYNC = "sync"


def exit_code_for(exc: BaseException) -> int:
    """Map an error to the CLI exit code."""
    if isinstance(exc, (ValidationError, GraphError, ConfigError)):
        return EXIT_INVALID
    return EXIT_INTERNAL


@dataclass
class RunResult:
    """Outcome of ``Generator.run``."""

    exit_code: int
    phase: Phase
    graph: Optional[WorkspaceGraph] = None
    report: Optional[WriteReport] = None
    error: Optional[BaseException] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_OK


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class Generator:
    """Runs the Planning -> Validating -> Writing -> Reporting state machine.

    Attributes:
        config: Run configuration (target directory, parallelism, install).
        phase: The phase the run is currently in (or ended in).
    """

    def __init__(
        self,
        config: Config,
        catalog: TemplateCatalog | None = None,
        renderer: TemplateRenderer | None = None,
        adapter: PackageManagerAdapter | None = None,
    ) -> None:
        self.config = config
        self.catalog = catalog or default_catalog()
        self.renderer = renderer or TemplateRenderer()
        self.adapter = adapter
        self.builder = WorkspaceGraphBuilder(self.catalog)
        self.resolver = ConfigInheritanceResolver(self.catalog)
        self.phase = Phase.PLANNING

    def _enter(self, phase: Phase, quiet: bool = False) -> None:
        self.phase = phase
        if not quiet:
            print_phase_header(phase.value)

    def plan(self, choices: ChoiceSet) -> WorkspaceGraph:
        """Planning + Validating: a resolved, frozen graph (no filesystem writes)."""
        self._enter(Phase.PLANNING, quiet=True)
        graph = self.builder.build(choices)
        self._enter(Phase.VALIDATING, quiet=True)
        return self.resolver.resolve(graph)

    async def run(
        self,
        choices: ChoiceSet,
        mode: RunMode = RunMode.INIT,
        cancel: asyncio.Event | None = None,
    ) -> RunResult:
        """Execute one generation run.

        Errors raised before Writing are returned (not raised) with exit code
        1; nothing on disk has changed at that point.
        """
        start = time.monotonic()
        target = self.config.target_dir
        dry_run = self.config.dry_run

        console.print(
            Panel(
                f"[bold bright_cyan]monoforge {mode.value}[/bold bright_cyan]\n"
                f"Project : {choices.project_name}\n"
                f"Layout  : {choices.layout.value} ({choices.runtime.value})\n"
                f"Target  : {target.resolve()}"
                + ("\n[yellow]Dry run: nothing will be written[/yellow]" if dry_run else ""),
                title="[bold]Generation Start[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            self._enter(Phase.PLANNING)
            if mode is RunMode.INIT and self.config.state_file.exists():
                raise ValidationError(
                    f"{target} already holds a generated workspace; use 'monoforge sync'",
                    subject=str(target),
                )
            graph = self.builder.build(choices)
            console.print(f"  {len(graph)} node(s), {len(graph.levels())} dependency level(s)")

            self._enter(Phase.VALIDATING)
            self.resolver.resolve(graph)
        except MonoforgeError as exc:
            failed_in = self.phase
            self.phase = Phase.FAILED
            print_error(f"{failed_in.value.capitalize()} failed: {exc}")
            return RunResult(exit_code_for(exc), failed_in, error=exc, duration=time.monotonic() - start)

        # --package-manager, then the manager recorded by the last run, then lockfiles
        adapter = self.adapter or detect_adapter(
            target,
            choices.runtime,
            GenerationState.load(self.config.state_file).package_manager,
        )

        self._enter(Phase.WRITING)
        writer = FileTreeWriter(
            config=self.config,
            catalog=self.catalog,
            renderer=self.renderer,
            adapter=adapter,
            resolver=self.resolver,
        )
        try:
            report = await writer.write(graph, target, dry_run=dry_run, cancel=cancel)
        except OSError as exc:
            self.phase = Phase.FAILED
            error = WriteError(f"Writing to {target} failed: {exc}", subject=str(target))
            print_error(str(error))
            return RunResult(EXIT_INTERNAL, Phase.WRITING, graph=graph, error=error,
                             duration=time.monotonic() - start)

        if self.config.install and not dry_run and not report.cancelled:
            console.print(f"  Installing with [bold]{adapter.name}[/bold] ...")
            try:
                await adapter.install(target, timeout=self.config.install_timeout)
            except AdapterError as exc:
                report.adapter_error = str(exc)
                print_error(str(exc))
                if exc.stderr:
                    console.print(f"[dim]{exc.stderr.strip()}[/dim]")

        self._enter(Phase.REPORTING)
        self._print_report(report)
        duration = time.monotonic() - start
        self.phase = Phase.DONE
        self._print_final_summary(report, duration)
        return RunResult(report.exit_code, Phase.DONE, graph=graph, report=report, duration=duration)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _print_report(self, report: WriteReport) -> None:
        if any(o.status.value != "unchanged" for o in report.outcomes):
            console.print(report.to_table(include_unchanged=self.config.verbose))
        print_summary_table(
            {status: count for status, count in report.summary().items() if count},
            title="File outcomes",
        )

    def _print_final_summary(self, report: WriteReport, duration: float) -> None:
        if report.exit_code == EXIT_OK:
            border_style = "bold green"
            status_text = "[bold green]GENERATION SUCCEEDED[/bold green]"
        elif report.exit_code == EXIT_PARTIAL:
            border_style = "bold yellow"
            status_text = "[bold yellow]GENERATION PARTIALLY SUCCEEDED[/bold yellow]"
        else:
            border_style = "bold red"
            status_text = "[bold red]GENERATION FAILED[/bold red]"

        lines = [
            status_text,
            "",
            f"Duration  : {format_duration(duration)}",
            f"Changed   : {len(report.changed)} file(s)",
        ]
        if report.conflicts:
            lines.append(f"Conflicts : {len(report.conflicts)} (left untouched)")
        if report.errors:
            lines.append(f"Errors    : {len(report.errors)}")
        if report.cancelled:
            lines.append("Cancelled : remaining files skipped")
        lines.extend(["", f"State     : {self.config.state_file}"])

        console.print()
        console.print(Panel("\n".join(lines), title="[bold]Generation Complete[/bold]", border_style=border_style))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("target", nargs="?", default=".", help="Workspace root (default: .)")
    common.add_argument("--answers", "-a", default=None, help="YAML or JSON answers file")
    common.add_argument("--name", default=None, help="Project name (overrides answers)")
    common.add_argument("--layout", choices=[layout.value for layout in Layout], default=None)
    common.add_argument("--runtime", choices=[r.value for r in Runtime], default=None)
    common.add_argument(
        "--package-manager",
        choices=["pnpm", "npm", "bun", "deno"],
        default=None,
        help="Package manager adapter (default: detected from lockfiles, else the runtime default)",
    )
    common.add_argument("--dry-run", action="store_true", help="Report planned changes without writing")
    common.add_argument("--yes", "-y", action="store_true", help="Never prompt")
    common.add_argument("--install", action="store_true", help="Run the package manager install afterwards")
    common.add_argument("--max-parallel", type=int, default=None, help="Nodes written concurrently")
    common.add_argument("--verbose", "-v", action="store_true")

    parser = argparse.ArgumentParser(
        prog="monoforge",
        description="monoforge -- TypeScript workspace generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  monoforge init ./acme --answers answers.yaml --yes\n"
            "  monoforge sync ./acme --dry-run\n"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", parents=[common], help="Generate a new workspace")
    sub.add_parser("sync", parents=[common], help="Regenerate an existing workspace")
    return parser


def _resolve_choices(args: argparse.Namespace, config: Config) -> ChoiceSet:
    """Answers file > stored state (sync) > interactive prompts."""
    overrides: dict[str, Any] = {
        "project_name": args.name,
        "layout": args.layout,
        "runtime": args.runtime,
    }
    if args.answers:
        return load_answers(args.answers, overrides)

    if args.command == RunMode.SYNC.value:
        stored = GenerationState.load(config.state_file).choices
        if stored:
            return choice_set_from_dict(stored, overrides)

    if args.yes:
        raise ValidationError("--yes needs --answers (or a previous generation for sync)")
    return prompt_choice_set(defaults=overrides)


async def _run_with_signals(generator: Generator, choices: ChoiceSet, mode: RunMode) -> RunResult:
    """Ctrl-C cancels between node writes instead of killing the run."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handled = True
    except (NotImplementedError, RuntimeError):
        # Windows event loops and non-main threads
        handled = False
    try:
        return await generator.run(choices, mode, cancel=cancel)
    finally:
        if handled:
            loop.remove_signal_handler(signal.SIGINT)


def cli(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the generator and return the exit code."""
    args = _build_parser().parse_args(argv)
    mode = RunMode(args.command)

    try:
        config = Config.from_env(
            target_dir=Path(args.target),
            dry_run=args.dry_run,
            verbose=args.verbose,
            install=True if args.install else None,
            max_parallel_writes=args.max_parallel,
        )
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        return EXIT_INVALID

    try:
        choices = _resolve_choices(args, config)
        adapter = (
            adapter_for(choices.runtime, args.package_manager)
            if args.package_manager
            else None
        )
    except MonoforgeError as exc:
        print_error(str(exc))
        return exit_code_for(exc)

    generator = Generator(config, adapter=adapter)
    try:
        result = asyncio.run(_run_with_signals(generator, choices, mode))
    except Exception as exc:
        print_error(f"Internal error during {generator.phase.value}: {exc}")
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
        return EXIT_INTERNAL

    if result.exit_code == EXIT_OK:
        print_success("Workspace is up to date." if not config.dry_run else "Dry run complete.")
    elif result.exit_code == EXIT_PARTIAL:
        print_warning("Finished with conflicts or per-file errors; see the report above.")
    return result.exit_code


def main() -> None:
    """CLI entry point for ``monoforge`` / ``python -m monoforge.pipeline``."""
    sys.exit(cli())


if __name__ == "__main__":
    main()
