"""Unit tests for the run orchestrator and CLI (monoforge.pipeline).

Tests cover:
- Generator phase transitions and RunResult exit codes
- Fail-closed planning / validating (no filesystem writes)
- Optional install with adapter failures
- CLI argument handling: init / sync, --yes, --answers, overrides
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from monoforge.adapters import PnpmAdapter
from monoforge.config import Config
from monoforge.errors import AdapterError, ConfigConflict, InvalidEdge
from monoforge.pipeline import (
    EXIT_INTERNAL,
    EXIT_INVALID,
    EXIT_OK,
    EXIT_PARTIAL,
    Generator,
    Phase,
    RunMode,
    cli,
    exit_code_for,
)
from monoforge.writer import GenerationState

pytestmark = pytest.mark.unit


def _snapshot(root: Path) -> dict[str, bytes]:
    """Every file under *root*, generator metadata included."""
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in root.rglob("*") if p.is_file()}

SCENARIO_C_APP = {
    "name": "web",
    "kind": "frontend",
    "framework": "react",
    "styling": "tailwind",
    "styling-override": "custom-preset",
}


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class TestGenerator:
    async def test_successful_run(self, config, make_choices):
        generator = Generator(config)
        result = await generator.run(make_choices())
        assert result.exit_code == EXIT_OK
        assert result.success
        assert result.phase is Phase.DONE
        assert generator.phase is Phase.DONE
        assert result.graph is not None and result.graph.frozen
        assert config.state_file.is_file()

    async def test_graph_error_fails_closed(self, config, make_choices, scenario_a_answers, target_dir):
        scenario_a_answers["apps"].append(
            {"name": "worker", "kind": "backend", "framework": "express", "depends_on": ["apps/api"]}
        )
        result = await Generator(config).run(make_choices(scenario_a_answers))
        assert result.exit_code == EXIT_INVALID
        assert result.phase is Phase.PLANNING
        assert isinstance(result.error, InvalidEdge)
        assert list(target_dir.iterdir()) == []

    async def test_config_conflict_fails_in_validating(self, config, make_choices, target_dir):
        choices = make_choices({"project_name": "acme", "apps": [SCENARIO_C_APP]})
        result = await Generator(config).run(choices)
        assert result.exit_code == EXIT_INVALID
        assert result.phase is Phase.VALIDATING
        assert isinstance(result.error, ConfigConflict)
        assert list(target_dir.iterdir()) == []

    async def test_init_refuses_existing_workspace(self, config, make_choices):
        assert (await Generator(config).run(make_choices())).exit_code == EXIT_OK
        result = await Generator(config).run(make_choices(), RunMode.INIT)
        assert result.exit_code == EXIT_INVALID
        assert "monoforge sync" in str(result.error)

    async def test_sync_after_init(self, config, make_choices):
        await Generator(config).run(make_choices())
        result = await Generator(config).run(make_choices(), RunMode.SYNC)
        assert result.exit_code == EXIT_OK
        assert result.report.changed == []

    async def test_install_success(self, target_dir, make_choices):
        adapter = PnpmAdapter()
        config = Config(target_dir=target_dir, install=True)
        with patch.object(PnpmAdapter, "install", new=AsyncMock(return_value=0)) as install:
            result = await Generator(config, adapter=adapter).run(make_choices())
        install.assert_awaited_once()
        assert result.exit_code == EXIT_OK

    async def test_install_failure_is_exit_3(self, target_dir, make_choices):
        config = Config(target_dir=target_dir, install=True)
        failure = AdapterError("pnpm install failed (exit 1)", command="pnpm install", stderr="boom")
        with patch.object(PnpmAdapter, "install", new=AsyncMock(side_effect=failure)):
            result = await Generator(config, adapter=PnpmAdapter()).run(make_choices())
        assert result.exit_code == EXIT_INTERNAL
        assert result.report.adapter_error == "pnpm install failed (exit 1)"
        assert (target_dir / "package.json").is_file()

    async def test_dry_run_skips_install(self, target_dir, make_choices):
        config = Config(target_dir=target_dir, install=True, dry_run=True)
        with patch.object(PnpmAdapter, "install", new=AsyncMock(return_value=0)) as install:
            result = await Generator(config, adapter=PnpmAdapter()).run(make_choices())
        install.assert_not_awaited()
        assert result.report.dry_run
        assert list(target_dir.iterdir()) == []

    def test_plan_is_side_effect_free(self, config, make_choices, target_dir):
        graph = Generator(config).plan(make_choices())
        assert graph.frozen
        assert list(target_dir.iterdir()) == []


class TestExitCodes:
    def test_mapping(self):
        assert exit_code_for(InvalidEdge("a", "b")) == EXIT_INVALID
        assert exit_code_for(ConfigConflict("n", "format", ["x", "y"])) == EXIT_INVALID
        assert exit_code_for(AdapterError("x")) == EXIT_INTERNAL
        assert exit_code_for(RuntimeError("x")) == EXIT_INTERNAL


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_init_with_answers(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "--answers", str(answers), "--yes"]) == EXIT_OK
        assert (target_dir / "apps/api/package.json").is_file()

    def test_init_twice_is_rejected(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y"])
        assert cli(["init", str(target_dir), "-a", str(answers), "-y"]) == EXIT_INVALID

    def test_sync_uses_stored_choices(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y"])
        assert cli(["sync", str(target_dir), "--yes"]) == EXIT_OK

    def test_sync_reports_conflict(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y"])
        (target_dir / "packages/config/base.json").write_text("{}\n", encoding="utf-8")
        assert cli(["sync", str(target_dir), "--yes"]) == EXIT_PARTIAL

    def test_yes_without_answers(self, target_dir):
        assert cli(["init", str(target_dir), "--yes"]) == EXIT_INVALID

    def test_unknown_field(self, write_answers, scenario_a_answers, target_dir):
        scenario_a_answers["colour"] = "blue"
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y"]) == EXIT_INVALID
        assert list(target_dir.iterdir()) == []

    def test_scenario_b_writes_nothing(self, write_answers, scenario_a_answers, target_dir):
        scenario_a_answers["apps"].append(
            {"name": "worker", "kind": "backend", "framework": "express", "depends_on": ["apps/api"]}
        )
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y"]) == EXIT_INVALID
        assert list(target_dir.iterdir()) == []

    def test_name_override(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y", "--name", "globex"]) == EXIT_OK
        state = GenerationState.load(target_dir / ".monoforge" / "state.json")
        assert state.choices["project_name"] == "globex"

    def test_dry_run(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y", "--dry-run"]) == EXIT_OK
        assert list(target_dir.iterdir()) == []

    def test_package_manager_flag(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y", "--package-manager", "npm"]) == EXIT_OK
        assert not (target_dir / "pnpm-workspace.yaml").exists()

    def test_package_manager_for_wrong_runtime(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        code = cli(["init", str(target_dir), "-a", str(answers), "-y", "--package-manager", "deno"])
        assert code == EXIT_INVALID
        assert list(target_dir.iterdir()) == []

    def test_sync_keeps_recorded_package_manager(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y", "--package-manager", "npm"])
        before = _snapshot(target_dir)
        assert cli(["sync", str(target_dir), "-y"]) == EXIT_OK
        assert _snapshot(target_dir) == before
        assert not (target_dir / "pnpm-workspace.yaml").exists()
        state = GenerationState.load(target_dir / ".monoforge" / "state.json")
        assert state.package_manager == "npm"

    def test_flag_overrides_recorded_package_manager(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y", "--package-manager", "npm"])
        assert cli(["sync", str(target_dir), "-y", "--package-manager", "pnpm"]) == EXIT_OK
        assert (target_dir / "pnpm-workspace.yaml").is_file()
        state = GenerationState.load(target_dir / ".monoforge" / "state.json")
        assert state.package_manager == "pnpm"

    def test_noop_sync_leaves_state_untouched(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        cli(["init", str(target_dir), "-a", str(answers), "-y"])
        state_file = target_dir / ".monoforge" / "state.json"
        before = state_file.read_bytes()
        assert cli(["sync", str(target_dir), "-y"]) == EXIT_OK
        assert state_file.read_bytes() == before

    def test_prompts_when_interactive(self, target_dir, make_choices):
        with patch("monoforge.pipeline.prompt_choice_set", return_value=make_choices()) as prompt:
            assert cli(["init", str(target_dir), "--runtime", "node"]) == EXIT_OK
        prompt.assert_called_once()
        assert prompt.call_args.kwargs["defaults"]["runtime"] == "node"

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            cli([])

    def test_new_target_directory_is_created(self, write_answers, scenario_a_answers, tmp_path: Path):
        answers = write_answers(scenario_a_answers)
        target = tmp_path / "fresh" / "acme"
        assert cli(["init", str(target), "-a", str(answers), "-y"]) == EXIT_OK
        assert (target / "pnpm-workspace.yaml").is_file()

    def test_invalid_parallelism(self, write_answers, scenario_a_answers, target_dir):
        answers = write_answers(scenario_a_answers)
        assert cli(["init", str(target_dir), "-a", str(answers), "-y", "--max-parallel", "0"]) == EXIT_INVALID
        assert list(target_dir.iterdir()) == []
