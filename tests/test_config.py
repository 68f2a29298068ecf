"""Unit tests for Config (monoforge.config).

Tests cover:
- Defaults and derived paths (properties)
- Validation of numeric limits
- save/load round trip
- from_env and explicit overrides
- ensure_directories
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from monoforge.config import Config

pytestmark = pytest.mark.unit


class TestConfigDefaults:
    def test_defaults(self):
        config = Config()
        assert config.target_dir == Path(".")
        assert config.state_dir == ".monoforge"
        assert config.max_parallel_writes == 4
        assert config.install is False
        assert config.dry_run is False

    def test_derived_paths(self, tmp_path: Path):
        config = Config(target_dir=tmp_path)
        assert config.state_path == tmp_path / ".monoforge"
        assert config.state_file == tmp_path / ".monoforge" / "state.json"
        assert config.staging_dir == tmp_path / ".monoforge" / "staging"

    def test_zero_parallel_writes_rejected(self):
        with pytest.raises(ValidationError):
            Config(max_parallel_writes=0)

    def test_tiny_install_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Config(install_timeout=1)


class TestConfigPersistence:
    def test_save_and_load(self, tmp_path: Path):
        config = Config(target_dir=tmp_path, max_parallel_writes=2, install=True)
        saved = config.save()
        assert saved == tmp_path / ".monoforge" / "config.json"

        loaded = Config.load(saved)
        assert loaded.max_parallel_writes == 2
        assert loaded.install is True
        assert loaded.target_dir == tmp_path

    def test_save_to_explicit_path(self, tmp_path: Path):
        dest = tmp_path / "nested" / "cfg.json"
        assert Config().save(dest) == dest
        assert dest.exists()


class TestConfigFromEnv:
    def test_reads_environment(self, tmp_path: Path):
        env = {
            "MONOFORGE_TARGET": str(tmp_path),
            "MONOFORGE_MAX_PARALLEL_WRITES": "8",
            "MONOFORGE_INSTALL": "yes",
            "MONOFORGE_INSTALL_TIMEOUT": "120",
        }
        with patch.dict(os.environ, env, clear=False):
            config = Config.from_env()
        assert config.target_dir == tmp_path
        assert config.max_parallel_writes == 8
        assert config.install is True
        assert config.install_timeout == 120

    def test_overrides_win_and_none_is_ignored(self, tmp_path: Path):
        with patch.dict(os.environ, {"MONOFORGE_MAX_PARALLEL_WRITES": "8"}, clear=False):
            config = Config.from_env(max_parallel_writes=2, install=None, target_dir=tmp_path)
        assert config.max_parallel_writes == 2
        assert config.install is False
        assert config.target_dir == tmp_path

    def test_install_falsey_values(self):
        with patch.dict(os.environ, {"MONOFORGE_INSTALL": "0"}, clear=False):
            assert Config.from_env().install is False


class TestEnsureDirectories:
    def test_creates_state_and_staging(self, tmp_path: Path):
        config = Config(target_dir=tmp_path / "ws")
        assert not config.state_path.exists()
        config.ensure_directories()
        assert config.state_path.is_dir()
        assert config.staging_dir.is_dir()

    def test_idempotent(self, tmp_path: Path):
        config = Config(target_dir=tmp_path)
        config.ensure_directories()
        config.ensure_directories()
        assert config.staging_dir.is_dir()
