"""Tests for shared utilities (monoforge.utils)."""

from __future__ import annotations

import hashlib
import json
import sys
from pathlib import Path

import pytest

from monoforge.utils import (
    content_hash,
    dump_json,
    file_hash,
    format_duration,
    is_safe_name,
    run_command,
    slugify,
    to_camel,
    to_pascal,
    to_snake,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


class TestNames:
    @pytest.mark.parametrize(
        "text,expected",
        [("Admin Portal", "admin-portal"), ("  API (v2)  ", "api-v2"), ("web", "web")],
    )
    def test_slugify(self, text, expected):
        assert slugify(text) == expected

    @pytest.mark.parametrize("name", ["web", "api-v2", "my_app", "pkg.core", "0day"])
    def test_safe_names(self, name):
        assert is_safe_name(name)

    @pytest.mark.parametrize("name", ["", "Web", "../etc", "a/b", ".", "..", "-web", "has space"])
    def test_unsafe_names(self, name):
        assert not is_safe_name(name)

    def test_to_pascal(self):
        assert to_pascal("admin-portal") == "AdminPortal"
        assert to_pascal("my_app") == "MyApp"

    def test_to_camel_and_snake(self):
        assert to_camel("admin-portal") == "adminPortal"
        assert to_camel("") == ""
        assert to_snake("AdminPortal") == "admin_portal"
        assert to_snake("admin-portal") == "admin_portal"


# ---------------------------------------------------------------------------
# JSON and hashing
# ---------------------------------------------------------------------------


class TestJsonAndHashing:
    def test_dump_json_is_stable(self):
        out = dump_json({"b": 1, "a": [1, 2]})
        assert out.endswith("\n")
        assert out.index('"b"') < out.index('"a"')
        assert json.loads(out) == {"b": 1, "a": [1, 2]}

    def test_dump_json_keeps_unicode(self):
        assert "café" in dump_json({"name": "café"})

    def test_content_hash_matches_sha256(self):
        assert content_hash("hello") == hashlib.sha256(b"hello").hexdigest()
        assert content_hash(b"hello") == content_hash("hello")

    def test_file_hash(self, tmp_path: Path):
        path = tmp_path / "f.txt"
        assert file_hash(path) is None
        path.write_text("hello", encoding="utf-8")
        assert file_hash(path) == content_hash("hello")

    def test_file_hash_of_directory_is_none(self, tmp_path: Path):
        assert file_hash(tmp_path) is None


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    def test_negative(self):
        assert format_duration(-1) == "0.0s"


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_captures_output(self):
        code, out, err = await run_command([sys.executable, "-c", "print('hi')"])
        assert code == 0
        assert out == "hi"
        assert err == ""

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        code, _, _ = await run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert code == 3

    @pytest.mark.asyncio
    async def test_timeout_reports_minus_one(self):
        code, _, err = await run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=1
        )
        assert code == -1
        assert "timed out" in err

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["definitely-not-a-real-binary-xyz"])
