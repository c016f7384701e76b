"""Tests for command history filtering."""

from __future__ import annotations

import json

import pytest
from pathlib import Path

from contextkeeper.collectors.history import (
    collect_command_history,
    compile_patterns,
    filter_history,
    parse_history_line,
    read_history,
)
from contextkeeper.config import ContextKeeperConfig, Environment, HistoryConfig
from contextkeeper.models import HistoryEntry


def line(command, timestamp: str = "2026-10-19 10:00:00", **extra) -> str:
    return json.dumps({"timestamp": timestamp, "command": command, **extra})


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "home" / "command-history.jsonl"


@pytest.fixture
def config(tmp_path: Path, log_file: Path) -> ContextKeeperConfig:
    return ContextKeeperConfig(
        env=Environment(cwd=tmp_path, home=tmp_path / "home"),
        history=HistoryConfig(log_file=log_file),
    )


def write_log(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class TestParseHistoryLine:
    def test_valid(self):
        entry = parse_history_line(line("lunch sdk_car-eng", cwd="/src"))
        assert entry == HistoryEntry(timestamp="2026-10-19 10:00:00", command="lunch sdk_car-eng")

    def test_missing_timestamp(self):
        entry = parse_history_line(json.dumps({"command": "mm"}))
        assert entry == HistoryEntry(timestamp="", command="mm")

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "{truncated",
            "[1, 2, 3]",
            json.dumps({"timestamp": "t"}),
            json.dumps({"command": ""}),
            json.dumps({"command": 42}),
        ],
    )
    def test_rejected(self, raw: str):
        assert parse_history_line(raw) is None


class TestFilterHistory:
    def test_empty_patterns_match_everything(self):
        lines = [line("ls"), line("git status"), line("")]
        result = filter_history(lines, [], 20)
        assert [e.command for e in result] == ["ls", "git status"]

    def test_patterns_filter(self):
        patterns = compile_patterns([r"lunch\s+\S+", r"mm\b"])
        lines = [line("lunch aosp_x86-eng"), line("ls -la"), line("mm -j8"), line("vim mmap.c")]
        result = filter_history(lines, patterns, 20)
        assert [e.command for e in result] == ["lunch aosp_x86-eng", "mm -j8"]

    def test_search_not_anchored(self):
        patterns = compile_patterns([r"source\s+.*envsetup"])
        result = filter_history([line("cd src && source build/envsetup.sh")], patterns, 20)
        assert len(result) == 1

    def test_keeps_most_recent(self):
        lines = [line(f"cmd{i}", timestamp=str(i)) for i in range(5)]
        result = filter_history(lines, [], 2)
        assert [e.command for e in result] == ["cmd3", "cmd4"]
        assert [e.timestamp for e in result] == ["3", "4"]

    def test_max_entries_zero(self):
        assert filter_history([line("a"), line("b")], [], 0) == []

    def test_malformed_lines_skipped(self):
        lines = [line("first"), "garbage", "", line("second"), '{"command": ']
        result = filter_history(lines, [], 20)
        assert [e.command for e in result] == ["first", "second"]

    def test_invalid_pattern_dropped(self):
        patterns = compile_patterns(["(unclosed", r"make\b"])
        assert len(patterns) == 1
        result = filter_history([line("make all"), line("ls")], patterns, 20)
        assert [e.command for e in result] == ["make all"]


class TestCollectCommandHistory:
    def test_missing_file(self, config: ContextKeeperConfig):
        assert collect_command_history(config) == []

    def test_disabled_does_not_read(self, config: ContextKeeperConfig, log_file: Path, monkeypatch):
        write_log(log_file, [line("lunch x")])
        config.history.enabled = False

        def boom(*args, **kwargs):
            raise AssertionError("history log must not be read")

        monkeypatch.setattr(Path, "open", boom)
        assert collect_command_history(config) == []

    def test_default_patterns(self, config: ContextKeeperConfig, log_file: Path):
        write_log(
            log_file,
            [
                line("source build/envsetup.sh"),
                line("lunch sdk_car_x86_64-userdebug"),
                line("git log"),
                line("export OUT_DIR=/out"),
                line("m droid"),
            ],
        )
        result = collect_command_history(config)
        assert [e.command for e in result] == [
            "source build/envsetup.sh",
            "lunch sdk_car_x86_64-userdebug",
            "export OUT_DIR=/out",
            "m droid",
        ]

    def test_bounded(self, config: ContextKeeperConfig, log_file: Path):
        config.history.patterns = []
        config.history.max_entries = 2
        write_log(log_file, [line(f"step {i}") for i in range(5)])
        result = collect_command_history(config)
        assert [e.command for e in result] == ["step 3", "step 4"]

    def test_read_history_invalid_utf8(self, tmp_path: Path):
        path = tmp_path / "h.jsonl"
        path.write_bytes(b'{"command": "ok"}\n\xff\xfe garbage\n{"command": "also ok"}\n')
        result = read_history(path, [], 10)
        assert [e.command for e in result] == ["ok", "also ok"]
