"""Tests for context aggregation."""

from __future__ import annotations

import dataclasses
import json

import pytest
from pathlib import Path

from contextkeeper import aggregator
from contextkeeper.aggregator import best_effort, collect_context
from contextkeeper.collectors.base import CommandResult
from contextkeeper.config import ContextKeeperConfig, Environment, HistoryConfig, ProjectConfig
from contextkeeper.models import Snapshot, WorkState
from contextkeeper.workstate import WorkStateStore


class FakeRunner:
    """Answers by program name; unknown programs behave as not installed."""

    def __init__(self, outputs: dict[str, str]):
        self.outputs = outputs

    def __call__(self, args, cwd=None) -> CommandResult:
        program = args[0]
        if program == "git":
            sub = args[3]
            if sub == "rev-parse":
                return CommandResult(ok=True, stdout="true\n")
            key = f"git {sub}"
        else:
            key = program
        if key not in self.outputs:
            return CommandResult(ok=False, error=f"{program}: command not found")
        return CommandResult(ok=True, stdout=self.outputs[key])


@pytest.fixture
def config(tmp_path: Path) -> ContextKeeperConfig:
    home = tmp_path / "home"
    return ContextKeeperConfig(
        env=Environment(cwd=tmp_path, home=home),
        project=ProjectConfig(name="Demo", type="custom"),
        hints="Use the container.",
        history=HistoryConfig(patterns=[]),
    )


class TestBestEffort:
    def test_returns_value(self):
        assert best_effort("x", lambda: [1, 2], []) == [1, 2]

    def test_failure_gives_default(self, caplog):
        def broken():
            raise RuntimeError("kaboom")

        with caplog.at_level("WARNING"):
            assert best_effort("broken", broken, []) == []
        assert "kaboom" in caplog.text


class TestCollectContext:
    def test_all_sources(self, config: ContextKeeperConfig):
        config.history_file.parent.mkdir(parents=True)
        config.history_file.write_text(
            json.dumps({"timestamp": "t1", "command": "make all"}) + "\n", encoding="utf-8"
        )
        WorkStateStore(config.work_state_file).save(
            WorkState(saved_at="s", trigger="manual", task_summary="Refactor parser")
        )
        runner = FakeRunner({
            "git branch": "main\n",
            "git status": " M a.py\n",
            "git log": "abc1234 Init\n",
            "podman": "builder\tUp 1 hour\n",
            "adb": "List of devices attached\nemu-1 device\n",
        })

        snapshot = collect_context(config, runner)

        assert snapshot.project_name == "Demo"
        assert snapshot.project_type == "custom"
        assert snapshot.hints == "Use the container."
        assert [c.name for c in snapshot.containers] == ["builder"]
        assert [h.command for h in snapshot.history] == ["make all"]
        assert [r.repo_path for r in snapshot.repos] == ["."]
        assert snapshot.repos[0].modified == 1
        assert [d.serial for d in snapshot.devices] == ["emu-1"]
        assert snapshot.work_state.task_summary == "Refactor parser"

    def test_nothing_available(self, config: ContextKeeperConfig):
        def runner(args, cwd=None):
            return CommandResult(ok=False, error="not found")

        snapshot = collect_context(config, runner)
        assert snapshot.repos == ()
        assert snapshot.containers == ()
        assert snapshot.devices == ()
        assert snapshot.history == ()
        assert snapshot.work_state is None

    def test_failing_collector_does_not_abort(self, config: ContextKeeperConfig, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("containers exploded")

        monkeypatch.setattr(aggregator, "collect_containers", explode)
        runner = FakeRunner({"adb": "List of devices attached\nemu-1 device\n"})
        snapshot = collect_context(config, runner)
        assert snapshot.containers == ()
        assert [d.serial for d in snapshot.devices] == ["emu-1"]

    def test_snapshot_is_immutable(self, config: ContextKeeperConfig):
        snapshot = collect_context(config, lambda args, cwd=None: CommandResult(ok=False))
        assert isinstance(snapshot, Snapshot)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.hints = "changed"
