"""Tests for configuration loading."""

import pytest
from pathlib import Path

from contextkeeper.config import (
    DEFAULT_HISTORY_PATTERNS,
    Environment,
    load_config,
    resolve_environment,
)

ENV_KEYS = [
    "CONTEXTKEEPER_HOME",
    "CONTEXTKEEPER_LOG_LEVEL",
    "CONTEXTKEEPER_RUNTIME",
    "CONTEXTKEEPER_HISTORY_FILE",
]


@pytest.fixture
def env(tmp_path: Path, monkeypatch) -> Environment:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    project = tmp_path / "project"
    project.mkdir()
    return Environment(cwd=project, home=tmp_path / "home")


class TestEnvironment:
    def test_home_default(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("CONTEXTKEEPER_HOME", raising=False)
        monkeypatch.chdir(tmp_path)
        env = resolve_environment()
        assert env.cwd == Path.cwd()
        assert env.home == Path.home() / ".contextkeeper"
        assert env.work_state_file.name == "work-state.json"
        assert env.history_file.name == "command-history.jsonl"

    def test_home_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("CONTEXTKEEPER_HOME", str(tmp_path / "ck"))
        env = resolve_environment()
        assert env.home == tmp_path / "ck"
        assert env.work_state_file == tmp_path / "ck" / "work-state.json"


class TestConfig:
    def test_defaults(self, env: Environment):
        config = load_config(env=env)
        assert config.source is None
        assert config.project.name == ""
        assert config.containers.runtime == "podman"
        assert config.scripts.config_pattern == "*.conf"
        assert config.history.enabled is True
        assert config.history.max_entries == 20
        assert config.history.patterns == DEFAULT_HISTORY_PATTERNS
        assert config.history_file == env.home / "command-history.jsonl"
        assert config.git.paths is None
        assert config.git.auto_detect is True
        assert config.git.scan_depth == 2
        assert config.log_level == "INFO"

    def test_toml_file(self, env: Environment):
        (env.cwd / "contextkeeper.toml").write_text("""
[project]
name = "Car OS"
type = "aosp"

[containers]
runtime = "docker"

[hints]
default = "Build inside the container."

[history]
patterns = []
max_entries = 5
log_file = "/tmp/history.jsonl"

[git]
paths = ["frontend", "backend"]
scan_depth = 3
""")
        config = load_config(env=env)
        assert config.source == env.cwd / "contextkeeper.toml"
        assert config.project.name == "Car OS"
        assert config.project.type == "aosp"
        assert config.containers.runtime == "docker"
        assert config.hints == "Build inside the container."
        assert config.history.patterns == []
        assert config.history.max_entries == 5
        assert config.history_file == Path("/tmp/history.jsonl")
        assert config.git.paths == ["frontend", "backend"]
        assert config.git.scan_depth == 3

    def test_filename_priority(self, env: Environment):
        (env.cwd / "context-keeper.toml").write_text('[project]\nname = "second"\n')
        (env.cwd / ".contextkeeper.toml").write_text('[project]\nname = "third"\n')
        assert load_config(env=env).project.name == "second"

        (env.cwd / "contextkeeper.toml").write_text('[project]\nname = "first"\n')
        assert load_config(env=env).project.name == "first"

    def test_unparseable_file_skipped(self, env: Environment):
        (env.cwd / "contextkeeper.toml").write_text("[project\nname = ")
        (env.cwd / ".contextkeeper.toml").write_text('[project]\nname = "fallback"\n')
        config = load_config(env=env)
        assert config.project.name == "fallback"

    def test_only_unparseable_file_gives_defaults(self, env: Environment):
        (env.cwd / "contextkeeper.toml").write_text("not = [valid")
        config = load_config(env=env)
        assert config.source is None
        assert config.project.name == ""

    def test_explicit_path(self, env: Environment, tmp_path: Path):
        custom = tmp_path / "custom.toml"
        custom.write_text('[git]\nauto_detect = false\n')
        config = load_config(custom, env=env)
        assert config.git.auto_detect is False

    def test_empty_git_paths_kept(self, env: Environment):
        (env.cwd / "contextkeeper.toml").write_text("[git]\npaths = []\n")
        assert load_config(env=env).git.paths == []

    def test_env_overrides_toml(self, env: Environment, monkeypatch):
        (env.cwd / "contextkeeper.toml").write_text(
            '[containers]\nruntime = "docker"\n\n[history]\nlog_file = "a.jsonl"\n'
        )
        monkeypatch.setenv("CONTEXTKEEPER_RUNTIME", "podman")
        monkeypatch.setenv("CONTEXTKEEPER_HISTORY_FILE", "/var/tmp/b.jsonl")
        monkeypatch.setenv("CONTEXTKEEPER_LOG_LEVEL", "DEBUG")
        config = load_config(env=env)
        assert config.containers.runtime == "podman"  # env wins
        assert config.history_file == Path("/var/tmp/b.jsonl")
        assert config.log_level == "DEBUG"

    def test_wrong_types_fall_back_to_defaults(self, env: Environment, caplog):
        (env.cwd / "contextkeeper.toml").write_text("""
[project]
name = 42

[history]
enabled = "false"
patterns = "make"
max_entries = "lots"

[git]
paths = "frontend"
auto_detect = 1
scan_depth = true
""")
        with caplog.at_level("WARNING", logger="contextkeeper.config"):
            config = load_config(env=env)
        assert config.project.name == ""
        assert config.history.enabled is True
        assert config.history.patterns == DEFAULT_HISTORY_PATTERNS
        assert config.history.max_entries == 20
        assert config.git.paths is None
        assert config.git.auto_detect is True
        assert config.git.scan_depth == 2
        assert "history.max_entries" in caplog.text
        assert "history.patterns" in caplog.text

    def test_non_string_pattern_list_ignored(self, env: Environment):
        (env.cwd / "contextkeeper.toml").write_text("[history]\npatterns = [\"make\", 3]\n")
        assert load_config(env=env).history.patterns == DEFAULT_HISTORY_PATTERNS

    def test_defaults_not_shared_between_loads(self, env: Environment):
        first = load_config(env=env)
        first.history.patterns.append("extra")
        assert load_config(env=env).history.patterns == DEFAULT_HISTORY_PATTERNS
