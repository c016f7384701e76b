"""Configuration loading from environment variables and contextkeeper.toml."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("contextkeeper.toml", "context-keeper.toml", ".contextkeeper.toml")
WORK_STATE_FILENAME = "work-state.json"
HISTORY_FILENAME = "command-history.jsonl"

DEFAULT_HISTORY_PATTERNS = [
    r"lunch\s+\S+",
    r"source\s+.*envsetup",
    r"export\s+\w+=",
    r"m\s+\S+",
    r"mm\b",
    r"mma\b",
]


@dataclass(frozen=True)
class Environment:
    """Ambient values resolved once per process."""

    cwd: Path
    home: Path

    @property
    def work_state_file(self) -> Path:
        return self.home / WORK_STATE_FILENAME

    @property
    def history_file(self) -> Path:
        return self.home / HISTORY_FILENAME


def resolve_environment() -> Environment:
    home = os.getenv("CONTEXTKEEPER_HOME")
    return Environment(
        cwd=Path.cwd(),
        home=Path(home).expanduser() if home else Path.home() / ".contextkeeper",
    )


@dataclass
class ProjectConfig:
    name: str = ""
    type: str = ""


@dataclass
class ScriptsConfig:
    """Build-script layout: an entry point and a directory of target configs."""

    entry_point: str | None = None
    config_dir: str | None = None
    config_pattern: str = "*.conf"


@dataclass
class ContainersConfig:
    runtime: str = "podman"


@dataclass
class HistoryConfig:
    """Command history filtering."""

    enabled: bool = True
    log_file: Path | None = None
    patterns: list[str] = field(default_factory=lambda: list(DEFAULT_HISTORY_PATTERNS))
    max_entries: int = 20


@dataclass
class GitConfig:
    """Repository discovery. `paths=None` means auto-detect."""

    paths: list[str] | None = None
    auto_detect: bool = True
    scan_depth: int = 2


@dataclass
class ContextKeeperConfig:
    """Top-level ContextKeeper configuration."""

    env: Environment = field(default_factory=resolve_environment)
    project: ProjectConfig = field(default_factory=ProjectConfig)
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    containers: ContainersConfig = field(default_factory=ContainersConfig)
    hints: str = ""
    history: HistoryConfig = field(default_factory=HistoryConfig)
    git: GitConfig = field(default_factory=GitConfig)
    log_level: str = "INFO"
    source: Path | None = None

    @property
    def cwd(self) -> Path:
        return self.env.cwd

    @property
    def work_state_file(self) -> Path:
        return self.env.work_state_file

    @property
    def history_file(self) -> Path:
        return self.history.log_file or self.env.history_file


def _read_toml(path: Path) -> dict | None:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return None


def _section(data: dict, name: str) -> dict:
    value = data.get(name, {})
    if not isinstance(value, dict):
        logger.warning("Ignoring config section [%s]: expected a table", name)
        return {}
    return value


def _get(data: dict, section: str, key: str, kind: type, default):
    """Read a typed value, warning and falling back to `default` on a mismatch."""
    value = data.get(key, default)
    if value is default:
        return value
    if isinstance(value, kind) and not (kind is int and isinstance(value, bool)):
        return value
    logger.warning(
        "Ignoring config %s.%s: expected %s, got %r", section, key, kind.__name__, value
    )
    return default


def _get_str_list(data: dict, section: str, key: str, default):
    value = _get(data, section, key, list, default)
    if value is default:
        return value
    if not all(isinstance(item, str) for item in value):
        logger.warning("Ignoring config %s.%s: expected a list of strings", section, key)
        return default
    return list(value)


def find_config_file(cwd: Path) -> tuple[Path, dict] | None:
    """Return the first existing, parseable config file in cwd."""
    for name in CONFIG_FILENAMES:
        candidate = cwd / name
        if not candidate.is_file():
            continue
        data = _read_toml(candidate)
        if data is not None:
            return candidate, data
    return None


def load_config(
    config_path: Path | None = None, env: Environment | None = None
) -> ContextKeeperConfig:
    """Load configuration from environment variables and an optional config file.

    Priority: environment variables > config file > defaults.
    """
    env = env or resolve_environment()

    file_data: dict = {}
    source: Path | None = None
    if config_path and config_path.exists():
        file_data = _read_toml(config_path) or {}
        source = config_path
    else:
        found = find_config_file(env.cwd)
        if found:
            source, file_data = found

    project_data = _section(file_data, "project")
    scripts_data = _section(file_data, "scripts")
    containers_data = _section(file_data, "containers")
    hints_data = _section(file_data, "hints")
    history_data = _section(file_data, "history")
    git_data = _section(file_data, "git")

    log_file = os.getenv(
        "CONTEXTKEEPER_HISTORY_FILE", _get(history_data, "history", "log_file", str, None)
    )

    config = ContextKeeperConfig(
        env=env,
        project=ProjectConfig(
            name=_get(project_data, "project", "name", str, ""),
            type=_get(project_data, "project", "type", str, ""),
        ),
        scripts=ScriptsConfig(
            entry_point=_get(scripts_data, "scripts", "entry_point", str, None),
            config_dir=_get(scripts_data, "scripts", "config_dir", str, None),
            config_pattern=_get(scripts_data, "scripts", "config_pattern", str, "*.conf"),
        ),
        containers=ContainersConfig(
            runtime=os.getenv(
                "CONTEXTKEEPER_RUNTIME",
                _get(containers_data, "containers", "runtime", str, "podman"),
            ),
        ),
        hints=_get(hints_data, "hints", "default", str, ""),
        history=HistoryConfig(
            enabled=_get(history_data, "history", "enabled", bool, True),
            log_file=env.cwd / Path(log_file).expanduser() if log_file else None,
            patterns=list(
                _get_str_list(history_data, "history", "patterns", DEFAULT_HISTORY_PATTERNS)
            ),
            max_entries=_get(history_data, "history", "max_entries", int, 20),
        ),
        git=GitConfig(
            paths=_get_str_list(git_data, "git", "paths", None),
            auto_detect=_get(git_data, "git", "auto_detect", bool, True),
            scan_depth=_get(git_data, "git", "scan_depth", int, 2),
        ),
        log_level=os.getenv(
            "CONTEXTKEEPER_LOG_LEVEL", _get(file_data, "config", "log_level", str, "INFO")
        ),
        source=source,
    )
    return config
