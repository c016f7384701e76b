"""Context aggregation: runs every collector once and freezes the result.

Order:
1. Project identity and hints (from config)
2. Build targets and example commands (build scripts)
3. Containers (container runtime)
4. Command history (JSONL log)
5. Git repositories
6. Devices (adb / fastboot)
7. Saved work state

Collectors are independent; a collector that raises is logged and replaced by
its empty default so the rest of the snapshot still gets built.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from contextkeeper.collectors.base import Runner, run_command
from contextkeeper.collectors.build_scripts import (
    collect_available_commands,
    collect_build_targets,
)
from contextkeeper.collectors.containers import collect_containers
from contextkeeper.collectors.devices import collect_devices
from contextkeeper.collectors.git import collect_git_repos
from contextkeeper.collectors.history import collect_command_history
from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import Snapshot
from contextkeeper.workstate import WorkStateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def best_effort(name: str, collect: Callable[[], T], default: T) -> T:
    """Run a collector, falling back to `default` if it raises."""
    try:
        return collect()
    except Exception as e:
        logger.warning("Collector %s failed: %s", name, e)
        return default


def collect_context(config: ContextKeeperConfig, runner: Runner | None = None) -> Snapshot:
    runner = runner or run_command
    store = WorkStateStore(config.work_state_file)

    targets = best_effort("build_targets", lambda: collect_build_targets(config), [])
    commands = best_effort("commands", lambda: collect_available_commands(config), [])
    containers = best_effort("containers", lambda: collect_containers(config, runner), [])
    history = best_effort("history", lambda: collect_command_history(config), [])
    repos = best_effort("git", lambda: collect_git_repos(config, runner), [])
    devices = best_effort("devices", lambda: collect_devices(runner), [])
    work_state = best_effort("work_state", store.load, None)

    logger.debug(
        "Collected %d targets, %d containers, %d history, %d repos, %d devices",
        len(targets),
        len(containers),
        len(history),
        len(repos),
        len(devices),
    )

    return Snapshot(
        project_name=config.project.name,
        project_type=config.project.type,
        targets=tuple(targets),
        containers=tuple(containers),
        available_commands=tuple(commands),
        hints=config.hints,
        history=tuple(history),
        repos=tuple(repos),
        devices=tuple(devices),
        work_state=work_state,
    )
