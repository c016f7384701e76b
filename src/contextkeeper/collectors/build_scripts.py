"""Build targets from shell-style config files, and example commands from the entry script."""

from __future__ import annotations

import logging
from pathlib import Path

from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import BuildTarget

logger = logging.getLogger(__name__)

MAX_COMMANDS = 10

_TARGET_KEYS = {
    "TARGET_NAME": "name",
    "TARGET_DESCRIPTION": "description",
    "CONTAINER_NAME": "container_name",
    "LUNCH_TARGET": "lunch_target",
}


def parse_assignment(line: str) -> tuple[str, str] | None:
    """Parse `KEY=value`, stripping surrounding quotes from the value."""
    if "=" not in line:
        return None
    key, value = line.split("=", 1)
    return key.strip(), value.strip().strip('"').strip("'")


def parse_target_config(text: str, fallback_name: str) -> BuildTarget:
    fields: dict[str, str] = {}
    can_emulator = can_flash = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parsed = parse_assignment(line)
        if parsed is None:
            continue
        key, value = parsed
        if key in _TARGET_KEYS:
            fields[_TARGET_KEYS[key]] = value
        elif key == "CAN_EMULATOR":
            can_emulator = value == "true"
        elif key == "CAN_FLASH":
            can_flash = value == "true"

    return BuildTarget(
        name=fields.pop("name", "") or fallback_name,
        can_emulator=can_emulator,
        can_flash=can_flash,
        **fields,
    )


def collect_build_targets(config: ContextKeeperConfig) -> list[BuildTarget]:
    scripts = config.scripts
    if not scripts.config_dir:
        return []

    config_dir = config.cwd / scripts.config_dir
    targets = []
    for path in sorted(config_dir.glob(scripts.config_pattern)):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read target config %s: %s", path, e)
            continue
        targets.append(parse_target_config(text, path.stem))
    return targets


def parse_entry_point_commands(text: str) -> list[str]:
    """Lines that invoke a local shell script, sorted, deduplicated, capped."""
    commands = {
        line.strip() for line in text.splitlines() if "./" in line and ".sh " in line
    }
    return sorted(commands)[:MAX_COMMANDS]


def collect_available_commands(config: ContextKeeperConfig) -> list[str]:
    entry_point = config.scripts.entry_point
    if not entry_point:
        return []
    path = Path(entry_point)
    if not path.is_absolute():
        path = config.cwd / path
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.debug("Entry point not readable: %s", path)
        return []
    return parse_entry_point_commands(text)
