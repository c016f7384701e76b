"""Collectors. Each one reads a single source and returns plain records."""

from contextkeeper.collectors.base import CommandResult, Runner, or_default, run_command

__all__ = ["CommandResult", "Runner", "or_default", "run_command"]
