"""External command capability shared by the collectors.

Every call to git, the container runtime or the device bridge goes through a
`Runner` and comes back as a `CommandResult`. Failures are values, not
exceptions; collectors decide what a failure means via `or_default`.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    ok: bool
    stdout: str = ""
    error: str = ""


# Runner: (argv, cwd) -> CommandResult
Runner = Callable[[Sequence[str], Path | None], CommandResult]


def run_command(args: Sequence[str], cwd: Path | None = None) -> CommandResult:
    """Run a command to completion and capture its output.

    No timeout is applied: a hung tool blocks the caller.
    """
    try:
        result = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
        )
    except FileNotFoundError:
        logger.debug("%s not found", args[0])
        return CommandResult(ok=False, error=f"{args[0]}: command not found")
    except OSError as e:
        logger.debug("%s failed to start: %s", args[0], e)
        return CommandResult(ok=False, error=str(e))

    if result.returncode != 0:
        stderr = result.stderr.strip()
        logger.debug("%s exited %d: %s", " ".join(args[:3]), result.returncode, stderr)
        return CommandResult(
            ok=False, stdout=result.stdout, error=stderr or f"exit status {result.returncode}"
        )
    return CommandResult(ok=True, stdout=result.stdout)


def or_default(result: CommandResult, parse: Callable[[str], T], default: T) -> T:
    """Parse stdout of a successful result, otherwise keep the default."""
    if not result.ok:
        return default
    return parse(result.stdout)
