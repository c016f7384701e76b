"""Markdown rendering of a Snapshot at three verbosity levels.

- minimal: work state, dirty repositories, first device
- normal:  + todos, hints, active containers, all devices
- full:    everything, including build targets, history and clean repositories
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from contextkeeper.models import (
    AdbDevice,
    BuildTarget,
    ContainerInfo,
    HistoryEntry,
    RepoStatus,
    Snapshot,
    WorkState,
)

LEVELS = ("minimal", "normal", "full")
DEFAULT_LEVEL = "normal"
COMMAND_MAX_CHARS = 80

HEADER = "# Development Context (ContextKeeper)\n"
TOOL_NAME = "get_dev_context"

_TODO_MARKS = {"pending": "[ ]", "in_progress": "[~]", "completed": "[x]"}


def normalize_level(level: str | None) -> str:
    level = (level or "").strip().lower()
    return level if level in LEVELS else DEFAULT_LEVEL


# ââ Cell helpers âââââââââââââââââââââââââââââââââââââââââââââ


def status_code(modified: int, untracked: int) -> str:
    if modified > 0 and untracked > 0:
        return f"{modified}M {untracked}U"
    if modified > 0:
        return f"{modified}M"
    if untracked > 0:
        return f"{untracked}U"
    return "clean"


def truncate_command(command: str) -> str:
    if len(command) > COMMAND_MAX_CHARS:
        return command[: COMMAND_MAX_CHARS - 3] + "..."
    return command


def escape_cell(text: str) -> str:
    """Keep a value on one table row: newlines become ⏎, pipes are escaped."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "⏎")
    return text.replace("|", "\\|")


def _table(headers: list[str], rows: Iterable[list[str]]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(escape_cell(cell) for cell in row) + " |")
    return "\n".join(lines) + "\n"


# ââ Sections âââââââââââââââââââââââââââââââââââââââââââââââââ


def _project(snapshot: Snapshot) -> str:
    if not snapshot.project_name:
        return ""
    out = f"## Project\n- **Name:** {snapshot.project_name}\n"
    if snapshot.project_type:
        out += f"- **Type:** {snapshot.project_type}\n"
    return out


def _work_state_brief(state: WorkState | None) -> str:
    if state is None:
        return ""
    lines = ["## Work State", f"- **Task:** {state.task_summary}"]
    if state.working_files:
        lines.append("- **Files:** " + ", ".join(f"`{f}`" for f in state.working_files))
    if state.notes:
        lines.append(f"- **Notes:** {state.notes}")
    return "\n".join(lines) + "\n"


def _work_state_full(state: WorkState | None) -> str:
    if state is None:
        return ""
    lines = [
        "## Saved Work State",
        f"_Saved {state.saved_at} ({state.trigger})_",
        "",
        f"**Task:** {state.task_summary}",
    ]
    if state.working_files:
        lines += ["", "**Working files:**"]
        lines += [f"- `{f}`" for f in state.working_files]
    if state.notes:
        lines += ["", f"**Notes:** {state.notes}"]
    if state.todos:
        lines += ["", "**Todos:**"]
        lines += [f"- {_TODO_MARKS[t.status]} {t.content}" for t in state.todos]
    return "\n".join(lines) + "\n"


def _hints(snapshot: Snapshot) -> str:
    if not snapshot.hints:
        return ""
    return f"## AI Hints (Important)\n> {snapshot.hints}\n"


def _targets(targets: tuple[BuildTarget, ...]) -> str:
    if not targets:
        return ""
    out = "## Available Build Targets\n\n"
    out += _table(
        ["Target", "Description", "Container", "Lunch Target"],
        ([t.name, t.description, t.container_name, t.lunch_target] for t in targets),
    )
    caps = []
    for t in targets:
        flags = [
            name for name, on in (("emulator", t.can_emulator), ("flash", t.can_flash)) if on
        ]
        if flags:
            caps.append(f"- **{t.name}:** {', '.join(flags)}")
    if caps:
        out += "\n### Target Capabilities\n" + "\n".join(caps) + "\n"
    return out


def _containers(title: str, containers: Iterable[ContainerInfo]) -> str:
    lines = [f"- **{c.name}** ({c.runtime}): {c.status}" for c in containers]
    if not lines:
        return ""
    return f"## {title}\n" + "\n".join(lines) + "\n"


def _commands(commands: tuple[str, ...]) -> str:
    if not commands:
        return ""
    body = "\n".join(truncate_command(c) for c in commands)
    return f"## Example Commands\n```bash\n{body}\n```\n"


def _history(history: tuple[HistoryEntry, ...]) -> str:
    if not history:
        return ""
    out = (
        "## Recent Relevant Commands\n"
        "These commands were executed in previous sessions "
        "(useful after context compression):\n\n"
    )
    return out + _table(
        ["Time", "Command"],
        ([e.timestamp, f"`{truncate_command(e.command)}`"] for e in history),
    )


def _repo_table(title: str, repos: Iterable[RepoStatus]) -> str:
    rows = [
        [r.repo_path, r.branch, status_code(r.modified, r.untracked), r.last_commit]
        for r in repos
    ]
    if not rows:
        return ""
    return f"## {title}\n\n" + _table(["Repository", "Branch", "Status", "Last Commit"], rows)


def _dirty_list(repos: tuple[RepoStatus, ...]) -> str:
    lines = [f"- {r.repo_path}: {status_code(r.modified, r.untracked)}" for r in repos if r.dirty]
    if not lines:
        return ""
    return "## Uncommitted Changes\n" + "\n".join(lines) + "\n"


def _devices(devices: tuple[AdbDevice, ...]) -> str:
    if not devices:
        return ""
    return "## Connected Devices\n" + _table(
        ["Serial", "State", "Type"],
        ([d.serial, d.state, d.device_type] for d in devices),
    )


def _first_device(devices: tuple[AdbDevice, ...]) -> str:
    if not devices:
        return ""
    d = devices[0]
    return f"## Device\n- {d.serial} ({d.state}, {d.device_type})\n"


# ââ Levels âââââââââââââââââââââââââââââââââââââââââââââââââââ


def _render_minimal(s: Snapshot) -> list[str]:
    sections = [
        _work_state_brief(s.work_state),
        _dirty_list(s.repos),
        _first_device(s.devices),
    ]
    if not any(sections):
        sections.append("_No saved work state and no uncommitted changes._\n")
    sections.append(
        f'---\n_Minimal view. Call {TOOL_NAME} with level "normal" or "full" for more._\n'
    )
    return sections


def _render_normal(s: Snapshot) -> list[str]:
    return [
        _work_state_full(s.work_state),
        _hints(s),
        _repo_table("Git Status (uncommitted changes)", (r for r in s.repos if r.dirty)),
        _containers("Active Containers", (c for c in s.containers if c.active)),
        _devices(s.devices),
        f'---\n_Call {TOOL_NAME} with level "full" for build targets, '
        "command history and clean repositories._\n",
    ]


def _render_full(s: Snapshot) -> list[str]:
    return [
        _project(s),
        _work_state_full(s.work_state),
        _hints(s),
        _targets(s.targets),
        _containers("Containers", s.containers),
        _commands(s.available_commands),
        _history(s.history),
        _repo_table("Git Status", s.repos),
        _devices(s.devices),
    ]


_RENDERERS: dict[str, Callable[[Snapshot], list[str]]] = {
    "minimal": _render_minimal,
    "normal": _render_normal,
    "full": _render_full,
}


def render(snapshot: Snapshot, level: str | None = DEFAULT_LEVEL) -> str:
    """Render a snapshot. Unknown levels fall back to "normal"."""
    sections = _RENDERERS[normalize_level(level)](snapshot)
    return "\n".join([HEADER, *(s for s in sections if s)])
