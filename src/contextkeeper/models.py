"""Snapshot records produced by the collectors and consumed by the renderer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

Trigger = Literal["manual", "pre_compact", "auto"]
TodoStatus = Literal["pending", "in_progress", "completed"]

TRIGGERS: tuple[str, ...] = ("manual", "pre_compact", "auto")
TODO_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")


@dataclass(frozen=True)
class BuildTarget:
    name: str
    description: str = ""
    container_name: str = ""
    lunch_target: str = ""
    can_emulator: bool = False
    can_flash: bool = False


@dataclass(frozen=True)
class ContainerInfo:
    name: str
    status: str
    runtime: str

    @property
    def active(self) -> bool:
        return self.status.lower().startswith("up")


@dataclass(frozen=True)
class AdbDevice:
    serial: str
    state: str
    device_type: str  # "adb" or "fastboot"


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: str
    command: str


@dataclass(frozen=True)
class RepoStatus:
    """Git status summary for one working tree."""

    repo_path: str
    branch: str = ""
    modified: int = 0
    untracked: int = 0
    last_commit: str = ""

    @property
    def dirty(self) -> bool:
        return self.modified > 0 or self.untracked > 0


@dataclass(frozen=True)
class TodoItem:
    content: str
    status: TodoStatus = "pending"

    def __post_init__(self) -> None:
        if self.status not in TODO_STATUSES:
            raise ValueError(f"Invalid todo status: {self.status!r}")


@dataclass(frozen=True)
class WorkState:
    """In-progress task context saved for recovery after context loss."""

    saved_at: str
    trigger: Trigger
    task_summary: str
    working_files: tuple[str, ...] = ()
    notes: str = ""
    todos: tuple[TodoItem, ...] = ()

    def __post_init__(self) -> None:
        if self.trigger not in TRIGGERS:
            raise ValueError(f"Invalid trigger: {self.trigger!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "saved_at": self.saved_at,
            "trigger": self.trigger,
            "task_summary": self.task_summary,
            "working_files": list(self.working_files),
            "notes": self.notes,
            "todos": [{"content": t.content, "status": t.status} for t in self.todos],
        }

    @classmethod
    def from_dict(cls, data: Any) -> WorkState:
        """Build from the stored JSON object. Raises ValueError on schema violations."""
        if not isinstance(data, dict):
            raise ValueError("Work state must be a JSON object")
        summary = data.get("task_summary")
        if not isinstance(summary, str):
            raise ValueError("Work state is missing task_summary")
        files = data.get("working_files") or []
        todos = data.get("todos") or []
        if not isinstance(files, list) or not isinstance(todos, list):
            raise ValueError("working_files and todos must be lists")
        return cls(
            saved_at=str(data.get("saved_at", "")),
            trigger=data.get("trigger", "manual"),
            task_summary=summary,
            working_files=tuple(str(f) for f in files),
            notes=str(data.get("notes") or ""),
            todos=tuple(parse_todo(t) for t in todos),
        )


def parse_todo(data: Any) -> TodoItem:
    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        raise ValueError(f"Invalid todo: {data!r}")
    return TodoItem(content=data["content"], status=data.get("status", "pending"))


@dataclass(frozen=True)
class Snapshot:
    """Everything collected for one context report."""

    project_name: str = ""
    project_type: str = ""
    targets: tuple[BuildTarget, ...] = ()
    containers: tuple[ContainerInfo, ...] = ()
    available_commands: tuple[str, ...] = ()
    hints: str = ""
    history: tuple[HistoryEntry, ...] = ()
    repos: tuple[RepoStatus, ...] = ()
    devices: tuple[AdbDevice, ...] = ()
    work_state: WorkState | None = None
