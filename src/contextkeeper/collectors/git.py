"""Git repository discovery and per-repository status.

Discovery walks the working directory for `.git` markers; status queries go
through the `git` binary. A missing binary or a failed query leaves the
affected field at its default instead of dropping the repository.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import replace
from pathlib import Path

from contextkeeper.collectors.base import Runner, or_default, run_command
from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import RepoStatus

logger = logging.getLogger(__name__)

MAX_REPOS = 10
COMMIT_MAX_CHARS = 50
SKIP_DIRS = frozenset({"node_modules", "target", "out"})
_MODIFIED_PREFIXES = (" M", "M ", "MM")
_UNTRACKED_PREFIX = "??"


class StatusKind(enum.Enum):
    """Classification of one `git status --porcelain` line."""

    MODIFIED = "modified"
    UNTRACKED = "untracked"
    OTHER_CHANGE = "other"


def classify_status_line(line: str) -> StatusKind | None:
    if not line.strip():
        return None
    if line.startswith(_MODIFIED_PREFIXES):
        return StatusKind.MODIFIED
    if line.startswith(_UNTRACKED_PREFIX):
        return StatusKind.UNTRACKED
    return StatusKind.OTHER_CHANGE


def count_changes(porcelain: str) -> tuple[int, int]:
    """Return (modified, untracked). Added, deleted, renamed count as modified."""
    modified = untracked = 0
    for line in porcelain.splitlines():
        kind = classify_status_line(line)
        if kind is StatusKind.UNTRACKED:
            untracked += 1
        elif kind is not None:
            modified += 1
    return modified, untracked


def shorten_commit(text: str) -> str:
    """Cap a one-line commit summary at 50 characters (47 + '...')."""
    text = text.strip()
    if len(text) > COMMIT_MAX_CHARS:
        return text[: COMMIT_MAX_CHARS - 3] + "..."
    return text


# ── Discovery ────────────────────────────────────────────────


def _is_repo_root(path: Path) -> bool:
    # .git may be a file for worktrees and submodules
    return (path / ".git").exists()


def find_git_repos(base_path: Path, max_depth: int) -> list[str]:
    """Find working trees below base_path, as sorted relative POSIX paths.

    If base_path is itself a working tree the result is exactly ["."].
    Directories holding a repository are not descended into.
    """
    base_path = Path(base_path)
    if _is_repo_root(base_path):
        return ["."]

    repos: list[str] = []
    _scan(base_path, base_path, 0, max_depth, repos)
    repos.sort()
    return repos


def _scan(base: Path, current: Path, depth: int, max_depth: int, repos: list[str]) -> None:
    if depth > max_depth:
        return

    if depth > 0 and _is_repo_root(current):
        repos.append(current.relative_to(base).as_posix())
        return

    try:
        children = sorted(current.iterdir())
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", current, e)
        return

    for child in children:
        name = child.name
        if name.startswith(".") or name in SKIP_DIRS:
            continue
        try:
            if not child.is_dir():
                continue
        except OSError:
            continue
        _scan(base, child, depth + 1, max_depth, repos)


# ── Status ───────────────────────────────────────────────────


def collect_git_info(path: Path | str, runner: Runner = run_command) -> RepoStatus | None:
    """Collect status for one path, or None if it is not inside a work tree."""
    repo = str(path)

    def git(*args: str):
        return runner(["git", "-C", repo, *args], None)

    if not git("rev-parse", "--is-inside-work-tree").ok:
        return None

    branch = or_default(git("branch", "--show-current"), str.strip, "")
    if not branch:
        described = or_default(git("describe", "--always", "--dirty"), str.strip, "")
        if described:
            branch = f"({described})"

    modified, untracked = or_default(git("status", "--porcelain"), count_changes, (0, 0))
    last_commit = or_default(git("log", "-1", "--format=%h %s"), shorten_commit, "")

    return RepoStatus(
        repo_path=repo,
        branch=branch,
        modified=modified,
        untracked=untracked,
        last_commit=last_commit,
    )


def collect_git_repos(
    config: ContextKeeperConfig, runner: Runner = run_command
) -> list[RepoStatus]:
    """Status for every repository the config points at, capped at MAX_REPOS.

    When the working directory is itself inside a work tree, only that tree is
    reported and configured paths are ignored.
    """
    cwd = config.cwd

    root = collect_git_info(cwd, runner)
    if root is not None:
        return [replace(root, repo_path=".")]

    if config.git.paths is not None:
        paths = list(config.git.paths)
    elif config.git.auto_detect:
        paths = find_git_repos(cwd, config.git.scan_depth)
    else:
        paths = []

    repos: list[RepoStatus] = []
    for rel in paths:
        full = Path(rel) if Path(rel).is_absolute() else cwd / rel
        info = collect_git_info(full, runner)
        if info is None:
            logger.debug("Not a git work tree, skipping: %s", rel)
            continue
        repos.append(replace(info, repo_path=rel))

    repos.sort(key=lambda r: r.repo_path)
    if len(repos) > MAX_REPOS:
        logger.info("Found %d repositories, reporting the first %d", len(repos), MAX_REPOS)
    return repos[:MAX_REPOS]
