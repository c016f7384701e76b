"""Entry point: python -m contextkeeper [serve|context|save|init|hook]

- No args / "serve":  MCP server over stdio (used by the coding assistant)
- "context" / -c:     Print the context report
- "save":             Save (or clear) the work state
- "init":             Write an example contextkeeper.toml
- "hook":             Assistant hook entry points (pre-compact, record-command)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from contextkeeper.config import (
    CONFIG_FILENAMES,
    ContextKeeperConfig,
    find_config_file,
    load_config,
)
from contextkeeper.models import TRIGGERS
from contextkeeper.renderer import DEFAULT_LEVEL, LEVELS

COMMANDS = ("serve", "context", "save", "init", "hook")
LEGACY_CONTEXT_FLAGS = ("-c", "--context")

EXAMPLE_CONFIG = """\
[project]
name = "My Project"
type = "custom"

[scripts]
entry_point = "build.sh"
config_dir = "config"
config_pattern = "*.conf"

[containers]
runtime = "podman"

[hints]
default = "Build commands should run in the container."

[history]
enabled = true
max_entries = 20
# patterns = ["lunch\\\\s+\\\\S+", "make\\\\b"]

[git]
auto_detect = true
scan_depth = 2
# paths = ["frontend", "backend"]
"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _run_serve(args: argparse.Namespace, config: ContextKeeperConfig) -> int:
    from contextkeeper.server import serve

    # The server re-reads config on every tool call
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        pass
    return 0


def _run_context(args: argparse.Namespace, config: ContextKeeperConfig) -> int:
    from contextkeeper.tools.context_tools import get_context_tools

    tools = get_context_tools(config)
    print(tools["get_dev_context"](args.level))
    return 0


def _run_save(args: argparse.Namespace, config: ContextKeeperConfig) -> int:
    from contextkeeper.tools.context_tools import SAVE_FAILED_PREFIX, get_context_tools
    from contextkeeper.workstate import WorkStateStore

    if args.clear:
        cleared = WorkStateStore(config.work_state_file).clear()
        print("Work state cleared" if cleared else "No saved work state")
        return 0
    if not args.summary:
        print("save: a summary is required (or use --clear)", file=sys.stderr)
        return 2

    tools = get_context_tools(config)
    message = tools["save_work_state"](args.summary, files=args.file, notes=args.notes)
    if message.startswith(SAVE_FAILED_PREFIX):
        print(message, file=sys.stderr)
        return 1
    print(message)
    return 0


def _run_init(args: argparse.Namespace, config: ContextKeeperConfig) -> int:
    cwd = config.cwd
    found = find_config_file(cwd)
    if found and not args.force:
        print(f"Config already exists: {found[0]} (use --force to overwrite)", file=sys.stderr)
        return 1
    target = cwd / CONFIG_FILENAMES[0]
    try:
        target.write_text(EXAMPLE_CONFIG, encoding="utf-8")
    except OSError as e:
        print(f"Cannot write {target}: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {target}")
    return 0


def _run_hook(args: argparse.Namespace, config: ContextKeeperConfig) -> int:
    from contextkeeper.hooks import parse_payload, pre_compact, record_command

    payload = parse_payload(sys.stdin.read())
    try:
        if args.event == "pre-compact":
            pre_compact(config, payload, trigger=args.trigger)
        else:
            record_command(config, payload)
    except OSError as e:
        # Hooks must never block the assistant
        logging.getLogger(__name__).error("Hook %s failed: %s", args.event, e)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contextkeeper",
        description="Development context snapshots for AI coding assistants.",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="MCP server over stdio (default)")
    serve.set_defaults(func=_run_serve)

    context = sub.add_parser("context", help="Print the context report")
    context.add_argument("--level", "-l", default=DEFAULT_LEVEL, choices=LEVELS)
    context.set_defaults(func=_run_context)

    save = sub.add_parser("save", help="Save the current work state")
    save.add_argument("summary", nargs="?", help="Current task summary")
    save.add_argument("--file", "-f", action="append", help="Working file (repeatable)")
    save.add_argument("--notes", "-n")
    save.add_argument("--clear", action="store_true", help="Delete the saved work state")
    save.set_defaults(func=_run_save)

    init = sub.add_parser("init", help="Write an example contextkeeper.toml")
    init.add_argument("--force", action="store_true")
    init.set_defaults(func=_run_init)

    hook = sub.add_parser("hook", help="Assistant hook entry points")
    hook.add_argument("event", choices=["pre-compact", "record-command"])
    hook.add_argument("--trigger", default="pre_compact", choices=TRIGGERS)
    hook.set_defaults(func=_run_hook)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    # Legacy flag, accepted anywhere outside a subcommand
    if any(a in LEGACY_CONTEXT_FLAGS for a in argv) and argv[0] not in COMMANDS:
        argv = ["context", *(a for a in argv if a not in LEGACY_CONTEXT_FLAGS)]
    if not argv:
        argv = ["serve"]

    args = build_parser().parse_args(argv)
    config = load_config()
    _setup_logging(config.log_level)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
