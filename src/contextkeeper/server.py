"""MCP Server: context-keeper, development context for coding assistants.

Exposes two tools:
- get_dev_context(level)  : render the current environment snapshot
- save_work_state(...)    : save task context to survive context compression

Protocol: JSON-RPC 2.0 over stdio (NDJSON).

Usage:
  python -m contextkeeper serve
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Callable

from contextkeeper.config import ContextKeeperConfig, load_config
from contextkeeper.renderer import LEVELS
from contextkeeper.tools.context_tools import SAVE_FAILED_PREFIX, get_context_tools

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────

SERVER_NAME = "context-keeper"
SERVER_VERSION = "0.2.0"
PROTOCOL_VERSION = "2024-11-05"

INSTRUCTIONS = (
    "ContextKeeper provides development environment context. "
    "Call get_dev_context at the start of a conversation and after context "
    "compression; call save_work_state before long or risky operations."
)

# ── Tool definitions ─────────────────────────────────────────

TOOLS = [
    {
        "name": "get_dev_context",
        "description": (
            "Get current development environment context: saved work state, git status "
            "of all repositories, containers, connected devices, build targets and recent "
            "relevant commands. Call this when context is unclear or after context compression."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": list(LEVELS),
                    "description": "minimal=work state + dirty repos, normal (default), full=everything",
                },
            },
        },
    },
    {
        "name": "save_work_state",
        "description": (
            "Save what you are working on so it can be recovered after context "
            "compression. Replaces any previously saved work state."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "Current task in one or two sentences"},
                "files": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Files being worked on",
                },
                "notes": {"type": "string", "description": "Decisions, blockers, next steps"},
                "todos": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "content": {"type": "string"},
                            "status": {
                                "type": "string",
                                "enum": ["pending", "in_progress", "completed"],
                            },
                        },
                        "required": ["content"],
                    },
                },
            },
            "required": ["summary"],
        },
    },
]

# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id, result):
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id, code, message):
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def text_result(text: str, is_error: bool = False) -> dict:
    result: dict = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


# ── Tool dispatch ────────────────────────────────────────────


async def call_tool(name: str, args: dict, config: ContextKeeperConfig) -> dict:
    tools = get_context_tools(config)

    if name == "get_dev_context":
        level = args.get("level") or "normal"
        text = await asyncio.to_thread(tools["get_dev_context"], str(level))
        return text_result(text)

    if name == "save_work_state":
        summary = args.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            return text_result("[Error] save_work_state requires a non-empty summary", True)
        text = await asyncio.to_thread(
            tools["save_work_state"],
            summary,
            files=args.get("files"),
            notes=args.get("notes"),
            todos=args.get("todos"),
        )
        return text_result(text, is_error=text.startswith(SAVE_FAILED_PREFIX))

    return text_result(f"Unknown tool: {name}", is_error=True)


# ── Request handler ──────────────────────────────────────────


async def handle_request(
    req: dict, config_loader: Callable[[], ContextKeeperConfig] = load_config
) -> dict | None:
    req_id = req.get("id")
    method = req.get("method", "")

    # Notifications (no id): no response
    if req_id is None:
        if method == "notifications/initialized":
            logger.info("Client initialized")
        return None

    if method == "initialize":
        return jsonrpc_result(req_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            "instructions": INSTRUCTIONS,
        })

    if method == "ping":
        return jsonrpc_result(req_id, {})

    if method == "tools/list":
        return jsonrpc_result(req_id, {"tools": TOOLS})

    if method == "tools/call":
        params = req.get("params") or {}
        if not isinstance(params, dict):
            return jsonrpc_error(req_id, -32602, "Invalid params: expected an object")
        tool_name = params.get("name", "")
        args = params.get("arguments") or {}
        if not isinstance(args, dict):
            return jsonrpc_error(req_id, -32602, "Invalid params: arguments must be an object")
        try:
            # Config is re-read per call so edits take effect without a restart
            result = await call_tool(tool_name, args, config_loader())
        except Exception as e:
            logger.exception("Tool %s failed", tool_name)
            result = text_result(f"[Internal error] {e}", is_error=True)
        return jsonrpc_result(req_id, result)

    return jsonrpc_error(req_id, -32601, f"Method not found: {method}")


# ── Stdio transport (NDJSON) ─────────────────────────────────


async def handle_line(
    raw: bytes, config_loader: Callable[[], ContextKeeperConfig] = load_config
) -> str | None:
    """Handle one NDJSON line and return the encoded response, if any."""
    try:
        line = raw.decode("utf-8").strip()
        if not line:
            return None
        req = json.loads(line)
        if not isinstance(req, dict):
            logger.warning("Ignoring non-object request")
            return None
        logger.debug("<- %s", req.get("method", "?"))
        response = await handle_request(req, config_loader)
        return json.dumps(response, ensure_ascii=False) if response else None
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Parse error: %s", e)
    except Exception as e:
        logger.exception("Handler error: %s", e)
    return None


async def serve(config_loader: Callable[[], ContextKeeperConfig] = load_config) -> None:
    logger.info("Starting %s %s", SERVER_NAME, SERVER_VERSION)

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)

    while True:
        line = await reader.readline()
        if not line:
            break
        response = await handle_line(line, config_loader)
        if response:
            sys.stdout.write(response + "\n")
            sys.stdout.flush()

    logger.info("stdin closed, shutting down")
