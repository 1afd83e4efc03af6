"""Oodles server - main entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

# MCP imports are optional - only needed when running the server
try:
    from mcp.server import Server  # pragma: no cover
    from mcp.server.stdio import stdio_server  # pragma: no cover
    from mcp.types import Tool, TextContent  # pragma: no cover
    HAS_MCP = True  # pragma: no cover
except ImportError:
    HAS_MCP = False
    Server = None  # type: ignore
    Tool = None  # type: ignore
    TextContent = None  # type: ignore

from .config import LOG_LEVELS, OodlesConfig, load_config
from .store import OodleStore
from .tools import execute_tool, make_tools

logger = logging.getLogger(__name__)


def create_store(config: OodlesConfig) -> OodleStore:
    """Create a store and load every oodle in its directory."""
    store = OodleStore(config)
    count = store.load_oodles()
    logger.info("Loaded %d oodles from %s", count, config.get_oodles_path())
    for path, err in store.load_errors.items():
        logger.warning("Not loaded: %s (%s)", path.name, err)
    return store


def custom_tool_definition(name: str, func: Callable) -> dict[str, Any]:
    """Tool definition for a custom_tool_* function from oodles_config.py.

    The first docstring line becomes the description. Arguments arrive as
    a single free-form "params" object.
    """
    doc = (func.__doc__ or "").strip()
    return {
        "name": name,
        "description": doc.splitlines()[0] if doc else f"Custom tool: {name}",
        "inputSchema": {
            "type": "object",
            "properties": {
                "params": {"type": "object", "description": "Arguments passed through to the tool"},
            },
        },
    }


async def run_custom_tool(func: Callable, store: OodleStore, arguments: dict[str, Any]) -> Any:
    """Call a custom tool, awaiting it if it is async.

    Failures are reported in the result dict like the built-in tools do.
    """
    try:
        result = func(store, arguments.get("params", arguments))
        if asyncio.iscoroutine(result):
            result = await result
    except Exception as e:
        logger.exception("Custom tool %s failed", getattr(func, "__name__", func))
        return {"success": False, "error": str(e), "error_type": "custom_tool_error"}
    return result


def create_server(config: OodlesConfig) -> "Server":
    """Create and configure the MCP server.

    Raises:
        ImportError: If MCP package is not installed
    """
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install oodles[mcp]"
        )

    server = Server("oodles")
    store = create_store(config)
    tool_defs = make_tools(store)
    for tool_name, tool_func in config.custom_tools.items():
        tool_defs[tool_name] = custom_tool_definition(tool_name, tool_func)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name=t["name"],
                description=t["description"],
                inputSchema=t["inputSchema"],
            )
            for t in tool_defs.values()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if name in config.custom_tools:
            result = await run_custom_tool(config.custom_tools[name], store, arguments)
        else:
            result = await execute_tool(store, name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    return server


async def run_server(config: OodlesConfig) -> None:
    """Run the MCP server with stdio transport."""
    if not HAS_MCP:
        raise ImportError(
            "MCP package not installed. Install with: pip install oodles[mcp]"
        )

    server = create_server(config)  # pragma: no cover

    async with stdio_server() as (read_stream, write_stream):  # pragma: no cover
        await server.run(  # pragma: no cover
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Oodles - titled message threads kept as hand-editable text files"
    )
    parser.add_argument(
        "--data-directory",
        "-d",
        type=Path,
        default=Path.cwd(),
        help="Where data is kept (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Path to config file (default: auto-detect in data directory)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the oodle storage directory and exit",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Load every oodle, report files that fail to parse, and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Override the configured log level",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    data_directory = args.data_directory.resolve()

    try:
        config = load_config(data_directory, args.config)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    # stdout carries the MCP stream
    logging.basicConfig(
        level=args.log_level or config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.init:
        OodleStore(config)
        print(f"Initialized oodle storage in {config.get_oodles_path()}")
        return

    if args.check:
        store = create_store(config)
        print(f"{len(store.oodles())} oodles loaded from {config.get_oodles_path()}")
        for path, err in store.load_errors.items():
            print(f"  FAILED {path.name}: {err}")
        if store.load_errors:
            sys.exit(1)
        return

    if not HAS_MCP:
        print("Error: MCP package not installed.", file=sys.stderr)
        print("Install with: pip install oodles[mcp]", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run_server(config))


if __name__ == "__main__":  # pragma: no cover
    main()
