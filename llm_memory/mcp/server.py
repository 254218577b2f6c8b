"""
llm-memory MCP Server - scoped memories, plans and todos for MCP clients.

Exposes the LLMMemory facade as MCP tools. Every tool call resolves the
caller's scope from the server's working directory, so records written by
one project stay invisible to another unless they share a group or are
global.

Usage:
    llm-memory mcp  # Start MCP server (stdio transport)
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
)

from llm_memory.config import Settings
from llm_memory.core import LLMMemory
from llm_memory.errors import (
    BatchError,
    DuplicateNameError,
    NotFoundError,
    PathAlreadyInGroupError,
    StorageFailure,
)
from llm_memory.mcp.handlers import HANDLERS, VALIDATORS
from llm_memory.mcp.tool_definitions import TOOLS
from llm_memory.storage import SQLiteStorage

logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = Server("llm-memory")

# Session configuration, set by main() before the first call
_settings: Optional[Settings] = None
_working_directory: Optional[str] = None


def configure(
    settings: Optional[Settings] = None, working_directory: Optional[Union[str, Path]] = None
) -> None:
    """Set settings and working directory for this MCP session."""
    global _settings, _working_directory
    _settings = settings
    _working_directory = str(working_directory) if working_directory else None
    # Clear cached instance so the next get_memory uses the new configuration
    if hasattr(get_memory, "_instance"):
        delattr(get_memory, "_instance")


def get_memory() -> LLMMemory:
    """Get or create the LLMMemory instance."""
    if not hasattr(get_memory, "_instance"):
        settings = _settings or Settings.from_env()
        get_memory._instance = LLMMemory(  # type: ignore[attr-defined]
            storage=SQLiteStorage(settings=settings),
            working_directory=_working_directory,
        )
    return get_memory._instance  # type: ignore[attr-defined]


# =============================================================================
# INPUT VALIDATION & ERROR HANDLING
# =============================================================================


def validate_tool_input(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and sanitize MCP tool inputs."""
    try:
        if not isinstance(name, str) or not name:
            raise ValueError("tool name must be a non-empty string")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValueError(f"arguments must be an object, got {type(arguments).__name__}")

        validator = VALIDATORS.get(name)
        if validator is None:
            raise ValueError(f"Unknown tool: {name}")
        return validator(arguments)

    except (ValueError, TypeError) as e:
        logger.warning(f"Input validation failed for tool {name}: {e}")
        raise ValueError(str(e))


def handle_tool_error(e: Exception, tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Map errors to safe tool output.

    Domain errors carry user-facing messages; anything else is logged in
    full and reported generically.
    """
    if isinstance(e, NotFoundError):
        logger.info(f"Not found in tool {tool_name}: {e}")
        return [TextContent(type="text", text=f"Not found: {e}")]

    elif isinstance(e, (DuplicateNameError, PathAlreadyInGroupError)):
        logger.info(f"Conflict in tool {tool_name}: {e}")
        return [TextContent(type="text", text=f"Conflict: {e}")]

    elif isinstance(e, (ValueError, BatchError)):
        # Input validation, ValidationFailed and batch size policy
        logger.warning(f"Invalid input for tool {tool_name}: {e}")
        return [TextContent(type="text", text=f"Invalid input: {e}")]

    elif isinstance(e, PermissionError):
        logger.warning(f"Permission denied for tool {tool_name}")
        return [TextContent(type="text", text="Access denied")]

    elif isinstance(e, (StorageFailure, ConnectionError)):
        logger.error(f"Storage error for tool {tool_name}: {e}")
        return [TextContent(type="text", text="Service temporarily unavailable")]

    else:
        # Unknown error - log full details but return generic message
        argument_keys = list(arguments.keys()) if isinstance(arguments, dict) else []
        logger.error(
            f"Internal error in tool {tool_name}",
            extra={
                "tool_name": tool_name,
                "arguments_keys": argument_keys,
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        return [TextContent(type="text", text="Internal server error")]


# =============================================================================
# MCP PROTOCOL HANDLERS
# =============================================================================


@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return list(TOOLS)


@mcp.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls with validation and error handling."""
    try:
        sanitized_args = validate_tool_input(name, arguments)
        handler = HANDLERS.get(name)
        if handler is None:
            logger.error(f"Unexpected tool name after validation: {name}")
            return [TextContent(type="text", text=f"Tool '{name}' is not available")]
        result = handler(sanitized_args, get_memory())
        return [TextContent(type="text", text=result)]

    except Exception as e:
        return handle_tool_error(e, name, arguments)


async def run_server():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp.run(
            read_stream,
            write_stream,
            mcp.create_initialization_options(),
        )


def main(
    settings: Optional[Settings] = None, working_directory: Optional[Union[str, Path]] = None
):
    """Entry point for MCP server.

    stdout carries the protocol, so logging goes to stderr only.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(stream=sys.stderr, level=settings.log_level)
    configure(settings, working_directory)
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
