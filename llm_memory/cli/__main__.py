"""
llm-memory CLI - scoped memories, plans and todos for LLM agents.

Usage:
    llm-memory [--db PATH] [--cwd DIR] scope [--json]
    llm-memory group create NAME [--description D]
    llm-memory group list|show|add|remove|rename|delete|current ...
    llm-memory memory create TITLE CONTENT [--code C] [--category C] [--global]
    llm-memory memory list|search|get|update|archive|unarchive|delete ...
    llm-memory memory batch create|update|status|delete [--file F]
    llm-memory plan create TITLE [--code C] [--description D]
    llm-memory plan list|get|update|start|complete|cancel|progress|delete ...
    llm-memory todo create TITLE [--due DATE] [--priority N] [--global]
    llm-memory todo list|today|get|update|start|complete|cancel|delete ...
    llm-memory todo final --yes
    llm-memory mcp

Records are addressed by numeric id or by their code. Without ``--scope``
reads cover the current path, its group and global records.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from llm_memory import LLMMemory
from llm_memory.cli.commands import cmd_group, cmd_memory, cmd_plan, cmd_scope, cmd_todo
from llm_memory.cli.commands.helpers import SCOPE_CHOICES, add_batch_parser
from llm_memory.config import Settings
from llm_memory.errors import LLMMemoryError
from llm_memory.storage import SQLiteStorage
from llm_memory.types import (
    PRIORITY_MEDIUM,
    VALID_MEMORY_STATUS_VALUES,
    VALID_TASK_STATUS_VALUES,
)

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

TASK_STATUSES = sorted(VALID_TASK_STATUS_VALUES)
MEMORY_STATUSES = sorted(VALID_MEMORY_STATUS_VALUES)


def cmd_mcp(args, settings: Settings):
    """Start MCP server."""
    try:
        from llm_memory.mcp.server import main as mcp_main
    except ImportError as e:
        logger.error("MCP dependencies not installed. Run: pip install llm-memory[mcp]")
        logger.error(f"Error: {e}")
        sys.exit(1)
    mcp_main(settings=settings, working_directory=args.cwd)


def _add_scope_arg(p, help_text: str = "Restrict to scope (default: all)"):
    p.add_argument("--scope", "-s", choices=SCOPE_CHOICES, help=help_text)


def _add_key_parser(sub, name: str, help_text: str):
    p = sub.add_parser(name, help=help_text)
    p.add_argument("key", help="Record id or code")
    _add_scope_arg(p)
    return p


def _add_global_flags(p, default=False):
    """--global / --local; with default=None the flag is only applied when given."""
    p.add_argument(
        "--global", "-g", dest="is_global", action="store_true", default=default,
        help="Visible from every directory",
    )
    p.add_argument(
        "--local", dest="is_global", action="store_false",
        help="Scoped to the current path",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm-memory",
        description="Directory-scoped memories, plans and todos for LLM agents",
    )
    parser.add_argument("--db", help="SQLite database path (default: $LLM_MEMORY_DB)")
    parser.add_argument("--cwd", help="Working directory that defines scope (default: cwd)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # scope
    p_scope = subparsers.add_parser("scope", help="Show the resolved scope")
    p_scope.add_argument("--json", "-j", action="store_true")

    # group
    p_group = subparsers.add_parser("group", help="Group operations")
    group_sub = p_group.add_subparsers(dest="group_action", required=True)

    g_create = group_sub.add_parser("create", help="Create a group")
    g_create.add_argument("name", help="Group name (unique)")
    g_create.add_argument("--description", "-d", help="Description")
    g_create.add_argument("--json", "-j", action="store_true")

    g_list = group_sub.add_parser("list", help="List groups")
    g_list.add_argument("--json", "-j", action="store_true")

    g_show = group_sub.add_parser("show", help="Show a group")
    g_show.add_argument("group", help="Group name or id")
    g_show.add_argument("--json", "-j", action="store_true")

    g_add = group_sub.add_parser("add", help="Add a path to a group")
    g_add.add_argument("group", help="Group name or id")
    g_add.add_argument("path", nargs="?", help="Directory (default: working directory)")

    g_remove = group_sub.add_parser("remove", help="Remove a path from a group")
    g_remove.add_argument("group", help="Group name or id")
    g_remove.add_argument("path", nargs="?", help="Directory (default: working directory)")

    g_rename = group_sub.add_parser("rename", help="Rename or re-describe a group")
    g_rename.add_argument("group", help="Group name or id")
    g_rename.add_argument("new_name", nargs="?", help="New name")
    g_rename.add_argument("--description", "-d", help="New description")

    g_delete = group_sub.add_parser("delete", help="Delete a group (records are kept)")
    g_delete.add_argument("group", help="Group name or id")

    g_current = group_sub.add_parser("current", help="Group of the working directory")
    g_current.add_argument("--json", "-j", action="store_true")

    # memory
    p_memory = subparsers.add_parser("memory", help="Memory operations")
    memory_sub = p_memory.add_subparsers(dest="memory_action", required=True)

    m_create = memory_sub.add_parser("create", help="Save a memory")
    m_create.add_argument("title", help="Title")
    m_create.add_argument("content", help="Content")
    m_create.add_argument("--code", "-c", help="Code (lowercase, digits, hyphens)")
    m_create.add_argument("--category", default="default", help="Category")
    m_create.add_argument("--priority", "-p", type=int, default=PRIORITY_MEDIUM,
                          help="1 (low) to 4 (urgent)")
    m_create.add_argument("--tag", "-t", action="append", help="Tag (repeatable)")
    _add_global_flags(m_create)

    m_list = memory_sub.add_parser("list", help="List memories")
    _add_scope_arg(m_list)
    m_list.add_argument("--category", help="Only this category")
    m_list.add_argument("--archived", action="store_true", help="Include archived")
    m_list.add_argument("--limit", "-l", type=int)
    m_list.add_argument("--json", "-j", action="store_true")

    m_search = memory_sub.add_parser("search", help="Keyword search")
    m_search.add_argument("keyword", help="Substring to search for")
    _add_scope_arg(m_search)
    m_search.add_argument("--archived", action="store_true", help="Include archived")
    m_search.add_argument("--limit", "-l", type=int)
    m_search.add_argument("--json", "-j", action="store_true")

    m_get = _add_key_parser(memory_sub, "get", "Show a memory")
    m_get.add_argument("--json", "-j", action="store_true")

    m_update = _add_key_parser(memory_sub, "update", "Update a memory")
    m_update.add_argument("--title")
    m_update.add_argument("--content")
    m_update.add_argument("--code", "-c")
    m_update.add_argument("--category")
    m_update.add_argument("--priority", "-p", type=int)
    m_update.add_argument("--tag", "-t", action="append", help="Replace tags (repeatable)")
    _add_global_flags(m_update, default=None)

    for action, help_text in (
        ("archive", "Archive a memory"),
        ("unarchive", "Restore an archived memory"),
        ("delete", "Delete a memory"),
    ):
        _add_key_parser(memory_sub, action, help_text)

    add_batch_parser(memory_sub, "memory", MEMORY_STATUSES)

    # plan
    p_plan = subparsers.add_parser("plan", help="Plan operations")
    plan_sub = p_plan.add_subparsers(dest="plan_action", required=True)

    pl_create = plan_sub.add_parser("create", help="Create a plan")
    pl_create.add_argument("title", help="Title")
    pl_create.add_argument("--code", "-c")
    pl_create.add_argument("--description", "-d")
    pl_create.add_argument("--content")
    _add_global_flags(pl_create)

    pl_list = plan_sub.add_parser("list", help="List plans")
    _add_scope_arg(pl_list)
    pl_list.add_argument("--status", choices=TASK_STATUSES)
    pl_list.add_argument("--limit", "-l", type=int)
    pl_list.add_argument("--json", "-j", action="store_true")

    pl_get = _add_key_parser(plan_sub, "get", "Show a plan")
    pl_get.add_argument("--json", "-j", action="store_true")

    pl_update = _add_key_parser(plan_sub, "update", "Update a plan")
    pl_update.add_argument("--title")
    pl_update.add_argument("--code", "-c")
    pl_update.add_argument("--description", "-d")
    pl_update.add_argument("--content")
    _add_global_flags(pl_update, default=None)

    pl_progress = _add_key_parser(plan_sub, "progress", "Set progress (0-100)")
    pl_progress.add_argument("value", type=int, help="Progress percentage")

    for action, help_text in (
        ("start", "Mark in progress"),
        ("complete", "Mark completed"),
        ("cancel", "Cancel"),
        ("delete", "Delete a plan"),
    ):
        _add_key_parser(plan_sub, action, help_text)

    add_batch_parser(plan_sub, "plan", TASK_STATUSES)

    # todo
    p_todo = subparsers.add_parser("todo", help="Todo operations")
    todo_sub = p_todo.add_subparsers(dest="todo_action", required=True)

    t_create = todo_sub.add_parser("create", help="Add a todo")
    t_create.add_argument("title", help="Title")
    t_create.add_argument("--code", "-c")
    t_create.add_argument("--description", "-d")
    t_create.add_argument("--priority", "-p", type=int, default=PRIORITY_MEDIUM,
                          help="1 (low) to 4 (urgent)")
    t_create.add_argument("--due", help="Due date (ISO, e.g. 2026-05-01)")
    t_create.add_argument("--tag", "-t", action="append", help="Tag (repeatable)")
    _add_global_flags(t_create)

    t_list = todo_sub.add_parser("list", help="List todos")
    _add_scope_arg(t_list)
    t_list.add_argument("--status", choices=TASK_STATUSES)
    t_list.add_argument("--limit", "-l", type=int)
    t_list.add_argument("--json", "-j", action="store_true")

    t_today = todo_sub.add_parser("today", help="Todos due today")
    _add_scope_arg(t_today)
    t_today.add_argument("--json", "-j", action="store_true")

    t_get = _add_key_parser(todo_sub, "get", "Show a todo")
    t_get.add_argument("--json", "-j", action="store_true")

    t_update = _add_key_parser(todo_sub, "update", "Update a todo")
    t_update.add_argument("--title")
    t_update.add_argument("--code", "-c")
    t_update.add_argument("--description", "-d")
    t_update.add_argument("--priority", "-p", type=int)
    t_update.add_argument("--due", help="Due date, or empty string to clear")
    t_update.add_argument("--tag", "-t", action="append", help="Replace tags (repeatable)")
    _add_global_flags(t_update, default=None)

    for action, help_text in (
        ("start", "Mark in progress"),
        ("complete", "Mark completed"),
        ("cancel", "Cancel"),
        ("delete", "Delete a todo"),
    ):
        _add_key_parser(todo_sub, action, help_text)

    t_final = todo_sub.add_parser("final", help="Delete all non-global todos in scope")
    _add_scope_arg(t_final)
    t_final.add_argument("--yes", "-y", action="store_true", help="Confirm deletion")
    t_final.add_argument("--json", "-j", action="store_true")

    add_batch_parser(todo_sub, "todo", TASK_STATUSES)

    # mcp
    subparsers.add_parser("mcp", help="Start MCP server (stdio transport)")

    return parser


def load_settings(args) -> Settings:
    settings = Settings.from_env()
    if args.db:
        settings = dataclasses.replace(settings, db_path=Path(args.db).expanduser())
    return settings


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except (ValueError, TypeError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    logging.getLogger("llm_memory").setLevel(settings.log_level)

    if args.command == "mcp":
        cmd_mcp(args, settings)
        return

    # Initialize LLMMemory with error handling
    try:
        m = LLMMemory(storage=SQLiteStorage(settings=settings), working_directory=args.cwd)
    except (LLMMemoryError, ValueError, TypeError) as e:
        logger.error(f"Failed to initialize llm-memory: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        if args.command == "scope":
            cmd_scope(args, m)
        elif args.command == "group":
            cmd_group(args, m)
        elif args.command == "memory":
            cmd_memory(args, m)
        elif args.command == "plan":
            cmd_plan(args, m)
        elif args.command == "todo":
            cmd_todo(args, m)
    except LLMMemoryError as e:
        logger.error(str(e))
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except OSError as e:
        logger.error(f"I/O error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
