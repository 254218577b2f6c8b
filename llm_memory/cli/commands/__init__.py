"""CLI command modules for llm-memory.

Each module contains the handlers for one top-level command.
"""

from llm_memory.cli.commands.group import cmd_group
from llm_memory.cli.commands.memory import cmd_memory
from llm_memory.cli.commands.plan import cmd_plan
from llm_memory.cli.commands.scope import cmd_scope
from llm_memory.cli.commands.todo import cmd_todo

__all__ = [
    "cmd_group",
    "cmd_memory",
    "cmd_plan",
    "cmd_scope",
    "cmd_todo",
]
