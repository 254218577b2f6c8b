"""Scope command: show how the working directory resolves."""

from typing import TYPE_CHECKING

from llm_memory.cli.commands.helpers import print_json

if TYPE_CHECKING:
    from llm_memory import LLMMemory


def cmd_scope(args, m: "LLMMemory"):
    """Print the resolved ScopeContext."""
    ctx = m.scope_context()
    if args.json:
        print_json(ctx.to_dict())
        return

    print("Scope")
    print("=" * 40)
    print(f"  Path:    {ctx.current_path or '(unknown)'}")
    print(f"  Path id: {ctx.path_id or '-'}")
    if ctx.has_group:
        print(f"  Group:   {ctx.group_name} ({len(ctx.group_path_ids)} paths)")
    else:
        print("  Group:   (none)")
    if ctx.degraded:
        print("  Working directory unknown: only global records are visible.")
