"""Memory commands for llm-memory CLI."""

from typing import TYPE_CHECKING, Any, Dict

from llm_memory.cli.commands.helpers import (
    parse_key,
    parse_tags,
    print_record,
    print_records,
    run_batch,
    validate_input,
)

if TYPE_CHECKING:
    from llm_memory import LLMMemory


def cmd_memory(args, m: "LLMMemory"):
    """Handle memory subcommands."""
    action = args.memory_action

    if action == "create":
        memory = m.memory_create(
            title=validate_input(args.title, "title", 200),
            content=validate_input(args.content, "content", 50000),
            code=args.code,
            category=validate_input(args.category, "category", 50),
            priority=args.priority,
            tags=parse_tags(args.tag),
            is_global=args.is_global,
        )
        print(f"✓ Memory saved: [{memory.id}] {memory.title}")

    elif action == "list":
        memories = m.memory_list(
            scope=args.scope,
            category=args.category,
            include_archived=args.archived,
            limit=args.limit,
        )
        print_records(m, memories, args.json, "No memories in scope.")

    elif action == "search":
        keyword = validate_input(args.keyword, "keyword", 200)
        memories = m.memory_search(
            keyword, scope=args.scope, include_archived=args.archived, limit=args.limit
        )
        print_records(m, memories, args.json, f"No memories match '{keyword}'.")

    elif action == "get":
        print_record(m, m.memory_get(parse_key(args.key), scope=args.scope), args.json)

    elif action == "update":
        changes: Dict[str, Any] = {}
        if args.title is not None:
            changes["title"] = validate_input(args.title, "title", 200)
        if args.content is not None:
            changes["content"] = validate_input(args.content, "content", 50000)
        if args.code is not None:
            changes["code"] = args.code
        if args.category is not None:
            changes["category"] = validate_input(args.category, "category", 50)
        if args.priority is not None:
            changes["priority"] = args.priority
        if args.tag is not None:
            changes["tags"] = parse_tags(args.tag) or []
        if args.is_global is not None:
            changes["is_global"] = args.is_global
        if not changes:
            print("Nothing to update.")
            return
        memory = m.memory_update(parse_key(args.key), scope=args.scope, **changes)
        print(f"✓ Memory updated: [{memory.id}] {memory.title}")

    elif action == "archive":
        memory = m.memory_archive(parse_key(args.key), scope=args.scope)
        print(f"✓ Archived: [{memory.id}] {memory.title}")

    elif action == "unarchive":
        memory = m.memory_unarchive(parse_key(args.key), scope=args.scope)
        print(f"✓ Restored: [{memory.id}] {memory.title}")

    elif action == "delete":
        record_id = m.memory_delete(parse_key(args.key), scope=args.scope)
        print(f"✓ Memory deleted: {record_id}")

    elif action == "batch":
        run_batch(args, m, "memory")
