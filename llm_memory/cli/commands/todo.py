"""Todo commands for llm-memory CLI."""

from typing import TYPE_CHECKING, Any, Dict

from llm_memory.cli.commands.helpers import (
    parse_key,
    parse_tags,
    print_json,
    print_record,
    print_records,
    run_batch,
    validate_input,
)

if TYPE_CHECKING:
    from llm_memory import LLMMemory


def cmd_todo(args, m: "LLMMemory"):
    """Handle todo subcommands."""
    action = args.todo_action

    if action == "create":
        todo = m.todo_create(
            title=validate_input(args.title, "title", 200),
            code=args.code,
            description=validate_input(args.description or "", "description", 5000),
            priority=args.priority,
            due_date=args.due,
            tags=parse_tags(args.tag),
            is_global=args.is_global,
        )
        print(f"✓ Todo added: [{todo.id}] {todo.title}")

    elif action == "list":
        todos = m.todo_list(scope=args.scope, status=args.status, limit=args.limit)
        print_records(m, todos, args.json, "No todos in scope.")

    elif action == "today":
        todos = m.todo_today(scope=args.scope)
        print_records(m, todos, args.json, "Nothing due today.")

    elif action == "get":
        print_record(m, m.todo_get(parse_key(args.key), scope=args.scope), args.json)

    elif action == "update":
        changes: Dict[str, Any] = {}
        if args.title is not None:
            changes["title"] = validate_input(args.title, "title", 200)
        if args.code is not None:
            changes["code"] = args.code
        if args.description is not None:
            changes["description"] = validate_input(args.description, "description", 5000)
        if args.priority is not None:
            changes["priority"] = args.priority
        if args.due is not None:
            changes["due_date"] = args.due or None
        if args.tag is not None:
            changes["tags"] = parse_tags(args.tag) or []
        if args.is_global is not None:
            changes["is_global"] = args.is_global
        if not changes:
            print("Nothing to update.")
            return
        todo = m.todo_update(parse_key(args.key), scope=args.scope, **changes)
        print(f"✓ Todo updated: [{todo.id}] {todo.title}")

    elif action in ("start", "complete", "cancel"):
        todo = getattr(m, f"todo_{action}")(parse_key(args.key), scope=args.scope)
        print(f"✓ Todo {todo.status}: [{todo.id}] {todo.title}")

    elif action == "delete":
        record_id = m.todo_delete(parse_key(args.key), scope=args.scope)
        print(f"✓ Todo deleted: {record_id}")

    elif action == "final":
        if not args.yes:
            print("This deletes every non-global todo in scope. Re-run with --yes to confirm.")
            return
        deleted = m.todo_final(scope=args.scope)
        if args.json:
            print_json({"deleted": deleted})
        elif deleted:
            print(f"✓ Deleted {deleted} todos")
        else:
            print("No todos to delete in scope.")

    elif action == "batch":
        run_batch(args, m, "todo")
