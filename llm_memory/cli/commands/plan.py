"""Plan commands for llm-memory CLI."""

from typing import TYPE_CHECKING, Any, Dict

from llm_memory.cli.commands.helpers import (
    parse_key,
    print_record,
    print_records,
    run_batch,
    validate_input,
)

if TYPE_CHECKING:
    from llm_memory import LLMMemory


def _bar(progress: int, width: int = 20) -> str:
    filled = int(width * progress / 100)
    return "█" * filled + "░" * (width - filled)


def cmd_plan(args, m: "LLMMemory"):
    """Handle plan subcommands."""
    action = args.plan_action

    if action == "create":
        plan = m.plan_create(
            title=validate_input(args.title, "title", 200),
            code=args.code,
            description=validate_input(args.description or "", "description", 5000),
            content=validate_input(args.content or "", "content", 50000),
            is_global=args.is_global,
        )
        print(f"✓ Plan created: [{plan.id}] {plan.title}")

    elif action == "list":
        plans = m.plan_list(scope=args.scope, status=args.status, limit=args.limit)
        print_records(m, plans, args.json, "No plans in scope.")

    elif action == "get":
        plan = m.plan_get(parse_key(args.key), scope=args.scope)
        print_record(m, plan, args.json)
        if not args.json:
            print(f"  {_bar(plan.progress)} {plan.progress}%")

    elif action == "update":
        changes: Dict[str, Any] = {}
        if args.title is not None:
            changes["title"] = validate_input(args.title, "title", 200)
        if args.code is not None:
            changes["code"] = args.code
        if args.description is not None:
            changes["description"] = validate_input(args.description, "description", 5000)
        if args.content is not None:
            changes["content"] = validate_input(args.content, "content", 50000)
        if args.is_global is not None:
            changes["is_global"] = args.is_global
        if not changes:
            print("Nothing to update.")
            return
        plan = m.plan_update(parse_key(args.key), scope=args.scope, **changes)
        print(f"✓ Plan updated: [{plan.id}] {plan.title}")

    elif action == "progress":
        plan = m.plan_progress(parse_key(args.key), args.value, scope=args.scope)
        print(f"✓ {plan.title}: {_bar(plan.progress)} {plan.progress}% ({plan.status})")

    elif action in ("start", "complete", "cancel"):
        plan = getattr(m, f"plan_{action}")(parse_key(args.key), scope=args.scope)
        print(f"✓ Plan {plan.status}: [{plan.id}] {plan.title}")

    elif action == "delete":
        record_id = m.plan_delete(parse_key(args.key), scope=args.scope)
        print(f"✓ Plan deleted: {record_id}")

    elif action == "batch":
        run_batch(args, m, "plan")
