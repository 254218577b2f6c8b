"""Group commands for llm-memory CLI."""

from typing import TYPE_CHECKING

from llm_memory.cli.commands.helpers import print_json, validate_input

if TYPE_CHECKING:
    from llm_memory import LLMMemory


def _print_group(group) -> None:
    print(f"{group.name} (id {group.id})")
    if group.description:
        print(f"  {group.description}")
    if group.paths:
        for path in group.paths:
            print(f"  - {path}")
    else:
        print("  (no paths)")


def cmd_group(args, m: "LLMMemory"):
    """Handle group subcommands."""
    if args.group_action == "create":
        name = validate_input(args.name, "name", 100)
        description = validate_input(args.description or "", "description", 1000)
        group = m.group_create(name, description)
        if args.json:
            print_json(group.to_dict())
        else:
            print(f"✓ Group created: {group.name} (id {group.id})")

    elif args.group_action == "list":
        groups = m.group_list()
        if args.json:
            print_json([g.to_dict() for g in groups])
            return
        if not groups:
            print("No groups.")
            return
        for group in groups:
            _print_group(group)

    elif args.group_action == "show":
        group = m.group_get(validate_input(args.group, "group", 100))
        if args.json:
            print_json(group.to_dict())
        else:
            _print_group(group)

    elif args.group_action == "add":
        group = validate_input(args.group, "group", 100)
        record = m.group_add_path(group, args.path)
        print(f"✓ {record.path} added to {group}")

    elif args.group_action == "remove":
        group = validate_input(args.group, "group", 100)
        if m.group_remove_path(group, args.path):
            print(f"✓ Path removed from {group}")
        else:
            print(f"Nothing to remove: path is not in {group}")

    elif args.group_action == "rename":
        group = m.group_update(
            validate_input(args.group, "group", 100),
            name=validate_input(args.new_name, "name", 100) if args.new_name else None,
            description=(
                validate_input(args.description, "description", 1000)
                if args.description is not None
                else None
            ),
        )
        print(f"✓ Group updated: {group.name}")

    elif args.group_action == "delete":
        group = validate_input(args.group, "group", 100)
        m.group_delete(group)
        print(f"✓ Group deleted: {group} (records kept)")

    elif args.group_action == "current":
        group = m.group_current()
        if args.json:
            print_json(group.to_dict() if group else None)
        elif group is None:
            print("Current directory is not in a group.")
        else:
            _print_group(group)
