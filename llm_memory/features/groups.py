"""Group management mixin for LLMMemory.

Groups are addressed by id or by name everywhere in the facade.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Union

from llm_memory.errors import GroupNotFoundError
from llm_memory.types import Group, PathRecord

if TYPE_CHECKING:
    from llm_memory.core import LLMMemory

logger = logging.getLogger(__name__)

GroupRef = Union[int, str]


class GroupsMixin:
    """Mixin providing group and path-membership operations."""

    def _resolve_group(self: "LLMMemory", group: GroupRef) -> Group:
        groups = self.storage.groups
        found: Optional[Group] = None
        if isinstance(group, int) and not isinstance(group, bool):
            found = groups.get_group(group)
        elif isinstance(group, str):
            found = groups.get_group_by_name(group)
            if found is None and group.strip().isdigit():
                found = groups.get_group(int(group.strip()))
        if found is None:
            raise GroupNotFoundError(group)
        return found

    def group_create(self: "LLMMemory", name: str, description: str = "") -> Group:
        """Create a group.

        Raises:
            DuplicateNameError: A group with this name exists.
            ValidationFailed: The name is blank.
        """
        group = self.storage.groups.create_group(name, description)
        logger.info(f"Created group {group.name}")
        return group

    def group_update(
        self: "LLMMemory",
        group: GroupRef,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Group:
        target = self._resolve_group(group)
        return self.storage.groups.update_group(target.id, name=name, description=description)

    def group_add_path(self: "LLMMemory", group: GroupRef, path: Optional[str] = None) -> PathRecord:
        """Add ``path`` (default: the working directory) to a group.

        Raises:
            PathAlreadyInGroupError: The path belongs to another group.
        """
        target = self._resolve_group(group)
        record = self.storage.groups.add_path(target.id, self._resolve_path(path))
        logger.info(f"Path {record.path} is in group {target.name}")
        return record

    def group_remove_path(self: "LLMMemory", group: GroupRef, path: Optional[str] = None) -> bool:
        """Remove a path from a group. False means there was nothing to remove."""
        target = self._resolve_group(group)
        return self.storage.groups.remove_path(target.id, self._resolve_path(path))

    def group_delete(self: "LLMMemory", group: GroupRef) -> None:
        """Delete a group. Records scoped to its paths are kept."""
        target = self._resolve_group(group)
        self.storage.groups.delete_group(target.id)
        logger.info(f"Deleted group {target.name}")

    def group_list(self: "LLMMemory") -> List[Group]:
        return self.storage.groups.list_groups()

    def group_get(self: "LLMMemory", group: GroupRef) -> Group:
        return self._resolve_group(group)

    def group_current(self: "LLMMemory") -> Optional[Group]:
        """Group owning the working directory, if any."""
        ctx = self.scope_context()
        if ctx.group_id is None:
            return None
        return self.storage.groups.get_group(ctx.group_id)
