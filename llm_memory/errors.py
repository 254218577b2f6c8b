"""Typed errors for llm-memory.

Registry errors (duplicate names, path conflicts, lookups) are raised to the
immediate caller. ``ValidationFailed`` is raised by single-item operations and
captured into ``BatchResult.errors`` by the batch executor. ``StorageFailure``
wraps low-level ``sqlite3`` errors and always propagates.
"""

from typing import Optional


class LLMMemoryError(Exception):
    """Base for all llm-memory errors."""

    pass


class DuplicateNameError(LLMMemoryError):
    """A group with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(f"Group name already exists: {name}")
        self.name = name


class PathAlreadyInGroupError(LLMMemoryError):
    """The path is already a member of a different group."""

    def __init__(self, path: str, group_name: str):
        super().__init__(f"Path {path} already belongs to group '{group_name}'")
        self.path = path
        self.group_name = group_name


class NotFoundError(LLMMemoryError):
    """Base for lookup misses."""

    pass


class GroupNotFoundError(NotFoundError):
    def __init__(self, group: object):
        super().__init__(f"Group not found: {group}")
        self.group = group


class PathNotFoundError(NotFoundError):
    def __init__(self, path: object):
        super().__init__(f"Path not found: {path}")
        self.path = path


class RecordNotFoundError(NotFoundError):
    def __init__(self, kind: str, key: object):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class BatchError(LLMMemoryError):
    """Batch-size policy violation, rejected before any mutation."""

    pass


class EmptyBatchError(BatchError):
    def __init__(self):
        super().__init__("Batch must contain at least one item")


class BatchTooLargeError(BatchError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Batch too large ({size} items, max {limit})")
        self.size = size
        self.limit = limit


class ValidationFailed(LLMMemoryError, ValueError):
    """A single item failed local validation.

    ``str()`` renders as ``"<field> <reason>"`` so the batch executor can
    prefix it with the item position.
    """

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field} {reason}")
        self.field = field
        self.reason = reason


class StorageFailure(LLMMemoryError):
    """Infrastructure failure (connection, lock, interrupted transaction)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
