"""
Shared types for llm-memory.

Record dataclasses (Memory, Plan, Todo), registry rows (PathRecord, Group),
the request-scoped ScopeContext / VisibilityFilter value objects, batch
inputs (create items and presence-tracking patches) and BatchResult all live
here. They are the contract between storage, the facade and the CLI/MCP
layers.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string. Naive values are taken as UTC."""
    if not s:
        return None
    parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# Records are addressed either by snowflake id or by their human code.
Key = Union[int, str]

MAX_BATCH_SIZE = 100

PRIORITY_LOW = 1
PRIORITY_MEDIUM = 2
PRIORITY_HIGH = 3
PRIORITY_URGENT = 4

PRIORITY_NAMES = {
    PRIORITY_LOW: "low",
    PRIORITY_MEDIUM: "medium",
    PRIORITY_HIGH: "high",
    PRIORITY_URGENT: "urgent",
}


# === Enums ===


class Scope(str, Enum):
    """Scope keyword requested by a caller.

    ``Scope.parse`` is the only place a raw keyword is interpreted.
    """

    PERSONAL = "personal"
    GROUP = "group"
    GLOBAL = "global"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union["Scope", str, None]) -> "Scope":
        """Parse a scope keyword.

        ``None`` and the empty string mean ``ALL``. Unknown keywords map to
        ``GLOBAL`` so that bad input can never widen visibility.
        """
        if isinstance(value, Scope):
            return value
        if value is None:
            return cls.ALL
        normalized = str(value).strip().lower()
        if not normalized:
            return cls.ALL
        for member in cls:
            if member.value == normalized:
                return member
        return cls.GLOBAL


class TaskStatus(str, Enum):
    """Lifecycle status shared by plans and todos."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MemoryStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


VALID_TASK_STATUS_VALUES = frozenset(s.value for s in TaskStatus)
VALID_MEMORY_STATUS_VALUES = frozenset(s.value for s in MemoryStatus)
VALID_SCOPE_VALUES = frozenset(s.value for s in Scope)


# === Registry rows ===


@dataclass
class PathRecord:
    """A canonical filesystem directory acting as tenant key."""

    id: int
    path: str
    last_seen_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class Group:
    """A named set of paths that share non-global data."""

    id: int
    name: str
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "paths": list(self.paths),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# === Request-scoped value objects ===


@dataclass(frozen=True)
class ScopeContext:
    """Resolved identity of the current caller.

    Computed fresh for every request; never persisted or cached, since path
    and group membership can change between calls.
    """

    path_id: int = 0
    group_path_ids: FrozenSet[int] = frozenset()
    include_global: bool = True
    current_path: str = ""
    group_id: Optional[int] = None
    group_name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "group_path_ids", frozenset(self.group_path_ids))

    @classmethod
    def global_only(cls) -> "ScopeContext":
        """Context for a caller whose working directory is unknown."""
        return cls(path_id=0, group_path_ids=frozenset(), include_global=True)

    @property
    def degraded(self) -> bool:
        """True when only global data is reachable from this context."""
        return self.path_id <= 0 and not self.group_path_ids

    @property
    def has_group(self) -> bool:
        return self.group_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_path": self.current_path,
            "path_id": self.path_id,
            "group_id": self.group_id,
            "group_name": self.group_name,
            "group_path_ids": sorted(self.group_path_ids),
            "include_global": self.include_global,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class VisibilityFilter:
    """Predicate descriptor selecting which rows a request may see.

    Non-global rows are only ever matched through an explicit, non-empty set
    of path ids.
    """

    include_global: bool = False
    include_non_global: bool = False
    path_ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        path_ids = frozenset(pid for pid in self.path_ids if pid and pid > 0)
        object.__setattr__(self, "path_ids", path_ids)
        if self.include_non_global and not path_ids:
            raise ValueError("include_non_global requires at least one path id")

    @property
    def matches_nothing(self) -> bool:
        return not self.include_global and not self.include_non_global

    def allows(self, is_global: bool, path_id: int) -> bool:
        """Evaluate the filter against a single row in memory."""
        if is_global:
            return self.include_global
        return self.include_non_global and path_id in self.path_ids


# === Entity records ===


@dataclass
class Memory:
    id: int
    title: str
    content: str
    code: Optional[str] = None
    category: str = "default"
    priority: int = PRIORITY_MEDIUM
    tags: List[str] = field(default_factory=list)
    status: str = MemoryStatus.ACTIVE.value
    is_global: bool = False
    path_id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Plan:
    id: int
    title: str
    code: Optional[str] = None
    description: str = ""
    content: str = ""
    status: str = TaskStatus.PENDING.value
    progress: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_global: bool = False
    path_id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Todo:
    id: int
    title: str
    code: Optional[str] = None
    description: str = ""
    priority: int = PRIORITY_MEDIUM
    status: str = TaskStatus.PENDING.value
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tags: List[str] = field(default_factory=list)
    is_global: bool = False
    path_id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None:
            return False
        if self.status in (TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value):
            return False
        return datetime.now(timezone.utc) > self.due_date


def record_to_dict(record: Any) -> Dict[str, Any]:
    """Serialize a record dataclass for JSON transports."""
    data: Dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, datetime):
            value = value.isoformat()
        data[f.name] = value
    return data


# === Batch inputs ===


class _Unset:
    """Marker for a patch field that was not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _create_from_dict(cls, data: Dict[str, Any]):
    if not isinstance(data, dict):
        raise ValueError(f"item must be an object, got {type(data).__name__}")
    names = {f.name for f in fields(cls)}
    kwargs = {}
    for name, value in data.items():
        if name == "global":
            name = "is_global"
        if name in names:
            kwargs[name] = value
    return cls(**kwargs)


@dataclass
class MemoryCreate:
    title: str = ""
    content: str = ""
    code: Optional[str] = None
    category: str = "default"
    priority: int = PRIORITY_MEDIUM
    tags: Optional[List[str]] = None
    is_global: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryCreate":
        return _create_from_dict(cls, data)


@dataclass
class PlanCreate:
    title: str = ""
    code: Optional[str] = None
    description: str = ""
    content: str = ""
    is_global: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanCreate":
        return _create_from_dict(cls, data)


@dataclass
class TodoCreate:
    title: str = ""
    code: Optional[str] = None
    description: str = ""
    priority: int = PRIORITY_MEDIUM
    due_date: Optional[Union[str, datetime]] = None
    tags: Optional[List[str]] = None
    is_global: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TodoCreate":
        return _create_from_dict(cls, data)


@dataclass
class Patch:
    """Partial update addressed by key.

    Every field defaults to ``UNSET``; only fields that were explicitly given
    are applied. ``None`` is a real value (clear the field), not "absent".
    """

    key: Key = 0

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "key" and getattr(self, f.name) is not UNSET
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Build a patch from a mapping; keys absent from it stay ``UNSET``."""
        if not isinstance(data, dict):
            raise ValueError(f"item must be an object, got {type(data).__name__}")
        data = dict(data)
        if "key" not in data:
            # "id" addresses the row and leaves "code" free to be patched;
            # a bare "code" is the address itself.
            if "id" in data:
                data["key"] = data.pop("id")
            elif "code" in data:
                data["key"] = data.pop("code")
            else:
                raise ValueError("item is missing its key (id or code)")
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for name, value in data.items():
            if name == "global":
                name = "is_global"
            if name in names:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass
class MemoryPatch(Patch):
    title: Any = UNSET
    content: Any = UNSET
    code: Any = UNSET
    category: Any = UNSET
    priority: Any = UNSET
    tags: Any = UNSET
    is_global: Any = UNSET


@dataclass
class PlanPatch(Patch):
    title: Any = UNSET
    code: Any = UNSET
    description: Any = UNSET
    content: Any = UNSET
    progress: Any = UNSET
    is_global: Any = UNSET


@dataclass
class TodoPatch(Patch):
    title: Any = UNSET
    code: Any = UNSET
    description: Any = UNSET
    priority: Any = UNSET
    status: Any = UNSET
    due_date: Any = UNSET
    tags: Any = UNSET
    is_global: Any = UNSET


# === Batch result ===


@dataclass
class BatchResult:
    """Aggregate and per-item outcome of a batch mutation.

    ``total == succeeded + failed`` and ``len(errors) == failed`` hold after
    execution. Errors keep input order and name the 1-indexed item.
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    ids: List[int] = field(default_factory=list)

    def record_success(self, record_id: Optional[int] = None) -> None:
        self.succeeded += 1
        if record_id is not None:
            self.ids.append(record_id)

    def record_failure(self, position: int, message: str) -> None:
        self.failed += 1
        self.errors.append(f"item {position}: {message}")

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": list(self.errors),
            "ids": list(self.ids),
        }


def merge_path_ids(path_id: int, path_ids: Iterable[int]) -> FrozenSet[int]:
    """Union a single path id with a set of ids, dropping non-positive ids."""
    merged = {pid for pid in path_ids if pid and pid > 0}
    if path_id and path_id > 0:
        merged.add(path_id)
    return frozenset(merged)
