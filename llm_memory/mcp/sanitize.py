"""Shared sanitization utilities for MCP layer.

These functions provide input validation and sanitization
for all MCP tools to ensure consistent security handling.
"""

import math
import re
from typing import Any, List, Optional, Union

from llm_memory.types import VALID_SCOPE_VALUES

SCOPE_VALUES = sorted(VALID_SCOPE_VALUES)


def sanitize_string(
    value: Any, field_name: str, max_length: int = 1000, required: bool = True
) -> str:
    """Sanitize and validate string inputs.

    Args:
        value: The value to sanitize.
        field_name: Name of the field for error messages.
        max_length: Maximum allowed string length.
        required: If True, empty strings are rejected.

    Returns:
        Sanitized string.

    Raises:
        ValueError: If validation fails.
    """
    if value is None and not required:
        return ""

    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string, got {type(value).__name__}")

    if required and not value.strip():
        raise ValueError(f"{field_name} cannot be empty")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters, got {len(value)})")

    # Remove null bytes and control characters except newlines and tabs
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


def sanitize_array(
    value: Any, field_name: str, item_max_length: int = 500, max_items: int = 100
) -> List[str]:
    """Sanitize and validate array inputs.

    Returns:
        List of sanitized strings (empty items removed)
    """
    if value is None:
        return []

    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be an array, got {type(value).__name__}")

    if len(value) > max_items:
        raise ValueError(f"{field_name} too many items (max {max_items}, got {len(value)})")

    if any(item is None for item in value):
        raise ValueError(f"{field_name} must not contain null items")

    sanitized = []
    for i, item in enumerate(value):
        sanitized_item = sanitize_string(
            item, f"{field_name}[{i}]", item_max_length, required=False
        )
        if sanitized_item:
            sanitized.append(sanitized_item)

    return sanitized


def validate_enum(
    value: Any,
    field_name: str,
    valid_values: List[str],
    default: Optional[str] = None,
    required: bool = False,
) -> Optional[str]:
    """Validate enum values. A missing optional value without default gives None."""
    if value is None:
        if required:
            raise ValueError(f"{field_name} is required")
        return default

    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if value not in valid_values:
        raise ValueError(f"{field_name} must be one of {valid_values}, got '{value}'")

    return value


def validate_number(
    value: Any,
    field_name: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    default: Optional[float] = None,
) -> Optional[float]:
    """Validate numeric values."""
    if value is None:
        return default

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number, got {type(value).__name__}")

    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise ValueError(f"{field_name} must be a finite number, got {value}")

    if min_val is not None and value < min_val:
        raise ValueError(f"{field_name} must be >= {min_val}, got {value}")

    if max_val is not None and value > max_val:
        raise ValueError(f"{field_name} must be <= {max_val}, got {value}")

    return float(value)


def validate_bool(value: Any, field_name: str, default: bool = False) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return value


def validate_key(value: Any, field_name: str = "key") -> Union[int, str]:
    """Record id (integer or digit string) or code."""
    if isinstance(value, int) and not isinstance(value, bool):
        if value <= 0:
            raise ValueError(f"{field_name} must be a positive id")
        return value
    key = sanitize_string(value, field_name, 100, required=True).strip()
    return int(key) if key.isdigit() else key


def validate_scope(value: Any) -> Optional[str]:
    return validate_enum(value, "scope", SCOPE_VALUES)


def validate_limit(value: Any, default: Optional[int] = None) -> Optional[int]:
    limit = validate_number(value, "limit", 1, 1000, default)
    return int(limit) if limit is not None else None


def validate_batch_items(value: Any, field_name: str = "items") -> List[Any]:
    """Shape check only; size policy and per-item validation belong to the batch executor."""
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be an array")
    return value
