"""Operation types and models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class OperationType(str, Enum):
    """Type of write a plan describes."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class FieldChange:
    """
    Represents a change to a single field.

    Attributes:
        field_name: Name of the field being changed.
        old_value: The original value of the field.
        new_value: The new value of the field.
    """

    field_name: str
    old_value: Any
    new_value: Any

    def __str__(self) -> str:
        """
        Human-readable string representation.

        Returns:
            str: A string describing the change (e.g., "tags.Env: Dev -> Prod").
        """
        return f"{self.field_name}: {self.old_value} -> {self.new_value}"


def diff_tags(old: dict[str, str], new: dict[str, str], prefix: str = "tags") -> list[FieldChange]:
    """
    Compute per-tag changes between two tag maps.

    Args:
        old: Tags before the change
        new: Tags after the change
        prefix: Field name prefix for the reported changes

    Returns:
        One FieldChange per added, removed or changed tag, sorted by tag name
    """
    changes = []
    for name in sorted(set(old) | set(new)):
        before = old.get(name)
        after = new.get(name)
        if before != after:
            changes.append(FieldChange(f"{prefix}.{name}", before, after))
    return changes
