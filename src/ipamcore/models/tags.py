"""Tag schema models."""

from dataclasses import dataclass, field
from enum import Enum

from ..constants import TAG_TYPE_INHERITABLE, TAG_TYPE_NON_INHERITABLE


class TagType(str, Enum):
    """Whether a tag's value flows down to descendant nodes."""

    INHERITABLE = TAG_TYPE_INHERITABLE
    NON_INHERITABLE = TAG_TYPE_NON_INHERITABLE


@dataclass(frozen=True)
class Implication:
    """
    One implied assignment: setting the owning tag to some value sets
    ``tag`` to ``value``.
    """

    tag: str
    value: str

    def __str__(self) -> str:
        return f"{self.tag}={self.value}"


@dataclass
class TagDefinition:
    """
    Schema for one tag name in an address space.

    Attributes:
        address_space_id: Owning address space
        name: Tag name, unique per address space
        type: Inheritable or NonInheritable
        known_values: Allowed values; empty means unconstrained
        attributes: Per-value metadata (value -> attribute -> text)
        implications: Value -> implied assignments on other tags
    """

    address_space_id: str
    name: str
    type: TagType = TagType.INHERITABLE
    known_values: frozenset[str] = field(default_factory=frozenset)
    attributes: dict[str, dict[str, str]] = field(default_factory=dict)
    implications: dict[str, list[Implication]] = field(default_factory=dict)

    @property
    def is_inheritable(self) -> bool:
        """True for Inheritable tags."""
        return self.type == TagType.INHERITABLE

    @property
    def is_constrained(self) -> bool:
        """True if values are restricted to ``known_values``."""
        return bool(self.known_values)

    def implied_by(self, value: str) -> list[Implication]:
        """
        Get the assignments implied by setting this tag to ``value``.

        Args:
            value: Tag value

        Returns:
            Implied assignments, empty if the value implies nothing
        """
        return self.implications.get(value, [])


@dataclass(frozen=True)
class TagAssignment:
    """
    A tag value on a node, used while validating.

    Attributes:
        name: Tag name
        value: Tag value
        is_inherited: True if the value came from an ancestor
    """

    name: str
    value: str
    is_inherited: bool = False

    def __str__(self) -> str:
        return f"{self.name}={self.value}"
