"""Custom exceptions for the IPAM core.

Exception Hierarchy:
-------------------
IpamError (base)
├── PrefixError (also ValueError)
│   ├── InvalidFormatError          # Not exactly "<address>/<length>"
│   ├── InvalidAddressError         # Address part is not IPv4 or IPv6
│   └── InvalidLengthError          # Length non-numeric or out of family range
├── HierarchyError
│   ├── DuplicatePrefixError        # Prefix already registered in the address space
│   ├── NodeNotFoundError           # Node id not present in the supplied snapshot
│   └── BrokenHierarchyError        # Parent chain loops or points at a missing node
├── TagSchemaError
│   ├── CyclicImplicationError      # Tag implications form a cycle
│   └── InvalidTagDefinitionError   # Definition breaks a schema business rule
├── TagValidationError
│   ├── ImplicationConflictError    # Implication derives a second value for a tag
│   ├── UnknownTagValueError        # Value outside the definition's known values
│   ├── InheritanceConflictError    # Child overrides an inherited tag value
│   └── InsufficientDifferentiationError  # Equal-prefix child adds no inheritable tag
└── SnapshotError                   # Malformed address-space snapshot file

Usage Guidelines:
----------------
1. Every error is a deterministic validation failure. Nothing here is
   transient, so callers should surface rather than retry.

2. Catch IpamError as the catch-all. Catch PrefixError, HierarchyError,
   TagSchemaError or TagValidationError to map failures onto 400/409/422
   style responses in an API layer.

3. Errors carry the offending prefix, tag name and conflicting values as
   attributes so callers can build user-facing messages without parsing
   the message text.

4. Planners never return a partially applied result: when one of these is
   raised, nothing from that invocation may be persisted.
"""


class IpamError(Exception):
    """Base exception for all IPAM core errors."""

    pass


# -----------------------------------------------------------------------------
# CIDR parsing
# -----------------------------------------------------------------------------


class PrefixError(IpamError, ValueError):
    """Raised when CIDR text cannot be turned into a prefix."""

    def __init__(self, message: str, text: str | None = None) -> None:
        """
        Initialize PrefixError.

        Args:
            message: Error message.
            text: The CIDR text (or fragment) that failed to parse.
        """
        super().__init__(message)
        self.text = text


class InvalidFormatError(PrefixError):
    """Raised when CIDR text is not exactly one address and one length."""

    pass


class InvalidAddressError(PrefixError):
    """Raised when the address part is neither IPv4 nor IPv6."""

    pass


class InvalidLengthError(PrefixError):
    """Raised when a prefix length is non-numeric or outside the family range."""

    def __init__(self, message: str, text: str | None = None, max_length: int | None = None) -> None:
        """
        Initialize InvalidLengthError.

        Args:
            message: Error message.
            text: The offending text.
            max_length: Maximum length of the address family, when known.
        """
        super().__init__(message, text)
        self.max_length = max_length


# -----------------------------------------------------------------------------
# Hierarchy
# -----------------------------------------------------------------------------


class HierarchyError(IpamError):
    """Base exception for hierarchy placement errors."""

    pass


class DuplicatePrefixError(HierarchyError):
    """Raised when a prefix is already registered in the address space."""

    def __init__(self, prefix: str, existing_id: str) -> None:
        """
        Initialize DuplicatePrefixError.

        Args:
            prefix: The duplicated prefix.
            existing_id: Id of the node already holding it.
        """
        super().__init__(f"Prefix {prefix} already exists (node {existing_id})")
        self.prefix = prefix
        self.existing_id = existing_id


class NodeNotFoundError(HierarchyError):
    """Raised when a node id is not part of the supplied snapshot."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Network node not found: {node_id}")
        self.node_id = node_id


class BrokenHierarchyError(HierarchyError):
    """
    Raised when the supplied snapshot has an unusable parent chain.

    Either a parent id points at a node that is not in the snapshot, or
    following parent ids loops back onto a node already visited.
    """

    def __init__(self, message: str, node_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.node_ids = node_ids or []


# -----------------------------------------------------------------------------
# Tag schema
# -----------------------------------------------------------------------------


class TagSchemaError(IpamError):
    """Base exception for tag definition (schema) errors."""

    pass


class CyclicImplicationError(TagSchemaError):
    """
    Raised when tag implications form a cycle.

    Example cycles:
    1. Env=Prod implies Env=Prod (self loop)
    2. Datacenter=AMS05 implies Region=EuropeWest, and
       Region=EuropeWest implies Datacenter=AMS05
    3. A implies B, B implies C, C implies A

    The cycle is judged on tag names, not values: any value of A implying
    any value of B is an edge A -> B.
    """

    def __init__(self, tag_name: str, cycle: list[str] | None = None) -> None:
        """
        Initialize CyclicImplicationError.

        Args:
            tag_name: The tag whose implication closed the cycle.
            cycle: Tag names along the cycle, first and last entry equal.
        """
        path = " -> ".join(cycle) if cycle else tag_name
        super().__init__(f"Cyclic tag implication involving '{tag_name}': {path}")
        self.tag_name = tag_name
        self.cycle = cycle or []


class InvalidTagDefinitionError(TagSchemaError):
    """Raised when a tag definition breaks one or more schema rules."""

    def __init__(self, tag_name: str, problems: list[str]) -> None:
        """
        Initialize InvalidTagDefinitionError.

        Args:
            tag_name: Name of the offending definition.
            problems: Every rule the definition breaks.
        """
        super().__init__(f"Invalid tag definition '{tag_name}': {'; '.join(problems)}")
        self.tag_name = tag_name
        self.problems = problems


# -----------------------------------------------------------------------------
# Tag validation
# -----------------------------------------------------------------------------


class TagValidationError(IpamError):
    """Base exception for tag assignment validation errors."""

    def __init__(self, message: str, tag_name: str) -> None:
        super().__init__(message)
        self.tag_name = tag_name


class ImplicationConflictError(TagValidationError):
    """Raised when an implication derives a different value for a present tag."""

    def __init__(
        self,
        tag_name: str,
        existing_value: str,
        implied_value: str,
        source: str,
    ) -> None:
        """
        Initialize ImplicationConflictError.

        Args:
            tag_name: Tag receiving two different values.
            existing_value: Value already assigned.
            implied_value: Value the implication tried to assign.
            source: The "Name=Value" assignment that carries the implication.
        """
        super().__init__(
            f"Tag implication conflict: {tag_name} already has value {existing_value}, "
            f"but {source} implies {tag_name}={implied_value}",
            tag_name,
        )
        self.existing_value = existing_value
        self.implied_value = implied_value
        self.source = source


class UnknownTagValueError(TagValidationError):
    """Raised when a value is not among the definition's known values."""

    def __init__(self, tag_name: str, value: str, known_values: list[str]) -> None:
        super().__init__(
            f"Value '{value}' for tag '{tag_name}' is not in known values: "
            f"{', '.join(known_values)}",
            tag_name,
        )
        self.value = value
        self.known_values = known_values


class InheritanceConflictError(TagValidationError):
    """Raised when a child assigns an inherited tag a different value."""

    def __init__(self, tag_name: str, parent_value: str, child_value: str) -> None:
        super().__init__(
            f"Inheritable tag conflict: parent has {tag_name}={parent_value}, "
            f"but child has {tag_name}={child_value}",
            tag_name,
        )
        self.parent_value = parent_value
        self.child_value = child_value


class InsufficientDifferentiationError(TagValidationError):
    """
    Raised when a node sharing its parent's prefix adds no inheritable tag.

    A same-network child is only allowed as a more specific tagging of its
    parent, so it must carry more distinct inheritable tags than the
    parent's effective set.
    """

    def __init__(self, prefix: str, child_count: int, parent_count: int) -> None:
        super().__init__(
            f"Node with the same prefix as its parent ({prefix}) must have at least one "
            f"additional inheritable tag (child has {child_count}, parent has {parent_count})",
            tag_name="",
        )
        self.prefix = prefix
        self.child_count = child_count
        self.parent_count = parent_count


# -----------------------------------------------------------------------------
# Snapshot files
# -----------------------------------------------------------------------------


class SnapshotError(IpamError):
    """Raised when an address-space snapshot file cannot be loaded."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize SnapshotError.

        Args:
            message: Error message.
            source: Path of the snapshot file, if loaded from disk.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.source = source
        self.original_error = original_error

    def __str__(self) -> str:
        """
        Return string representation with the source path if available.

        Returns:
            str: Error message prefixed with the source path if set.
        """
        if self.source:
            return f"{self.source}: {self.args[0]}"
        return str(self.args[0]) if self.args else "Snapshot error"
