"""Result types returned by the placement, allocation and planning APIs."""

from dataclasses import dataclass, field

from .node import NetworkNode
from .operations import FieldChange, OperationType
from .prefix import Prefix


@dataclass
class Placement:
    """
    Where a prefix lands in an address space's hierarchy.

    Attributes:
        prefix: The placed prefix
        parent: Closest enclosing node, None if the prefix is top-level
        displaced_children: Existing nodes that move under the new prefix
    """

    prefix: Prefix
    parent: NetworkNode | None
    displaced_children: list[NetworkNode] = field(default_factory=list)

    @property
    def parent_id(self) -> str | None:
        """Id of the new parent, if any."""
        return self.parent.id if self.parent else None

    @property
    def child_ids(self) -> set[str]:
        """Ids of the displaced children."""
        return {child.id for child in self.displaced_children}


@dataclass
class NodeChangePlan:
    """
    Description of a write the persistence layer should apply atomically.

    A plan is only ever returned whole; any validation failure raises
    instead, so nothing from a failed plan may be persisted.

    Attributes:
        operation: create / update / delete
        node_id: Id of the node being written
        node: Resulting node (None for deletes)
        reparented: Node id -> new parent id for every other node whose parent changes
        children: Node id -> full children set for every node whose children change
        tag_updates: Node id -> full direct tag map for every other node whose tags change
        field_changes: Changes to the written node itself
    """

    operation: OperationType
    node_id: str
    node: NetworkNode | None = None
    reparented: dict[str, str | None] = field(default_factory=dict)
    children: dict[str, set[str]] = field(default_factory=dict)
    tag_updates: dict[str, dict[str, str]] = field(default_factory=dict)
    field_changes: list[FieldChange] = field(default_factory=list)

    @property
    def affected_node_ids(self) -> set[str]:
        """
        Every node id the plan touches.

        Returns:
            set[str]: Ids of the written node and all re-parented or retagged nodes.
        """
        return {self.node_id} | set(self.reparented) | set(self.children) | set(self.tag_updates)

    def get_summary(self) -> str:
        """
        Get a human-readable summary.

        Returns:
            str: One line naming the operation and the number of side effects.
        """
        target = str(self.node) if self.node else self.node_id
        return (
            f"{self.operation.value} {target}: "
            f"{len(self.reparented)} re-parented, "
            f"{len(self.tag_updates)} retagged"
        )


@dataclass
class SubnetValidationResult:
    """
    Result of checking a proposed allocation against existing prefixes.

    Attributes:
        proposed: The prefix being proposed
        conflicts: Existing prefixes overlapping the proposal
    """

    proposed: Prefix
    conflicts: list[Prefix] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True if nothing overlaps the proposal."""
        return not self.conflicts

    @property
    def message(self) -> str:
        """Human-readable verdict."""
        if not self.conflicts:
            return "Subnet allocation is valid"
        conflicting = ", ".join(str(prefix) for prefix in self.conflicts)
        return f"Subnet {self.proposed} conflicts with existing allocations: {conflicting}"


@dataclass
class UtilizationStats:
    """
    Address utilization of one network.

    Attributes:
        network: The measured network
        total_addresses: Addresses in the network
        allocated_addresses: Addresses covered by allocations inside it
        subnet_count: Number of existing prefixes strictly inside the network
        largest_available_block: Largest aligned free prefix, None if full
        fragmentation_index: Allocations relative to the blocks their average size would fit
    """

    network: Prefix
    total_addresses: int
    allocated_addresses: int
    subnet_count: int
    largest_available_block: Prefix | None = None
    fragmentation_index: float = 0.0

    @property
    def available_addresses(self) -> int:
        """Addresses not covered by any allocation."""
        return self.total_addresses - self.allocated_addresses

    @property
    def utilization_percentage(self) -> float:
        """
        Allocated share of the network.

        Returns:
            float: Percentage (0.0 to 100.0).
        """
        if self.total_addresses == 0:
            return 0.0
        return self.allocated_addresses / self.total_addresses * 100


@dataclass
class CheckIssue:
    """A single problem found while checking a snapshot."""

    subject: str
    message: str
    severity: str = "ERROR"  # ERROR, WARNING

    def __str__(self) -> str:
        return f"[{self.severity}] {self.subject}: {self.message}"


@dataclass
class CheckReport:
    """Collection of errors and warnings found in a snapshot."""

    errors: list[CheckIssue] = field(default_factory=list)
    warnings: list[CheckIssue] = field(default_factory=list)
    summary: dict[str, int] = field(
        default_factory=lambda: {"errors": 0, "warnings": 0, "nodes": 0, "tags": 0}
    )

    @property
    def is_valid(self) -> bool:
        """Returns True if there are no errors (warnings are allowed)."""
        return len(self.errors) == 0

    def add_error(self, subject: str, message: str) -> None:
        self.errors.append(CheckIssue(subject, message, "ERROR"))
        self.summary["errors"] += 1

    def add_warning(self, subject: str, message: str) -> None:
        self.warnings.append(CheckIssue(subject, message, "WARNING"))
        self.summary["warnings"] += 1
