"""Network node model."""

from dataclasses import dataclass, field, replace

from .prefix import Prefix


@dataclass
class NetworkNode:
    """
    A prefix registered in an address space.

    The core only computes over ``prefix`` and ``direct_tags``; the
    hierarchy links are recomputed by the PrefixIndex on every insert and
    removal and handed back to the persistence layer.

    Attributes:
        address_space_id: Owning address space
        id: Node identifier, unique within the address space
        prefix: The node's CIDR prefix
        direct_tags: Tags assigned directly to this node (name -> value)
        parent_id: Closest enclosing node, None for top-level nodes
        children_ids: Nodes whose closest enclosing node is this one
    """

    address_space_id: str
    id: str
    prefix: Prefix
    direct_tags: dict[str, str] = field(default_factory=dict)
    parent_id: str | None = None
    children_ids: set[str] = field(default_factory=set)

    @property
    def is_root(self) -> bool:
        """True if the node has no parent."""
        return self.parent_id is None

    def copy(self, **changes) -> "NetworkNode":
        """
        Return a detached copy with optional field changes.

        Tags and children are copied so the result can be mutated without
        touching the caller's snapshot.
        """
        changes.setdefault("direct_tags", dict(self.direct_tags))
        changes.setdefault("children_ids", set(self.children_ids))
        return replace(self, **changes)

    def __str__(self) -> str:
        return f"{self.id} ({self.prefix})"
