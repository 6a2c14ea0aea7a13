"""Node Change Planner - composite create/update/delete for network nodes.

Wires the PrefixIndex and the TagInheritanceValidator together and returns
a NodeChangePlan describing every record the persistence layer must write.

Purpose:
-------
A single node write touches more than the node itself:

1. Create:
   - The node is placed under its closest enclosing node
   - Existing nodes it encloses move under it
   - Its tags are expanded and validated against the parent's effective tags
   - The moved subtrees are re-checked against the tags they now inherit

2. Update:
   - Same prefix: tags are re-validated in place and the subtree re-checked
   - New prefix: the node is removed and placed again, so its former
     children fall back to their next enclosing node

3. Delete:
   - Former children move to their next enclosing node
   - Optionally, the deleted node's inheritable tags are pushed onto them

Important Design Notes:
----------------------
- The caller supplies the full node list of the address space; the planner
  reads it and never mutates it
- Either a whole plan is returned or a typed error is raised
- Parent links of the supplied nodes are trusted; load snapshots through
  ``load_snapshot`` (which rebuilds them) when in doubt
"""

from collections.abc import Iterable, Mapping

import structlog

from ..config import PolicyConfig
from ..hierarchy.index import (
    PrefixIndex,
    ancestor_chain,
    descendant_ids,
    same_prefix_as_parent,
)
from ..models.node import NetworkNode
from ..models.operations import FieldChange, OperationType, diff_tags
from ..models.prefix import Prefix
from ..models.results import NodeChangePlan
from ..models.tags import TagDefinition
from ..observability.logger import LogContext
from ..tags.inheritance import TagInheritanceValidator
from ..utils.exceptions import HierarchyError, NodeNotFoundError

logger = structlog.get_logger(__name__)


class NodeChangePlanner:
    """
    Plan node writes for one address space policy.

    Attributes:
        policy: Placement and deletion policy
        index: PrefixIndex configured from the policy
    """

    def __init__(self, policy: PolicyConfig | None = None) -> None:
        self.policy = policy or PolicyConfig()
        self.index = PrefixIndex(allow_equal_prefix=self.policy.allow_equal_prefix)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def plan_create(
        self,
        address_space_id: str,
        node_id: str,
        prefix: Prefix | str,
        tags: Mapping[str, str],
        nodes: Iterable[NetworkNode],
        definitions: Mapping[str, TagDefinition],
    ) -> NodeChangePlan:
        """
        Plan the creation of a node.

        Args:
            address_space_id: Address space of the new node
            node_id: Id for the new node
            prefix: Prefix (or CIDR text) of the new node
            tags: Direct tags requested for the node
            nodes: Current nodes of the address space
            definitions: Tag definitions of the address space

        Returns:
            NodeChangePlan with the new node (tags expanded) and side effects

        Raises:
            PrefixError: If the CIDR text is malformed
            HierarchyError: If the id is taken or the prefix is a duplicate
            TagValidationError: If the tags fail validation
        """
        existing = list(nodes)
        if any(node.id == node_id for node in existing):
            raise HierarchyError(f"Network node already exists: {node_id}")

        candidate = Prefix.parse(prefix) if isinstance(prefix, str) else prefix
        validator = TagInheritanceValidator(definitions)

        with LogContext(operation=OperationType.CREATE.value, node=node_id):
            node, displaced = self._insert(
                address_space_id, node_id, candidate, tags, existing, validator
            )
            final = self._apply(existing, node, displaced)
            self._revalidate_subtrees(displaced, final, validator)

            plan = NodeChangePlan(
                operation=OperationType.CREATE,
                node_id=node_id,
                node=node,
                field_changes=[
                    FieldChange("prefix", None, str(candidate)),
                    *diff_tags({}, node.direct_tags),
                ],
            )
            self._fill_links(plan, existing, final)

            logger.debug("Planned create", summary=plan.get_summary())
        return plan

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def plan_update(
        self,
        node_id: str,
        nodes: Iterable[NetworkNode],
        definitions: Mapping[str, TagDefinition],
        prefix: Prefix | str | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> NodeChangePlan:
        """
        Plan a change of a node's prefix and/or tags.

        Args:
            node_id: Node to update
            nodes: Current nodes of the address space
            definitions: Tag definitions of the address space
            prefix: New prefix, None to keep the current one
            tags: New direct tags, None to keep the current ones

        Returns:
            NodeChangePlan with the updated node and side effects

        Raises:
            NodeNotFoundError: If the node is not in ``nodes``
            PrefixError: If the CIDR text is malformed
            HierarchyError: If the new prefix is a duplicate
            TagValidationError: If the tags fail validation
        """
        existing = list(nodes)
        current = _find(node_id, existing)

        new_prefix = current.prefix
        if prefix is not None:
            new_prefix = Prefix.parse(prefix) if isinstance(prefix, str) else prefix
        new_tags = dict(current.direct_tags if tags is None else tags)
        validator = TagInheritanceValidator(definitions)

        with LogContext(operation=OperationType.UPDATE.value, node=node_id):
            if new_prefix == current.prefix:
                final, roots = self._update_in_place(current, new_tags, existing, validator)
            else:
                final, roots = self._move(current, new_prefix, new_tags, existing, validator)
            self._revalidate_subtrees(roots, final, validator)

            node = final[node_id]
            changes = []
            if new_prefix != current.prefix:
                changes.append(FieldChange("prefix", str(current.prefix), str(new_prefix)))
            changes.extend(diff_tags(current.direct_tags, node.direct_tags))

            plan = NodeChangePlan(
                operation=OperationType.UPDATE,
                node_id=node_id,
                node=node,
                field_changes=changes,
            )
            self._fill_links(plan, existing, final)

            logger.debug("Planned update", summary=plan.get_summary())
        return plan

    def _update_in_place(
        self,
        current: NetworkNode,
        tags: dict[str, str],
        existing: list[NetworkNode],
        validator: TagInheritanceValidator,
    ) -> tuple[dict[str, NetworkNode], list[NetworkNode]]:
        by_id = {node.id: node for node in existing}
        ancestors = ancestor_chain(current.parent_id, by_id)
        expanded = validator.validate(
            tags,
            validator.effective_tags(ancestors),
            same_prefix_as_parent=same_prefix_as_parent(ancestors, current.prefix),
            prefix=str(current.prefix),
        )

        by_id[current.id] = current.copy(direct_tags=expanded)
        children = [node for node in existing if node.parent_id == current.id]
        return by_id, children

    def _move(
        self,
        current: NetworkNode,
        prefix: Prefix,
        tags: dict[str, str],
        existing: list[NetworkNode],
        validator: TagInheritanceValidator,
    ) -> tuple[dict[str, NetworkNode], list[NetworkNode]]:
        reparented = self.index.reparent_after_removal(current, existing)
        remaining = [
            node.copy(parent_id=reparented[node.id]) if node.id in reparented else node
            for node in existing
            if node.id != current.id
        ]

        node, displaced = self._insert(
            current.address_space_id, current.id, prefix, tags, remaining, validator
        )
        final = self._apply(remaining, node, displaced)
        former_children = [final[child_id] for child_id in reparented]
        return final, displaced + former_children

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def plan_delete(
        self,
        node_id: str,
        nodes: Iterable[NetworkNode],
        definitions: Mapping[str, TagDefinition],
    ) -> NodeChangePlan:
        """
        Plan the deletion of a node.

        Args:
            node_id: Node to delete
            nodes: Current nodes of the address space
            definitions: Tag definitions of the address space

        Returns:
            NodeChangePlan re-parenting (and optionally retagging) the
            former children

        Raises:
            NodeNotFoundError: If the node is not in ``nodes``
        """
        existing = list(nodes)
        current = _find(node_id, existing)

        with LogContext(operation=OperationType.DELETE.value, node=node_id):
            reparented = self.index.reparent_after_removal(current, existing)
            final = {
                node.id: node.copy(parent_id=reparented[node.id]) if node.id in reparented else node
                for node in existing
                if node.id != node_id
            }

            tag_updates: dict[str, dict[str, str]] = {}
            if self.policy.propagate_tags_on_delete:
                validator = TagInheritanceValidator(definitions)
                tag_updates = validator.propagate_to_children(
                    current.direct_tags, [final[child_id] for child_id in reparented]
                )

            plan = NodeChangePlan(
                operation=OperationType.DELETE,
                node_id=node_id,
                tag_updates=tag_updates,
                field_changes=[
                    FieldChange("prefix", str(current.prefix), None),
                    *diff_tags(current.direct_tags, {}),
                ],
            )
            self._fill_links(plan, existing, final)

            logger.debug("Planned delete", summary=plan.get_summary())
        return plan

    # -------------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------------

    def _insert(
        self,
        address_space_id: str,
        node_id: str,
        prefix: Prefix,
        tags: Mapping[str, str],
        existing: list[NetworkNode],
        validator: TagInheritanceValidator,
    ) -> tuple[NetworkNode, list[NetworkNode]]:
        """Place a prefix and validate its tags; returns the node and its displaced children."""
        placement = self.index.place(prefix, existing)
        by_id = {node.id: node for node in existing}
        ancestors = ancestor_chain(placement.parent_id, by_id)

        expanded = validator.validate(
            tags,
            validator.effective_tags(ancestors),
            same_prefix_as_parent=same_prefix_as_parent(ancestors, prefix),
            prefix=str(prefix),
        )

        node = NetworkNode(
            address_space_id=address_space_id,
            id=node_id,
            prefix=prefix,
            direct_tags=expanded,
            parent_id=placement.parent_id,
            children_ids=placement.child_ids,
        )
        return node, placement.displaced_children

    def _apply(
        self, existing: list[NetworkNode], node: NetworkNode, displaced: list[NetworkNode]
    ) -> dict[str, NetworkNode]:
        """Nodes keyed by id after inserting ``node`` and moving ``displaced`` under it."""
        moved = {child.id for child in displaced}
        final = {
            other.id: other.copy(parent_id=node.id) if other.id in moved else other
            for other in existing
        }
        final[node.id] = node
        return final

    def _revalidate_subtrees(
        self,
        roots: Iterable[NetworkNode],
        final: dict[str, NetworkNode],
        validator: TagInheritanceValidator,
    ) -> None:
        """
        Re-check every node below a changed link against what it now inherits.

        Raises:
            InheritanceConflictError: If a node's tag clashes with a new ancestor
            InsufficientDifferentiationError: If an equal-prefix node no longer
                adds an inheritable tag over its parent
        """
        nodes = list(final.values())
        pending: set[str] = set()
        for root in roots:
            pending.add(root.id)
            pending |= descendant_ids(root.id, nodes)

        for node_id in sorted(pending):
            node = final[node_id]
            ancestors = ancestor_chain(node.parent_id, final)
            inherited = validator.effective_tags(ancestors)
            validator.check_inheritance(inherited, node.direct_tags)
            if same_prefix_as_parent(ancestors, node.prefix):
                validator.check_differentiation(str(node.prefix), inherited, node.direct_tags)

        logger.debug("Re-validated subtrees", checked=len(pending))

    def _fill_links(
        self,
        plan: NodeChangePlan,
        before: list[NetworkNode],
        after: dict[str, NetworkNode],
    ) -> None:
        """Record every changed parent link and children set on the plan."""
        old_parents = {node.id: node.parent_id for node in before}

        for node_id, node in after.items():
            if node_id == plan.node_id or node_id not in old_parents:
                continue
            if old_parents[node_id] != node.parent_id:
                plan.reparented[node_id] = node.parent_id

        old_children = _children_sets(old_parents.items())
        new_children = _children_sets((node.id, node.parent_id) for node in after.values())
        for parent_id in sorted(set(old_children) | set(new_children)):
            if parent_id not in after:
                continue
            children = new_children.get(parent_id, set())
            if children != old_children.get(parent_id, set()):
                plan.children[parent_id] = children


def _find(node_id: str, nodes: list[NetworkNode]) -> NetworkNode:
    for node in nodes:
        if node.id == node_id:
            return node
    raise NodeNotFoundError(node_id)


def _children_sets(links: Iterable[tuple[str, str | None]]) -> dict[str, set[str]]:
    children: dict[str, set[str]] = {}
    for node_id, parent_id in links:
        if parent_id is not None:
            children.setdefault(parent_id, set()).add(node_id)
    return children
