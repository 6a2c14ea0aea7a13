"""Prefix Index - hierarchy placement for network nodes.

Works out parent/child edges for an address space from a caller-supplied
snapshot of its nodes. Every call is O(n) over the snapshot and keeps no
state between calls; the reference behaviour is a linear scan, so callers
can swap in a trie later without changing results.

Placement rules:
- The parent of a prefix is the longest existing prefix that strictly
  contains it ("longest-prefix-match").
- Inserting a prefix pulls under it every sibling-to-be that it strictly
  contains (its "displaced children").
- Removing a node re-runs parent lookup for each former child against the
  remaining nodes, which falls back to the removed node's parent or None.

With ``allow_equal_prefix`` an existing node holding the very same prefix
is also a valid parent. This is the "same network, more specific tagging"
allocation; the tag validator enforces the extra-tag rule for it.
"""

from collections.abc import Iterable

import structlog

from ..models.node import NetworkNode
from ..models.prefix import Prefix
from ..models.results import Placement
from ..utils.exceptions import BrokenHierarchyError, DuplicatePrefixError

logger = structlog.get_logger(__name__)


class PrefixIndex:
    """
    Stateless hierarchy placement over a snapshot of network nodes.

    Attributes:
        allow_equal_prefix: Accept a node with an identical prefix as parent
            instead of rejecting the prefix as a duplicate
    """

    def __init__(self, allow_equal_prefix: bool = False) -> None:
        self.allow_equal_prefix = allow_equal_prefix

    def encloses(self, holder: Prefix, candidate: Prefix) -> bool:
        """
        Check whether ``holder`` may be the parent of ``candidate``.

        Args:
            holder: Prefix of a potential parent
            candidate: Prefix being placed

        Returns:
            True for a strict supernet, or an equal-length container when
            the equal-prefix policy is on
        """
        if holder.is_supernet_of(candidate):
            return True
        return (
            self.allow_equal_prefix
            and holder.length == candidate.length
            and holder.contains(candidate)
        )

    def check_duplicate(self, candidate: Prefix, existing: Iterable[NetworkNode]) -> None:
        """
        Reject a prefix that is already registered.

        Args:
            candidate: Prefix being inserted
            existing: Nodes of the address space

        Raises:
            DuplicatePrefixError: If a node already holds the prefix and the
                equal-prefix policy is off
        """
        if self.allow_equal_prefix:
            return
        for node in existing:
            if node.prefix == candidate:
                raise DuplicatePrefixError(str(candidate), node.id)

    def find_closest_parent(
        self, candidate: Prefix, existing: Iterable[NetworkNode]
    ) -> NetworkNode | None:
        """
        Find the most specific existing node enclosing ``candidate``.

        Args:
            candidate: Prefix being placed
            existing: Nodes of the address space (excluding the candidate itself)

        Returns:
            The closest enclosing node, or None if nothing encloses the candidate
        """
        tied: list[NetworkNode] = []
        best_length = -1

        for node in existing:
            if not self.encloses(node.prefix, candidate):
                continue
            if node.prefix.length > best_length:
                best_length = node.prefix.length
                tied = [node]
            elif node.prefix.length == best_length:
                tied.append(node)

        if not tied:
            return None
        if len(tied) == 1:
            return tied[0]
        return self._deepest(tied)

    def _deepest(self, tied: list[NetworkNode]) -> NetworkNode:
        """
        Pick the bottom of a chain of equal-length enclosing nodes.

        Equal-prefix nodes nest under one another, so the deepest is the one
        no other tied node names as its parent. Snapshots that break this
        (host-bit variants of one network) fall back to the lowest prefix.
        """
        parent_ids = {node.parent_id for node in tied}
        leaves = [node for node in tied if node.id not in parent_ids]
        if len(leaves) == 1:
            return leaves[0]

        logger.debug(
            "Ambiguous enclosing prefixes, choosing lowest",
            candidates=[str(node) for node in tied],
        )
        return min(leaves or tied, key=lambda node: (node.prefix, node.id))

    def find_displaced_children(
        self, candidate: Prefix, existing: Iterable[NetworkNode]
    ) -> list[NetworkNode]:
        """
        Find the existing nodes that would move under ``candidate``.

        Args:
            candidate: Prefix being inserted
            existing: Nodes of the address space

        Returns:
            Nodes sharing the candidate's new parent that the candidate
            strictly contains, in prefix order
        """
        nodes = list(existing)
        parent = self.find_closest_parent(candidate, nodes)
        return self._displaced(candidate, nodes, parent.id if parent else None)

    def _displaced(
        self, candidate: Prefix, nodes: list[NetworkNode], parent_id: str | None
    ) -> list[NetworkNode]:
        displaced = [
            node
            for node in nodes
            if node.parent_id == parent_id and candidate.is_supernet_of(node.prefix)
        ]
        return sorted(displaced, key=lambda node: (node.prefix, node.id))

    def place(self, candidate: Prefix, existing: Iterable[NetworkNode]) -> Placement:
        """
        Compute parent and displaced children for a new prefix.

        Args:
            candidate: Prefix being inserted
            existing: Nodes of the address space

        Returns:
            Placement with the new parent and the nodes to re-parent

        Raises:
            DuplicatePrefixError: If the prefix is already registered
        """
        nodes = list(existing)
        self.check_duplicate(candidate, nodes)

        parent = self.find_closest_parent(candidate, nodes)
        displaced = self._displaced(candidate, nodes, parent.id if parent else None)

        logger.debug(
            "Placed prefix",
            prefix=str(candidate),
            parent=parent.id if parent else None,
            displaced=[node.id for node in displaced],
        )

        return Placement(prefix=candidate, parent=parent, displaced_children=displaced)

    def reparent_after_removal(
        self, removed: NetworkNode, existing: Iterable[NetworkNode]
    ) -> dict[str, str | None]:
        """
        Work out new parents for the children of a removed node.

        Args:
            removed: Node being deleted
            existing: Nodes of the address space (may include ``removed``)

        Returns:
            Child id -> new parent id (None for children that become top-level)
        """
        remaining = [node for node in existing if node.id != removed.id]
        children = [
            node
            for node in remaining
            if node.parent_id == removed.id or node.id in removed.children_ids
        ]

        reparented: dict[str, str | None] = {}
        for child in children:
            # A child's own subtree can never be its parent
            excluded = descendant_ids(child.id, remaining) | {child.id}
            candidates = [node for node in remaining if node.id not in excluded]
            parent = self.find_closest_parent(child.prefix, candidates)
            reparented[child.id] = parent.id if parent else None

        logger.debug(
            "Re-parented children of removed node",
            removed=removed.id,
            reparented=reparented,
        )
        return reparented

    def build_hierarchy(self, nodes: Iterable[NetworkNode]) -> list[NetworkNode]:
        """
        Recompute parent and children links for a whole snapshot.

        Nodes are inserted shortest prefix first, so every parent is placed
        before its children. Among equal prefixes (equal-prefix policy) the
        earlier node in the input becomes the parent.

        Args:
            nodes: Nodes with possibly stale or missing hierarchy links

        Returns:
            Copies of the nodes, in input order, with fresh links

        Raises:
            DuplicatePrefixError: If two nodes share a prefix and the
                equal-prefix policy is off
        """
        originals = list(nodes)
        placed: list[NetworkNode] = []
        by_id: dict[str, NetworkNode] = {}

        for node in sorted(originals, key=lambda n: n.prefix.length):
            self.check_duplicate(node.prefix, placed)
            parent = self.find_closest_parent(node.prefix, placed)
            copy = node.copy(parent_id=parent.id if parent else None, children_ids=set())
            if parent is not None:
                by_id[parent.id].children_ids.add(copy.id)
            placed.append(copy)
            by_id[copy.id] = copy

        logger.debug("Rebuilt hierarchy", node_count=len(placed))
        return [by_id[node.id] for node in originals]


def descendant_ids(node_id: str, nodes: Iterable[NetworkNode]) -> set[str]:
    """
    Collect the ids of every node below ``node_id`` by following parent links.

    Args:
        node_id: Root of the subtree
        nodes: Nodes of the address space

    Returns:
        Ids of all descendants (not including node_id)
    """
    children_of: dict[str | None, list[str]] = {}
    for node in nodes:
        children_of.setdefault(node.parent_id, []).append(node.id)

    found: set[str] = set()
    stack = list(children_of.get(node_id, []))
    while stack:
        current = stack.pop()
        if current in found or current == node_id:
            continue
        found.add(current)
        stack.extend(children_of.get(current, []))
    return found


def ancestor_chain(
    parent_id: str | None, nodes_by_id: dict[str, NetworkNode]
) -> list[NetworkNode]:
    """
    Walk parent links from ``parent_id`` up to the root.

    Args:
        parent_id: Id of the nearest ancestor (None for top-level nodes)
        nodes_by_id: Nodes of the address space keyed by id

    Returns:
        Ancestors nearest first

    Raises:
        BrokenHierarchyError: If a parent id is missing from the snapshot or
            the chain loops
    """
    chain: list[NetworkNode] = []
    seen: set[str] = set()
    current = parent_id

    while current is not None:
        if current in seen:
            raise BrokenHierarchyError(
                f"Parent chain loops back to node {current}",
                [node.id for node in chain],
            )
        node = nodes_by_id.get(current)
        if node is None:
            raise BrokenHierarchyError(
                f"Parent node {current} is not in the snapshot",
                [node.id for node in chain] + [current],
            )
        seen.add(current)
        chain.append(node)
        current = node.parent_id

    return chain


def same_prefix_as_parent(ancestors: list[NetworkNode], prefix: Prefix) -> bool:
    """
    True if the nearest ancestor holds the same network as ``prefix``.

    The nearest ancestor always contains the node, so equal lengths mean
    equal networks.
    """
    return bool(ancestors) and ancestors[0].prefix.length == prefix.length
