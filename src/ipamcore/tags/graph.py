"""Implication Graph - cycle detection over tag implications.

Tag names are interned to integer ids and edges are kept as adjacency
lists of ids, so the traversal never follows object references. An edge
A -> B exists when any value of A implies any value of B.
"""

from collections.abc import Mapping

import structlog

from ..models.tags import TagDefinition
from ..utils.exceptions import CyclicImplicationError

logger = structlog.get_logger(__name__)

# Three-color DFS states
UNVISITED = 0
IN_PROGRESS = 1
DONE = 2


class ImplicationGraph:
    """
    Directed graph over tag names built from implication maps.

    Features:
    - Name interning to dense integer ids
    - Three-color depth-first cycle detection
    - Cycle path reporting for error messages
    """

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self._ids: dict[str, int] = {}
        self._names: list[str] = []
        self._edges: list[list[int]] = []

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, TagDefinition]) -> "ImplicationGraph":
        """
        Build the graph for a set of tag definitions.

        Implied tags without a definition of their own still become nodes;
        they simply have no outgoing edges.

        Args:
            definitions: Tag name -> definition

        Returns:
            The implication graph
        """
        graph = cls()
        for name in definitions:
            graph.intern(name)
        for name, definition in definitions.items():
            for implied in definition.implications.values():
                for implication in implied:
                    graph.add_edge(name, implication.tag)
        return graph

    def intern(self, name: str) -> int:
        """
        Get the id for a tag name, assigning the next id on first sight.

        Args:
            name: Tag name

        Returns:
            Dense integer id
        """
        node_id = self._ids.get(name)
        if node_id is None:
            node_id = len(self._names)
            self._ids[name] = node_id
            self._names.append(name)
            self._edges.append([])
        return node_id

    def add_edge(self, source: str, target: str) -> None:
        """Add an edge source -> target (duplicates are ignored)."""
        source_id = self.intern(source)
        target_id = self.intern(target)
        if target_id not in self._edges[source_id]:
            self._edges[source_id].append(target_id)

    def successors(self, name: str) -> list[str]:
        """Names of the tags ``name`` implies directly."""
        node_id = self._ids.get(name)
        if node_id is None:
            return []
        return [self._names[target] for target in self._edges[node_id]]

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def find_cycle(self) -> list[str] | None:
        """
        Look for a cycle using three-color depth-first search.

        Algorithm:
        - Every node starts UNVISITED
        - Entering a node marks it IN_PROGRESS and pushes it on the path
        - An edge into an IN_PROGRESS node is a back edge, i.e. a cycle
        - Leaving a node marks it DONE; DONE nodes are never re-entered

        Why three colors:
        A plain visited set cannot tell "reached again from another branch"
        (A -> B, A -> C -> B is fine) from "reached again on the current
        path" (A -> B -> A is a cycle).

        Returns:
            Tag names along the first cycle found, first and last equal,
            or None if the graph is acyclic
        """
        colors = [UNVISITED] * len(self._names)
        path: list[int] = []

        for start in range(len(self._names)):
            if colors[start] == UNVISITED:
                cycle = self._visit(start, colors, path)
                if cycle is not None:
                    return [self._names[node_id] for node_id in cycle]
        return None

    def _visit(self, node_id: int, colors: list[int], path: list[int]) -> list[int] | None:
        colors[node_id] = IN_PROGRESS
        path.append(node_id)

        for target in self._edges[node_id]:
            if colors[target] == IN_PROGRESS:
                # Back edge: the cycle runs from target along the path to node_id
                return path[path.index(target) :] + [target]
            if colors[target] == UNVISITED:
                cycle = self._visit(target, colors, path)
                if cycle is not None:
                    return cycle

        # Backtrack: node fully explored
        path.pop()
        colors[node_id] = DONE
        return None


def validate_acyclic(definitions: Mapping[str, TagDefinition]) -> None:
    """
    Reject a definition set whose implications form a cycle.

    Must run over the full set of an address space's definitions, since a
    single new implication can close a cycle spanning several tags.

    Args:
        definitions: Tag name -> definition

    Raises:
        CyclicImplicationError: Naming the tag whose implication closed the cycle
    """
    graph = ImplicationGraph.from_definitions(definitions)
    cycle = graph.find_cycle()
    if cycle is not None:
        # cycle[-1] repeats cycle[0]; the closing edge starts at cycle[-2]
        raise CyclicImplicationError(cycle[-2], cycle)

    logger.debug("Tag implications are acyclic", tag_count=len(graph))


def validate_definition_change(
    definitions: Mapping[str, TagDefinition], changed: TagDefinition
) -> dict[str, TagDefinition]:
    """
    Check a created or updated definition against the rest of the schema.

    Args:
        definitions: Current definitions of the address space
        changed: Definition being created or updated

    Returns:
        The definition set with the change applied

    Raises:
        CyclicImplicationError: If the change closes an implication cycle
    """
    updated = dict(definitions)
    updated[changed.name] = changed
    validate_acyclic(updated)
    return updated
