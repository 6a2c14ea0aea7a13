"""Tag Inheritance Validator - the composite check behind every node write.

Validation runs four steps, all-or-nothing:

1. Implication expansion of the node's direct tags to a fixed point
2. Known-value check of every expanded assignment
3. Inheritance conflict check against the parent's effective tags
4. Equal-prefix rule: a node sharing its parent's exact network must carry
   more distinct inheritable tags than the parent's effective set

Effective tags of a parent are the inheritable tags found walking from the
parent up to the root, the nearest ancestor winning. NonInheritable tags
and tags with no definition never flow down.
"""

from collections import deque
from collections.abc import Iterable, Mapping, Sequence

import structlog

from ..models.node import NetworkNode
from ..models.tags import TagAssignment, TagDefinition
from ..utils.exceptions import InheritanceConflictError, InsufficientDifferentiationError
from .definitions import expand_implications, validate_known_value

logger = structlog.get_logger(__name__)


class TagInheritanceValidator:
    """
    Validates and expands a node's tags against its ancestors.

    The validator only reads the definition set it is given; it never
    changes it and keeps nothing between calls.

    Attributes:
        definitions: Tag name -> definition for the address space
    """

    def __init__(self, definitions: Mapping[str, TagDefinition]) -> None:
        self.definitions = definitions

    def is_inheritable(self, name: str) -> bool:
        """True if ``name`` has an Inheritable definition."""
        definition = self.definitions.get(name)
        return definition is not None and definition.is_inheritable

    def inheritable_count(self, tags: Mapping[str, str]) -> int:
        """Number of distinct inheritable tag names in ``tags``."""
        return sum(1 for name in tags if self.is_inheritable(name))

    # -------------------------------------------------------------------------
    # Effective tags
    # -------------------------------------------------------------------------

    def effective_tags(self, ancestors: Sequence[NetworkNode]) -> dict[str, str]:
        """
        Collect the inheritable tags that flow into a child of ``ancestors[0]``.

        Args:
            ancestors: Ancestor chain, nearest first (empty for top-level nodes)

        Returns:
            Tag name -> value; a nearer ancestor's value wins
        """
        effective: dict[str, str] = {}
        for ancestor in ancestors:
            for name, value in ancestor.direct_tags.items():
                if self.is_inheritable(name):
                    effective.setdefault(name, value)
        return effective

    def resolve_tags(
        self, direct_tags: Mapping[str, str], ancestors: Sequence[NetworkNode]
    ) -> dict[str, TagAssignment]:
        """
        Resolve everything visible on a node: inherited tags overlaid by direct ones.

        Args:
            direct_tags: The node's own tags
            ancestors: Ancestor chain, nearest first

        Returns:
            Tag name -> assignment, flagged as inherited where it came from above
        """
        resolved = {
            name: TagAssignment(name, value, is_inherited=True)
            for name, value in self.effective_tags(ancestors).items()
        }
        for name, value in direct_tags.items():
            resolved[name] = TagAssignment(name, value, is_inherited=False)
        return resolved

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def expand(self, direct_tags: Mapping[str, str]) -> dict[str, str]:
        """
        Expand implications of ``direct_tags`` until nothing new appears.

        Each tag name is added at most once, so the loop always terminates;
        an acyclic schema also bounds the depth of the chain.

        Args:
            direct_tags: The node's own tags

        Returns:
            Direct tags plus every implied tag

        Raises:
            ImplicationConflictError: If two derivations disagree on a value
        """
        assignments = [TagAssignment(name, value) for name, value in direct_tags.items()]
        pending = deque(assignments)

        while pending:
            assignment = pending.popleft()
            added = expand_implications(self.definitions, assignment, assignments)
            assignments.extend(added)
            pending.extend(added)

        return {assignment.name: assignment.value for assignment in assignments}

    def check_known_values(self, tags: Mapping[str, str]) -> None:
        """
        Check every value against its definition's known values.

        Raises:
            UnknownTagValueError: On the first value outside its known values
        """
        for name in sorted(tags):
            definition = self.definitions.get(name)
            if definition is not None:
                validate_known_value(definition, tags[name])

    def check_inheritance(
        self, parent_tags: Mapping[str, str], child_tags: Mapping[str, str]
    ) -> None:
        """
        Reject a child that overrides an inheritable parent tag.

        Args:
            parent_tags: Parent's effective tags
            child_tags: Child's (expanded) tags

        Raises:
            InheritanceConflictError: If an inheritable tag differs
        """
        for name in sorted(parent_tags):
            if not self.is_inheritable(name):
                continue
            child_value = child_tags.get(name)
            if child_value is not None and child_value != parent_tags[name]:
                raise InheritanceConflictError(name, parent_tags[name], child_value)

    def check_differentiation(
        self, prefix: str, parent_tags: Mapping[str, str], child_tags: Mapping[str, str]
    ) -> None:
        """
        Enforce the extra-tag rule for a node sharing its parent's network.

        Only the child's own expanded tags are counted, never what it inherits.

        Raises:
            InsufficientDifferentiationError: If the child has no more
                inheritable tags than the parent's effective set
        """
        child_count = self.inheritable_count(child_tags)
        parent_count = self.inheritable_count(parent_tags)
        if child_count <= parent_count:
            raise InsufficientDifferentiationError(prefix, child_count, parent_count)

    def validate(
        self,
        direct_tags: Mapping[str, str],
        parent_tags: Mapping[str, str] | None = None,
        same_prefix_as_parent: bool = False,
        prefix: str = "",
    ) -> dict[str, str]:
        """
        Run the full validation for a node's tags.

        Args:
            direct_tags: Tags assigned to the node
            parent_tags: Parent's effective tags (None or empty for top-level nodes)
            same_prefix_as_parent: True if the parent contains the node with
                equal length
            prefix: Node prefix, used in error messages

        Returns:
            The expanded tag map to persist

        Raises:
            ImplicationConflictError: Step 1
            UnknownTagValueError: Step 2
            InheritanceConflictError: Step 3
            InsufficientDifferentiationError: Step 4
        """
        parent_tags = parent_tags or {}

        expanded = self.expand(direct_tags)
        self.check_known_values(expanded)
        self.check_inheritance(parent_tags, expanded)
        if same_prefix_as_parent:
            self.check_differentiation(prefix, parent_tags, expanded)

        logger.debug(
            "Validated node tags",
            prefix=prefix or None,
            direct=len(direct_tags),
            expanded=len(expanded),
            inherited=len(parent_tags),
        )
        return expanded

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def propagate_to_children(
        self, deleted_tags: Mapping[str, str], children: Iterable[NetworkNode]
    ) -> dict[str, dict[str, str]]:
        """
        Push a deleted node's inheritable tags onto its former children.

        Children keep their own value wherever they already have the tag.

        Args:
            deleted_tags: Direct tags of the node being deleted
            children: Its former children

        Returns:
            Child id -> new direct tag map, only for children that gain tags
        """
        inheritable = {
            name: value for name, value in deleted_tags.items() if self.is_inheritable(name)
        }
        updates: dict[str, dict[str, str]] = {}
        if not inheritable:
            return updates

        for child in children:
            missing = {name: value for name, value in inheritable.items() if name not in child.direct_tags}
            if missing:
                updates[child.id] = {**child.direct_tags, **missing}

        return updates
