"""
Snapshot checker: runs every schema and node rule over a loaded address space.
"""

import structlog

from ..hierarchy.index import ancestor_chain, same_prefix_as_parent
from ..models.results import CheckReport
from ..models.tags import TagDefinition
from ..tags.definitions import validate_tag_definition
from ..tags.graph import validate_acyclic
from ..tags.inheritance import TagInheritanceValidator
from ..utils.exceptions import (
    BrokenHierarchyError,
    CyclicImplicationError,
    InvalidTagDefinitionError,
    TagValidationError,
)
from .snapshot import AddressSpaceSnapshot

logger = structlog.get_logger(__name__)


class SnapshotChecker:
    """
    Checks a whole snapshot and collects every problem instead of stopping
    at the first one.
    """

    def __init__(self, snapshot: AddressSpaceSnapshot):
        self.snapshot = snapshot
        self.report = CheckReport()

    def check(self) -> CheckReport:
        """
        Run all checks on the snapshot.
        """
        self.report = CheckReport()
        self.report.summary["nodes"] = len(self.snapshot.nodes)
        self.report.summary["tags"] = len(self.snapshot.definitions)

        logger.info(
            "Starting snapshot check",
            address_space=self.snapshot.address_space_id,
            nodes=len(self.snapshot.nodes),
            tags=len(self.snapshot.definitions),
        )

        # 1. Schema rules per definition, then acyclicity over the whole set
        self._check_definitions()
        self._check_acyclic()

        # 2. Node rules, parents before children
        self._check_nodes()

        logger.info(
            "Snapshot check complete",
            errors=self.report.summary["errors"],
            warnings=self.report.summary["warnings"],
        )
        return self.report

    def _check_definitions(self) -> None:
        definitions = self.snapshot.definitions
        for name in sorted(definitions):
            try:
                validate_tag_definition(definitions[name], definitions)
            except InvalidTagDefinitionError as e:
                for problem in e.problems:
                    self.report.add_error(f"tag {name}", problem)

    def _check_acyclic(self) -> None:
        try:
            validate_acyclic(self.snapshot.definitions)
        except CyclicImplicationError as e:
            self.report.add_error(f"tag {e.tag_name}", str(e))

    def _check_nodes(self) -> None:
        definitions: dict[str, TagDefinition] = self.snapshot.definitions
        validator = TagInheritanceValidator(definitions)
        by_id = self.snapshot.nodes_by_id

        for node in sorted(self.snapshot.nodes, key=lambda n: (n.prefix, n.id)):
            subject = str(node)

            if node.prefix.has_host_bits:
                self.report.add_warning(
                    subject, f"Prefix has host bits set (network is {node.prefix.network()})"
                )

            declared = self.snapshot.declared_parents.get(node.id)
            if declared is not None and declared != node.parent_id:
                self.report.add_warning(
                    subject,
                    f"Stored parent {declared} differs from computed parent {node.parent_id}",
                )

            for name in sorted(node.direct_tags):
                if name not in definitions:
                    self.report.add_warning(subject, f"Tag '{name}' has no definition")

            try:
                ancestors = ancestor_chain(node.parent_id, by_id)
                parent_tags = validator.effective_tags(ancestors)
                validator.validate(
                    node.direct_tags,
                    parent_tags,
                    same_prefix_as_parent=same_prefix_as_parent(ancestors, node.prefix),
                    prefix=str(node.prefix),
                )
            except (TagValidationError, BrokenHierarchyError) as e:
                self.report.add_error(subject, str(e))


def check_snapshot(snapshot: AddressSpaceSnapshot) -> CheckReport:
    """
    Check a snapshot and return the collected problems.

    Args:
        snapshot: Loaded address space

    Returns:
        CheckReport with errors and warnings
    """
    return SnapshotChecker(snapshot).check()
