"""Domain models for the IPAM core."""

from .node import NetworkNode
from .operations import FieldChange, OperationType, diff_tags
from .prefix import Prefix
from .results import (
    CheckIssue,
    CheckReport,
    NodeChangePlan,
    Placement,
    SubnetValidationResult,
    UtilizationStats,
)
from .snapshot import NetworkNodeRow, SnapshotFile, TagDefinitionRow
from .tags import Implication, TagAssignment, TagDefinition, TagType

__all__ = [
    "CheckIssue",
    "CheckReport",
    "FieldChange",
    "Implication",
    "NetworkNode",
    "NetworkNodeRow",
    "NodeChangePlan",
    "OperationType",
    "Placement",
    "Prefix",
    "SnapshotFile",
    "SubnetValidationResult",
    "TagAssignment",
    "TagDefinition",
    "TagDefinitionRow",
    "TagType",
    "UtilizationStats",
    "diff_tags",
]
