"""Tag schema, implication graph and inheritance validation."""

from .definitions import expand_implications, validate_known_value, validate_tag_definition
from .graph import ImplicationGraph, validate_acyclic, validate_definition_change
from .inheritance import TagInheritanceValidator

__all__ = [
    "ImplicationGraph",
    "TagInheritanceValidator",
    "expand_implications",
    "validate_acyclic",
    "validate_definition_change",
    "validate_known_value",
    "validate_tag_definition",
]
