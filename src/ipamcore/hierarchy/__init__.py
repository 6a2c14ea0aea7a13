"""Hierarchy placement and subnet allocation."""

from .allocation import (
    calculate_utilization,
    find_available_subnets,
    largest_available_block,
    validate_subnet_allocation,
)
from .index import PrefixIndex, ancestor_chain, descendant_ids, same_prefix_as_parent

__all__ = [
    "PrefixIndex",
    "ancestor_chain",
    "descendant_ids",
    "same_prefix_as_parent",
    "calculate_utilization",
    "find_available_subnets",
    "largest_available_block",
    "validate_subnet_allocation",
]
