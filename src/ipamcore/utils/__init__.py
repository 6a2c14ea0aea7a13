"""Utility functions and exceptions."""

from .exceptions import (
    BrokenHierarchyError,
    CyclicImplicationError,
    DuplicatePrefixError,
    HierarchyError,
    ImplicationConflictError,
    InheritanceConflictError,
    InsufficientDifferentiationError,
    InvalidAddressError,
    InvalidFormatError,
    InvalidLengthError,
    InvalidTagDefinitionError,
    IpamError,
    NodeNotFoundError,
    PrefixError,
    SnapshotError,
    TagSchemaError,
    TagValidationError,
    UnknownTagValueError,
)

__all__ = [
    "IpamError",
    "PrefixError",
    "InvalidFormatError",
    "InvalidAddressError",
    "InvalidLengthError",
    "HierarchyError",
    "DuplicatePrefixError",
    "NodeNotFoundError",
    "BrokenHierarchyError",
    "TagSchemaError",
    "CyclicImplicationError",
    "InvalidTagDefinitionError",
    "TagValidationError",
    "ImplicationConflictError",
    "UnknownTagValueError",
    "InheritanceConflictError",
    "InsufficientDifferentiationError",
    "SnapshotError",
]
