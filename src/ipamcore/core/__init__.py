"""Core components of the IPAM core.

This package contains the write planner, the snapshot loader and the
snapshot checker built on the hierarchy and tag engines.
"""

from .checker import SnapshotChecker, check_snapshot
from .planner import NodeChangePlanner
from .snapshot import AddressSpaceSnapshot, dump_snapshot, load_snapshot, parse_snapshot

__all__ = [
    "AddressSpaceSnapshot",
    "NodeChangePlanner",
    "SnapshotChecker",
    "check_snapshot",
    "dump_snapshot",
    "load_snapshot",
    "parse_snapshot",
]
