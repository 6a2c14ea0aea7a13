"""Subnet allocation helpers.

Free-space search, overlap checks and utilization for a network, computed
from the prefixes already allocated in its address space.

Allocated space is tracked as merged address intervals, so nested
allocations (a /24 inside an allocated /16) are never double counted and
searches can jump over whole allocated blocks instead of testing every
candidate subnet.
"""

from bisect import bisect_left
from collections.abc import Iterable

import structlog

from ..constants import DEFAULT_AVAILABLE_SUBNET_COUNT
from ..models.prefix import Prefix
from ..models.results import SubnetValidationResult, UtilizationStats

logger = structlog.get_logger(__name__)


def _merged_intervals(prefixes: Iterable[Prefix]) -> list[tuple[int, int]]:
    """
    Merge prefixes into sorted, non-overlapping (first, last) address intervals.

    Args:
        prefixes: Prefixes of a single family

    Returns:
        Sorted list of inclusive intervals
    """
    intervals = sorted((p.network_address, p.last_address) for p in prefixes)
    merged: list[tuple[int, int]] = []
    for start, end in intervals:
        if merged and start <= merged[-1][1] + 1:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _free_blocks(
    parent: Prefix, length: int, intervals: list[tuple[int, int]], count: int
) -> list[Prefix]:
    """Walk aligned blocks of ``length`` in ``parent``, skipping allocated intervals."""
    size = 1 << (parent.max_length - length)
    ends = [end for _, end in intervals]
    address = parent.network_address
    last = parent.last_address
    found: list[Prefix] = []

    while address <= last and len(found) < count:
        # First interval that ends at or after the candidate's start
        index = bisect_left(ends, address)
        if index < len(intervals) and intervals[index][0] <= address + size - 1:
            # Overlap: resume at the first aligned block after the interval
            next_free = intervals[index][1] + 1
            address = ((next_free + size - 1) // size) * size
            continue
        found.append(Prefix(address, length, parent.is_ipv4))
        address += size

    return found


def find_available_subnets(
    parent: Prefix,
    length: int,
    existing: Iterable[Prefix],
    count: int = DEFAULT_AVAILABLE_SUBNET_COUNT,
) -> list[Prefix]:
    """
    Find free subnets of a given length inside a parent prefix.

    A candidate is free when no existing strict subnet of ``parent``
    contains it, is contained by it, or equals it.

    Args:
        parent: Prefix to allocate from
        length: Length of the wanted subnets
        existing: Prefixes already allocated in the address space
        count: Maximum number of subnets to return

    Returns:
        Up to ``count`` free subnets in ascending address order

    Raises:
        InvalidLengthError: If length is not longer than the parent's or
            exceeds the family maximum
    """
    # Validates the length eagerly
    parent.iter_subnets(length)

    inside = [prefix for prefix in existing if prefix.is_subnet_of(parent)]
    found = _free_blocks(parent, length, _merged_intervals(inside), count)

    logger.debug(
        "Found available subnets",
        parent=str(parent),
        length=length,
        requested=count,
        found=len(found),
    )
    return found


def validate_subnet_allocation(
    proposed: Prefix, existing: Iterable[Prefix]
) -> SubnetValidationResult:
    """
    Check a proposed allocation against every existing prefix.

    Args:
        proposed: Prefix to allocate
        existing: Prefixes already allocated in the address space

    Returns:
        Result listing every overlapping prefix (empty when valid)
    """
    conflicts = sorted(prefix for prefix in existing if prefix.overlaps(proposed))
    return SubnetValidationResult(proposed=proposed, conflicts=conflicts)


def largest_available_block(network: Prefix, existing: Iterable[Prefix]) -> Prefix | None:
    """
    Find the largest aligned free prefix inside a network.

    Args:
        network: Network to search
        existing: Prefixes already allocated in the address space

    Returns:
        The lowest free prefix of the shortest possible length, the network
        itself when nothing inside it is allocated, or None when it is full
    """
    inside = [prefix for prefix in existing if prefix.is_subnet_of(network)]
    if not inside:
        return network.network()

    intervals = _merged_intervals(inside)
    for length in range(network.length + 1, network.max_length + 1):
        found = _free_blocks(network, length, intervals, 1)
        if found:
            return found[0]
    return None


def calculate_utilization(network: Prefix, existing: Iterable[Prefix]) -> UtilizationStats:
    """
    Measure how much of a network is allocated.

    Only prefixes strictly inside the network count; the network's own
    entry does not make it 100% used.

    Args:
        network: Network to measure
        existing: Prefixes already allocated in the address space

    Returns:
        Utilization statistics for the network
    """
    inside = [prefix for prefix in existing if prefix.is_subnet_of(network)]
    allocated = sum(end - start + 1 for start, end in _merged_intervals(inside))

    fragmentation = 0.0
    if inside:
        average_length = sum(prefix.length for prefix in inside) / len(inside)
        max_possible_blocks = 2 ** (average_length - network.length)
        fragmentation = len(inside) / max_possible_blocks

    stats = UtilizationStats(
        network=network,
        total_addresses=network.num_addresses,
        allocated_addresses=allocated,
        subnet_count=len(inside),
        largest_available_block=largest_available_block(network, inside),
        fragmentation_index=fragmentation,
    )

    logger.debug(
        "Calculated utilization",
        network=str(network),
        allocated=stats.allocated_addresses,
        total=stats.total_addresses,
        utilization=round(stats.utilization_percentage, 2),
    )
    return stats
