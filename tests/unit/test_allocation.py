"""Tests for subnet allocation helpers."""

import pytest

from src.ipamcore.hierarchy.allocation import (
    calculate_utilization,
    find_available_subnets,
    largest_available_block,
    validate_subnet_allocation,
)
from src.ipamcore.models.prefix import Prefix
from src.ipamcore.utils.exceptions import InvalidLengthError


def prefixes(*texts):
    return [Prefix.parse(text) for text in texts]


class TestFindAvailableSubnets:
    """Test free-space search."""

    def test_skips_allocated(self):
        parent = Prefix.parse("10.1.0.0/16")
        existing = prefixes("10.1.0.0/16", "10.1.2.0/24")

        found = find_available_subnets(parent, 24, existing, count=3)

        assert [str(p) for p in found] == ["10.1.0.0/24", "10.1.1.0/24", "10.1.3.0/24"]

    def test_default_count_is_one(self):
        found = find_available_subnets(Prefix.parse("10.1.0.0/16"), 24, [])

        assert [str(p) for p in found] == ["10.1.0.0/24"]

    def test_candidate_inside_larger_allocation(self):
        found = find_available_subnets(
            Prefix.parse("10.1.0.0/16"), 24, prefixes("10.1.0.0/23")
        )

        assert [str(p) for p in found] == ["10.1.2.0/24"]

    def test_candidate_containing_smaller_allocation(self):
        found = find_available_subnets(
            Prefix.parse("10.1.0.0/16"), 24, prefixes("10.1.0.128/25")
        )

        assert [str(p) for p in found] == ["10.1.1.0/24"]

    def test_jumps_over_large_allocation(self):
        found = find_available_subnets(
            Prefix.parse("10.1.0.0/16"), 24, prefixes("10.1.0.0/17")
        )

        assert [str(p) for p in found] == ["10.1.128.0/24"]

    def test_full_parent(self):
        found = find_available_subnets(
            Prefix.parse("10.1.0.0/16"), 24, prefixes("10.1.0.0/17", "10.1.128.0/17"), count=5
        )

        assert found == []

    def test_ignores_supernets_and_other_families(self):
        existing = prefixes("10.0.0.0/8", "2001:db8::/32")

        found = find_available_subnets(Prefix.parse("10.1.0.0/16"), 24, existing)

        assert [str(p) for p in found] == ["10.1.0.0/24"]

    def test_ipv6(self):
        found = find_available_subnets(
            Prefix.parse("2001:db8::/32"), 48, prefixes("2001:db8::/48"), count=2
        )

        assert [str(p) for p in found] == ["2001:db8:1::/48", "2001:db8:2::/48"]

    @pytest.mark.parametrize("length", [16, 8, 33])
    def test_invalid_length(self, length):
        with pytest.raises(InvalidLengthError):
            find_available_subnets(Prefix.parse("10.1.0.0/16"), length, [])


class TestValidateSubnetAllocation:
    """Test allocation conflict checks."""

    def test_conflicts_listed(self):
        result = validate_subnet_allocation(
            Prefix.parse("10.1.2.0/24"),
            prefixes("192.168.0.0/16", "10.1.2.128/25", "10.0.0.0/8"),
        )

        assert result.is_valid is False
        assert [str(p) for p in result.conflicts] == ["10.0.0.0/8", "10.1.2.128/25"]
        assert result.message == (
            "Subnet 10.1.2.0/24 conflicts with existing allocations: 10.0.0.0/8, 10.1.2.128/25"
        )

    def test_valid(self):
        result = validate_subnet_allocation(
            Prefix.parse("10.1.3.0/24"), prefixes("10.1.2.0/24", "2001:db8::/32")
        )

        assert result.is_valid is True
        assert result.message == "Subnet allocation is valid"


class TestUtilization:
    """Test utilization statistics."""

    def test_nested_allocations_counted_once(self):
        network = Prefix.parse("10.1.0.0/16")
        existing = prefixes("10.1.0.0/16", "10.1.0.0/24", "10.1.1.0/24", "10.1.0.0/25")

        stats = calculate_utilization(network, existing)

        assert stats.total_addresses == 65536
        assert stats.allocated_addresses == 512
        assert stats.available_addresses == 65024
        assert stats.subnet_count == 3
        assert stats.utilization_percentage == pytest.approx(512 / 65536 * 100)
        assert str(stats.largest_available_block) == "10.1.128.0/17"
        average_length = (24 + 24 + 25) / 3
        assert stats.fragmentation_index == pytest.approx(3 / 2 ** (average_length - 16))

    def test_empty_network(self):
        stats = calculate_utilization(Prefix.parse("10.1.0.0/16"), [])

        assert stats.allocated_addresses == 0
        assert stats.utilization_percentage == 0.0
        assert stats.fragmentation_index == 0.0
        assert str(stats.largest_available_block) == "10.1.0.0/16"

    def test_full_network(self):
        stats = calculate_utilization(
            Prefix.parse("10.1.0.0/16"), prefixes("10.1.0.0/17", "10.1.128.0/17")
        )

        assert stats.utilization_percentage == 100.0
        assert stats.available_addresses == 0
        assert stats.largest_available_block is None

    def test_largest_block_uses_network_address(self):
        assert str(largest_available_block(Prefix.parse("10.1.2.3/16"), [])) == "10.1.0.0/16"

    def test_largest_block_smallest_gap(self):
        network = Prefix.parse("192.168.0.0/30")
        existing = prefixes("192.168.0.0/31", "192.168.0.2/32")

        assert str(largest_available_block(network, existing)) == "192.168.0.3/32"
