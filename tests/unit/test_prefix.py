"""Unit tests for the Prefix value type."""

import pytest

from src.ipamcore.models.prefix import Prefix
from src.ipamcore.utils.exceptions import (
    InvalidAddressError,
    InvalidFormatError,
    InvalidLengthError,
    PrefixError,
)


class TestPrefixParse:
    """Test CIDR parsing."""

    def test_parse_ipv4(self):
        prefix = Prefix.parse("10.0.0.0/8")

        assert prefix.is_ipv4 is True
        assert prefix.address == 10 << 24
        assert prefix.length == 8
        assert prefix.max_length == 32

    def test_parse_ipv6(self):
        prefix = Prefix.parse("2001:db8::/32")

        assert prefix.is_ipv4 is False
        assert prefix.address == 0x20010DB8 << 96
        assert prefix.length == 32
        assert prefix.max_length == 128

    @pytest.mark.parametrize(
        "text",
        ["10.0.0.0/8", "10.1.2.3/16", "0.0.0.0/0", "192.168.1.1/32", "2001:db8::/32", "::/0"],
    )
    def test_round_trip(self, text):
        """Canonical CIDR text survives parse and format unchanged."""
        assert str(Prefix.parse(text)) == text

    def test_host_bits_preserved(self):
        prefix = Prefix.parse("10.1.2.3/16")

        assert prefix.has_host_bits is True
        assert str(prefix) == "10.1.2.3/16"
        assert str(prefix.network()) == "10.1.0.0/16"
        assert Prefix.parse("10.1.0.0/16").has_host_bits is False

    @pytest.mark.parametrize("text", ["10.0.0.0", "10.0.0.0/8/9", "", "2001:db8::"])
    def test_invalid_format(self, text):
        with pytest.raises(InvalidFormatError):
            Prefix.parse(text)

    @pytest.mark.parametrize(
        "text",
        ["10.0.0.256/8", "banana/8", "/8", " 10.0.0.0/8", "fe80::1%eth0/64", "10.0.0/8"],
    )
    def test_invalid_address(self, text):
        with pytest.raises(InvalidAddressError):
            Prefix.parse(text)

    @pytest.mark.parametrize(
        "text", ["10.0.0.0/33", "10.0.0.0/abc", "10.0.0.0/", "10.0.0.0/-1", "2001:db8::/129"]
    )
    def test_invalid_length(self, text):
        with pytest.raises(InvalidLengthError):
            Prefix.parse(text)

    def test_invalid_length_reports_family_maximum(self):
        with pytest.raises(InvalidLengthError) as exc_info:
            Prefix.parse("2001:db8::/200")

        assert exc_info.value.max_length == 128

    def test_prefix_errors_are_value_errors(self):
        """Callers validating input can catch ValueError."""
        with pytest.raises(ValueError):
            Prefix.parse("not a prefix")

        assert issubclass(PrefixError, ValueError)

    def test_non_string_rejected(self):
        with pytest.raises(InvalidFormatError):
            Prefix.parse(167772160)

    def test_constructor_validates_range(self):
        with pytest.raises(InvalidLengthError):
            Prefix(0, 33, True)
        with pytest.raises(InvalidAddressError):
            Prefix(1 << 32, 8, True)


class TestPrefixContainment:
    """Test containment and overlap."""

    def test_scenario_subnet_of_supernet(self):
        """10.1.0.0/16 is a subnet of 10.0.0.0/8 but not of itself."""
        child = Prefix.parse("10.1.0.0/16")
        parent = Prefix.parse("10.0.0.0/8")

        assert child.is_subnet_of(parent) is True
        assert parent.is_supernet_of(child) is True
        assert child.is_subnet_of(child) is False
        assert child.is_supernet_of(child) is False

    def test_contains_is_reflexive(self):
        for text in ["10.0.0.0/8", "10.1.2.3/16", "2001:db8::/32", "::/0"]:
            prefix = Prefix.parse(text)
            assert prefix.contains(prefix)

    def test_contains_is_antisymmetric_for_clean_prefixes(self):
        a = Prefix.parse("10.0.0.0/8")
        b = Prefix.parse("10.1.0.0/16")

        assert a.contains(b)
        assert not b.contains(a)

    def test_host_bit_variants_contain_each_other(self):
        """Antisymmetry only holds for host-bit-clean prefixes."""
        a = Prefix.parse("10.1.2.3/16")
        b = Prefix.parse("10.1.0.0/16")

        assert a != b
        assert a.contains(b) and b.contains(a)

    def test_contains_is_transitive(self):
        a = Prefix.parse("10.0.0.0/8")
        b = Prefix.parse("10.1.0.0/16")
        c = Prefix.parse("10.1.2.0/24")

        assert a.contains(b) and b.contains(c)
        assert a.contains(c)

    def test_cross_family_never_contains(self):
        v4_all = Prefix.parse("0.0.0.0/0")
        v6_all = Prefix.parse("::/0")
        mapped = Prefix.parse("::ffff:10.0.0.0/104")
        v4 = Prefix.parse("10.0.0.0/8")

        assert not v6_all.contains(v4)
        assert not v4_all.contains(v6_all)
        assert not mapped.contains(v4)
        assert not v4.overlaps(mapped)

    def test_default_route_contains_family(self):
        assert Prefix.parse("0.0.0.0/0").contains(Prefix.parse("192.168.1.1/32"))
        assert Prefix.parse("::/0").contains(Prefix.parse("2001:db8::/32"))

    def test_disjoint_siblings(self):
        a = Prefix.parse("10.1.0.0/16")
        b = Prefix.parse("10.2.0.0/16")

        assert not a.contains(b)
        assert not a.overlaps(b)

    def test_overlaps_either_direction(self):
        a = Prefix.parse("10.0.0.0/8")
        b = Prefix.parse("10.1.2.0/24")

        assert a.overlaps(b) and b.overlaps(a)


class TestPrefixSubnets:
    """Test subnetting."""

    def test_subnets_ipv4(self):
        subnets = Prefix.parse("10.0.0.0/8").subnets(10)

        assert [str(s) for s in subnets] == [
            "10.0.0.0/10",
            "10.64.0.0/10",
            "10.128.0.0/10",
            "10.192.0.0/10",
        ]

    def test_subnets_default_one_bit_longer(self):
        subnets = Prefix.parse("10.0.0.0/8").subnets()

        assert [str(s) for s in subnets] == ["10.0.0.0/9", "10.128.0.0/9"]

    def test_subnets_ipv6(self):
        subnets = Prefix.parse("2001:db8::/32").subnets(34)

        assert [str(s) for s in subnets] == [
            "2001:db8::/34",
            "2001:db8:4000::/34",
            "2001:db8:8000::/34",
            "2001:db8:c000::/34",
        ]

    def test_subnets_start_from_network_address(self):
        subnets = Prefix.parse("10.1.2.3/16").subnets(17)

        assert [str(s) for s in subnets] == ["10.1.0.0/17", "10.1.128.0/17"]

    def test_partition_law(self):
        """Subnets are pairwise disjoint, inside the parent, and cover it exactly."""
        parent = Prefix.parse("172.16.0.0/12")
        subnets = parent.subnets(15)

        assert len(subnets) == 2 ** (15 - 12)
        assert all(parent.contains(s) for s in subnets)
        assert sum(s.num_addresses for s in subnets) == parent.num_addresses
        for first, second in zip(subnets, subnets[1:], strict=False):
            assert not first.overlaps(second)
            assert first.last_address + 1 == second.network_address

    @pytest.mark.parametrize("new_length", [8, 4, 33])
    def test_invalid_subnet_length(self, new_length):
        with pytest.raises(InvalidLengthError):
            Prefix.parse("10.0.0.0/8").subnets(new_length)

    def test_iter_subnets_checks_length_eagerly(self):
        with pytest.raises(InvalidLengthError):
            Prefix.parse("10.0.0.0/8").iter_subnets(8)

    def test_host_route_has_no_subnets(self):
        with pytest.raises(InvalidLengthError):
            Prefix.parse("10.0.0.1/32").subnets()

    def test_iter_subnets_is_lazy(self):
        """A huge split can be consumed partially."""
        iterator = Prefix.parse("2001:db8::/32").iter_subnets(128)

        assert str(next(iterator)) == "2001:db8::/128"
        assert str(next(iterator)) == "2001:db8::1/128"


class TestPrefixValueSemantics:
    """Test ordering, equality and derived values."""

    def test_equality_and_hashing(self):
        prefixes = {Prefix.parse("10.0.0.0/8"), Prefix.parse("10.0.0.0/8")}

        assert len(prefixes) == 1

    def test_ordering_ipv4_first(self):
        ordered = sorted(
            Prefix.parse(text)
            for text in ["2001:db8::/32", "10.1.0.0/16", "10.0.0.0/8", "10.0.0.0/16"]
        )

        assert [str(p) for p in ordered] == [
            "10.0.0.0/8",
            "10.0.0.0/16",
            "10.1.0.0/16",
            "2001:db8::/32",
        ]

    def test_derived_values(self):
        prefix = Prefix.parse("192.168.1.0/24")

        assert prefix.num_addresses == 256
        assert prefix.mask == 0xFFFFFF00
        assert prefix.hostmask == 0xFF
        assert prefix.last_address - prefix.network_address == 255
        assert Prefix.parse("::/0").num_addresses == 2**128
