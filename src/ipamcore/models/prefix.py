"""CIDR prefix value type covering IPv4 and IPv6 uniformly.

A prefix is stored as a plain integer address plus a length and a family
flag, so containment and subnetting are the same masking arithmetic for
both families. IPv4 addresses live in the low 32 bits and are never
promoted to IPv6: cross-family containment is always false.

Host bits are kept exactly as parsed. "10.1.2.3/16" stays "10.1.2.3/16";
use ``network()`` to get the host-bit-clean form.
"""

import ipaddress
from collections.abc import Iterator
from dataclasses import dataclass
from functools import total_ordering

from ..constants import CIDR_SEPARATOR, IPV4_MAX_LENGTH, IPV6_MAX_LENGTH
from ..utils.exceptions import InvalidAddressError, InvalidFormatError, InvalidLengthError


@total_ordering
@dataclass(frozen=True)
class Prefix:
    """
    Immutable CIDR prefix.

    Attributes:
        address: Integer value of the literal address (host bits preserved)
        length: Prefix length in bits
        is_ipv4: True for IPv4, False for IPv6

    Ordering is by (family, numeric address, length) with IPv4 first.
    """

    address: int
    length: int
    is_ipv4: bool

    def __post_init__(self) -> None:
        max_length = IPV4_MAX_LENGTH if self.is_ipv4 else IPV6_MAX_LENGTH
        if not 0 <= self.length <= max_length:
            raise InvalidLengthError(
                f"Prefix length {self.length} outside [0, {max_length}]",
                str(self.length),
                max_length,
            )
        if not 0 <= self.address < (1 << max_length):
            raise InvalidAddressError(f"Address value {self.address} does not fit {max_length} bits")

    @classmethod
    def parse(cls, text: str) -> "Prefix":
        """
        Parse CIDR text such as "10.0.0.0/8" or "2001:db8::/32".

        The family is detected from the address syntax. Surrounding
        whitespace and IPv6 zone identifiers are rejected.

        Args:
            text: CIDR text

        Returns:
            Parsed Prefix

        Raises:
            InvalidFormatError: If the text is not exactly "<address>/<length>"
            InvalidAddressError: If the address is neither IPv4 nor IPv6
            InvalidLengthError: If the length is non-numeric or out of range
        """
        if not isinstance(text, str):
            raise InvalidFormatError(f"CIDR must be a string, got {type(text).__name__}")

        parts = text.split(CIDR_SEPARATOR)
        if len(parts) != 2:
            raise InvalidFormatError(f"Invalid CIDR format: {text!r}", text)

        address_text, length_text = parts

        # ipaddress accepts scoped IPv6 literals ("fe80::1%eth0"); a prefix has no zone
        if "%" in address_text or address_text != address_text.strip():
            raise InvalidAddressError(f"Invalid IP address {address_text!r} in {text!r}", text)

        try:
            address = ipaddress.ip_address(address_text)
        except ValueError as e:
            raise InvalidAddressError(
                f"Invalid IP address {address_text!r} in {text!r}", text
            ) from e

        is_ipv4 = address.version == 4
        max_length = IPV4_MAX_LENGTH if is_ipv4 else IPV6_MAX_LENGTH

        if not (length_text.isascii() and length_text.isdigit()):
            raise InvalidLengthError(
                f"Invalid prefix length {length_text!r} in {text!r}", text, max_length
            )

        length = int(length_text)
        if length > max_length:
            raise InvalidLengthError(
                f"Prefix length {length} outside [0, {max_length}] in {text!r}",
                text,
                max_length,
            )

        return cls(address=int(address), length=length, is_ipv4=is_ipv4)

    def __str__(self) -> str:
        return f"{self.ip_address}{CIDR_SEPARATOR}{self.length}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Prefix):
            return NotImplemented
        return self.sort_key < other.sort_key

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def sort_key(self) -> tuple[int, int, int]:
        """Tuple used for ordering: (family, address, length)."""
        return (0 if self.is_ipv4 else 1, self.address, self.length)

    @property
    def max_length(self) -> int:
        """Bit width of the family (32 or 128)."""
        return IPV4_MAX_LENGTH if self.is_ipv4 else IPV6_MAX_LENGTH

    @property
    def ip_address(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        """The literal address as an ipaddress object."""
        if self.is_ipv4:
            return ipaddress.IPv4Address(self.address)
        return ipaddress.IPv6Address(self.address)

    @property
    def mask(self) -> int:
        """Integer netmask with the top ``length`` bits set."""
        return ((1 << self.length) - 1) << (self.max_length - self.length)

    @property
    def hostmask(self) -> int:
        """Integer hostmask (inverse of ``mask`` within the family width)."""
        return (1 << (self.max_length - self.length)) - 1

    @property
    def network_address(self) -> int:
        """First address of the range (literal address with host bits cleared)."""
        return self.address & self.mask

    @property
    def last_address(self) -> int:
        """Last address of the range."""
        return self.network_address | self.hostmask

    @property
    def num_addresses(self) -> int:
        """Number of addresses covered by the prefix."""
        return 1 << (self.max_length - self.length)

    @property
    def has_host_bits(self) -> bool:
        """True if the literal address has bits set below the prefix length."""
        return self.address != self.network_address

    def network(self) -> "Prefix":
        """Return the same prefix with host bits cleared."""
        if not self.has_host_bits:
            return self
        return Prefix(self.network_address, self.length, self.is_ipv4)

    # -------------------------------------------------------------------------
    # Containment
    # -------------------------------------------------------------------------

    def contains(self, other: "Prefix") -> bool:
        """
        Check whether ``other`` lies inside this prefix.

        True iff both prefixes share a family, this prefix is not longer,
        and the top ``self.length`` bits of both addresses agree.
        Reflexive: every prefix contains itself.

        Args:
            other: Prefix to test

        Returns:
            True if this prefix contains other
        """
        if self.is_ipv4 != other.is_ipv4:
            return False
        if self.length > other.length:
            return False
        mask = self.mask
        return (self.address & mask) == (other.address & mask)

    def is_supernet_of(self, other: "Prefix") -> bool:
        """Strict containment: this prefix contains other and is shorter."""
        return self.length < other.length and self.contains(other)

    def is_subnet_of(self, other: "Prefix") -> bool:
        """Strict containment: other contains this prefix and is shorter."""
        return other.length < self.length and other.contains(self)

    def overlaps(self, other: "Prefix") -> bool:
        """True if the two address ranges share at least one address."""
        return self.contains(other) or other.contains(self)

    # -------------------------------------------------------------------------
    # Subnetting
    # -------------------------------------------------------------------------

    def iter_subnets(self, new_length: int) -> Iterator["Prefix"]:
        """
        Lazily yield the prefixes of ``new_length`` that partition this one.

        The length check runs immediately, not on first iteration.

        Args:
            new_length: Length of the subnets

        Returns:
            Iterator over subnets in ascending address order

        Raises:
            InvalidLengthError: If new_length <= length or exceeds the family maximum
        """
        if new_length <= self.length or new_length > self.max_length:
            raise InvalidLengthError(
                f"New prefix length must be greater than {self.length} and at most "
                f"{self.max_length}, got {new_length}",
                str(new_length),
                self.max_length,
            )
        return self._generate_subnets(new_length)

    def _generate_subnets(self, new_length: int) -> Iterator["Prefix"]:
        step = 1 << (self.max_length - new_length)
        base = self.network_address
        for index in range(1 << (new_length - self.length)):
            yield Prefix(base + index * step, new_length, self.is_ipv4)

    def subnets(self, new_length: int | None = None) -> list["Prefix"]:
        """
        Return the ``2^(new_length - length)`` subnets partitioning this prefix.

        Args:
            new_length: Length of the subnets (default: one bit longer)

        Returns:
            Subnets in ascending address order

        Raises:
            InvalidLengthError: If new_length <= length or exceeds the family maximum
        """
        if new_length is None:
            new_length = self.length + 1
        return list(self.iter_subnets(new_length))
