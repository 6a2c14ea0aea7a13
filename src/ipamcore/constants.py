"""Named constants for the IPAM core.

Address family limits and schema vocabulary shared by the prefix algebra,
the snapshot loader and the CLI.
"""

# -----------------------------------------------------------------------------
# Address Families
# -----------------------------------------------------------------------------

# Bit width of an IPv4 address (maximum IPv4 prefix length)
IPV4_MAX_LENGTH: int = 32

# Bit width of an IPv6 address (maximum IPv6 prefix length)
IPV6_MAX_LENGTH: int = 128

# Separator between the address and the length in CIDR text
CIDR_SEPARATOR: str = "/"


# -----------------------------------------------------------------------------
# Tag Schema
# -----------------------------------------------------------------------------

# Tag type names as they appear in snapshot files and API payloads
TAG_TYPE_INHERITABLE: str = "Inheritable"
TAG_TYPE_NON_INHERITABLE: str = "NonInheritable"


# -----------------------------------------------------------------------------
# Snapshot Files
# -----------------------------------------------------------------------------

# Supported snapshot schema versions
# Used by the snapshot loader to warn about unsupported versions
SUPPORTED_SNAPSHOT_VERSIONS: frozenset[str] = frozenset({"1.0", "1"})


# -----------------------------------------------------------------------------
# Allocation
# -----------------------------------------------------------------------------

# Default number of candidates returned by available-subnet searches
DEFAULT_AVAILABLE_SUBNET_COUNT: int = 1
