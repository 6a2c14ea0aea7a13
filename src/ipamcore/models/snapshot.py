"""Address-space snapshot file models with Pydantic v2 validation.

A snapshot is the persistence layer's view of one address space: its tag
definitions and its network nodes. These rows validate the raw YAML and
convert into the core's domain objects.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from ..constants import SUPPORTED_SNAPSHOT_VERSIONS
from .node import NetworkNode
from .prefix import Prefix
from .tags import Implication, TagDefinition, TagType


def strip_whitespace(v: Any) -> Any:
    """
    Strip whitespace from string fields.

    Args:
        v: The value to process.

    Returns:
        Any: The processed value with whitespace stripped.
    """
    if isinstance(v, str):
        return v.strip()
    return v


def coerce_scalar(v: Any) -> Any:
    """
    Turn YAML scalars into strings.

    YAML reads ``Rack: 12`` as an integer and ``Enabled: yes`` as a boolean;
    tag names, values and node ids are always text.

    Args:
        v: The value to process.

    Returns:
        Any: The value as a stripped string if it was a scalar.
    """
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, int | float):
        return str(v)
    return strip_whitespace(v)


Text = Annotated[str, BeforeValidator(coerce_scalar)]


class ImplicationRow(BaseModel):
    """One implied assignment: ``{tag: Tier, value: Critical}``."""

    model_config = ConfigDict(extra="forbid")

    tag: Text
    value: Text

    def to_implication(self) -> Implication:
        return Implication(tag=self.tag, value=self.value)


class TagDefinitionRow(BaseModel):
    """
    Tag definition row.

    Example:
        - name: Env
          type: Inheritable
          known_values: [Prod, Dev]
          attributes: {Prod: {owner: ops}}
          implications: {Prod: [{tag: Tier, value: Critical}]}
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[Text, Field(min_length=1, description="Tag name")]
    type: Annotated[TagType, Field(default=TagType.INHERITABLE, description="Tag type")]
    known_values: Annotated[list[Text], Field(default_factory=list)]
    attributes: Annotated[dict[Text, dict[Text, Text]], Field(default_factory=dict)]
    implications: Annotated[dict[Text, list[ImplicationRow]], Field(default_factory=dict)]

    @field_validator("known_values")
    @classmethod
    def validate_known_values(cls, v: list[str]) -> list[str]:
        """
        Reject duplicate known values.

        Args:
            v: Known values as listed in the file.

        Returns:
            list[str]: The known values unchanged.

        Raises:
            ValueError: If a value is listed twice.
        """
        seen: set[str] = set()
        duplicates = sorted({value for value in v if value in seen or seen.add(value)})
        if duplicates:
            raise ValueError(f"Duplicate known values found: {', '.join(duplicates)}")
        return v

    def to_definition(self, address_space_id: str) -> TagDefinition:
        return TagDefinition(
            address_space_id=address_space_id,
            name=self.name,
            type=self.type,
            known_values=frozenset(self.known_values),
            attributes={value: dict(attrs) for value, attrs in self.attributes.items()},
            implications={
                value: [row.to_implication() for row in rows]
                for value, rows in self.implications.items()
            },
        )


class NetworkNodeRow(BaseModel):
    """
    Network node row.

    Example:
        - id: corp
          prefix: 10.0.0.0/8
          tags: {Env: Prod}
    """

    model_config = ConfigDict(extra="forbid")

    id: Annotated[Text, Field(min_length=1, description="Node id")]
    prefix: Annotated[str, Field(description="CIDR prefix")]
    tags: Annotated[dict[Text, Text], Field(default_factory=dict)]
    parent_id: Annotated[Text | None, Field(default=None, description="Stored parent id")]

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """
        Validate CIDR notation without normalizing it.

        Host bits are kept as written; surrounding whitespace is an error.

        Args:
            v: The CIDR string to validate.

        Returns:
            str: The CIDR string unchanged.

        Raises:
            ValueError: If the CIDR is malformed (PrefixError is a ValueError).
        """
        Prefix.parse(v)
        return v

    def to_node(self, address_space_id: str) -> NetworkNode:
        return NetworkNode(
            address_space_id=address_space_id,
            id=self.id,
            prefix=Prefix.parse(self.prefix),
            direct_tags=dict(self.tags),
            parent_id=self.parent_id,
        )


class SnapshotFile(BaseModel):
    """Top-level snapshot document."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    version: Annotated[Text, Field(default="1.0", description="Snapshot schema version")]
    address_space: Annotated[Text, Field(min_length=1, description="Address space id")]
    tags: Annotated[list[TagDefinitionRow], Field(default_factory=list)]
    nodes: Annotated[list[NetworkNodeRow], Field(default_factory=list)]

    @model_validator(mode="after")
    def validate_unique_keys(self) -> "SnapshotFile":
        """
        Ensure tag names and node ids are unique.

        Raises:
            ValueError: If a tag name or node id repeats.
        """
        for label, keys in (
            ("tag name", [row.name for row in self.tags]),
            ("node id", [row.id for row in self.nodes]),
        ):
            seen: set[str] = set()
            for key in keys:
                if key in seen:
                    raise ValueError(f"Duplicate {label}: {key}")
                seen.add(key)
        return self

    @property
    def is_supported_version(self) -> bool:
        return self.version in SUPPORTED_SNAPSHOT_VERSIONS
