"""Address-space snapshot loader.

Overview:
--------
A snapshot file holds one address space: its tag definitions and its
network nodes. The loader validates the raw YAML with the Pydantic row
models, converts rows into domain objects and recomputes every node's
parent and children links with the PrefixIndex.

Snapshot Format:
---------------
```
version: "1.0"
address_space: as-1
tags:
  - name: Env
    type: Inheritable
    known_values: [Prod, Dev]
    implications: {Prod: [{tag: Tier, value: Critical}]}
nodes:
  - id: corp
    prefix: 10.0.0.0/8
    tags: {Env: Prod}
```

Stored ``parent_id`` values are optional. They are never trusted for the
hierarchy; the loader keeps them only so a check can report stale links.

Error Handling:
--------------
- FileNotFoundError: Snapshot file doesn't exist
- SnapshotError: Invalid YAML, failed row validation or duplicate prefixes
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from ..hierarchy.index import PrefixIndex
from ..models.node import NetworkNode
from ..models.prefix import Prefix
from ..models.snapshot import SnapshotFile
from ..models.tags import TagDefinition
from ..utils.exceptions import DuplicatePrefixError, NodeNotFoundError, SnapshotError

logger = structlog.get_logger(__name__)


@dataclass
class AddressSpaceSnapshot:
    """
    One address space as handed to the core: definitions plus nodes.

    Attributes:
        address_space_id: Address space the records belong to
        definitions: Tag name -> definition
        nodes: Network nodes with freshly computed hierarchy links, in file order
        declared_parents: Node id -> parent id as written in the file, for
            nodes that declared one
        version: Snapshot schema version
        source: File the snapshot was read from, if any
    """

    address_space_id: str
    definitions: dict[str, TagDefinition] = field(default_factory=dict)
    nodes: list[NetworkNode] = field(default_factory=list)
    declared_parents: dict[str, str] = field(default_factory=dict)
    version: str = "1.0"
    source: str | None = None

    @property
    def nodes_by_id(self) -> dict[str, NetworkNode]:
        """Nodes keyed by id."""
        return {node.id: node for node in self.nodes}

    @property
    def prefixes(self) -> list[Prefix]:
        """Every allocated prefix, in file order."""
        return [node.prefix for node in self.nodes]

    def get_node(self, node_id: str) -> NetworkNode:
        """
        Look up a node by id.

        Raises:
            NodeNotFoundError: If no node has that id
        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(node_id)

    def find_by_prefix(self, prefix: Prefix) -> list[NetworkNode]:
        """Nodes holding exactly ``prefix`` (several only under the equal-prefix policy)."""
        return [node for node in self.nodes if node.prefix == prefix]


def _format_validation_error(error: ValidationError) -> str:
    """
    Format Pydantic validation error into human-readable message.

    Args:
        error: Pydantic ValidationError

    Returns:
        Formatted error message
    """
    errors = error.errors()
    if not errors:
        return str(error)

    # Format first error (most relevant)
    first_error = errors[0]
    location = ".".join(str(loc) for loc in first_error["loc"]) or "snapshot"
    msg = first_error["msg"]

    if len(errors) > 1:
        return f"{location}: {msg} (and {len(errors) - 1} more errors)"
    return f"{location}: {msg}"


def parse_snapshot(
    data: Mapping[str, Any] | None,
    source: str | None = None,
    allow_equal_prefix: bool = False,
) -> AddressSpaceSnapshot:
    """
    Build a snapshot from already-decoded YAML or JSON data.

    Args:
        data: Decoded document
        source: Where the data came from, used in error messages
        allow_equal_prefix: Equal-prefix policy used to rebuild the hierarchy

    Returns:
        AddressSpaceSnapshot with recomputed hierarchy links

    Raises:
        SnapshotError: If the document is not a mapping, fails validation
            or registers a prefix twice
    """
    if not isinstance(data, Mapping):
        kind = "empty document" if data is None else type(data).__name__
        raise SnapshotError(f"Expected a mapping at the top level, got {kind}", source)

    try:
        document = SnapshotFile.model_validate(dict(data))
    except ValidationError as e:
        raise SnapshotError(_format_validation_error(e), source, e) from e

    if not document.is_supported_version:
        logger.warning(
            "Unsupported snapshot version, reading anyway",
            version=document.version,
            source=source,
        )

    address_space_id = document.address_space
    definitions = {row.name: row.to_definition(address_space_id) for row in document.tags}
    nodes = [row.to_node(address_space_id) for row in document.nodes]

    try:
        nodes = PrefixIndex(allow_equal_prefix=allow_equal_prefix).build_hierarchy(nodes)
    except DuplicatePrefixError as e:
        raise SnapshotError(str(e), source, e) from e

    declared = {row.id: row.parent_id for row in document.nodes if row.parent_id is not None}

    logger.debug(
        "Parsed snapshot",
        address_space=address_space_id,
        tags=len(definitions),
        nodes=len(nodes),
        source=source,
    )

    return AddressSpaceSnapshot(
        address_space_id=address_space_id,
        definitions=definitions,
        nodes=nodes,
        declared_parents=declared,
        version=document.version,
        source=source,
    )


def load_snapshot(path: Path, allow_equal_prefix: bool = False) -> AddressSpaceSnapshot:
    """
    Read and validate a snapshot file.

    Args:
        path: YAML (or JSON) snapshot file
        allow_equal_prefix: Equal-prefix policy used to rebuild the hierarchy

    Returns:
        AddressSpaceSnapshot

    Raises:
        FileNotFoundError: If the file doesn't exist
        SnapshotError: If the file is not a valid snapshot
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SnapshotError(f"Invalid YAML: {e}", str(path), e) from e

    return parse_snapshot(data, source=str(path), allow_equal_prefix=allow_equal_prefix)


def dump_snapshot(snapshot: AddressSpaceSnapshot, path: Path) -> None:
    """
    Write a snapshot back to YAML, including the recomputed parent ids.

    Args:
        snapshot: Snapshot to write
        path: Destination file
    """
    data: dict[str, Any] = {
        "version": snapshot.version,
        "address_space": snapshot.address_space_id,
        "tags": [
            {
                "name": definition.name,
                "type": definition.type.value,
                "known_values": sorted(definition.known_values),
                "attributes": definition.attributes,
                "implications": {
                    value: [{"tag": imp.tag, "value": imp.value} for imp in implied]
                    for value, implied in definition.implications.items()
                },
            }
            for definition in snapshot.definitions.values()
        ],
        "nodes": [
            {
                "id": node.id,
                "prefix": str(node.prefix),
                "tags": dict(node.direct_tags),
                **({"parent_id": node.parent_id} if node.parent_id else {}),
            }
            for node in snapshot.nodes
        ],
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
