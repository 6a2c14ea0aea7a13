"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing the IPAM core.
Fixtures are organized by category:
- Schema fixtures: Tag definitions for a sample address space
- Node fixtures: Network node snapshots with hierarchy links
- File fixtures: Snapshot and config files in a temp directory
"""

from pathlib import Path
from typing import Any

import pytest
import yaml

from src.ipamcore.hierarchy.index import PrefixIndex
from src.ipamcore.models.node import NetworkNode
from src.ipamcore.models.prefix import Prefix
from src.ipamcore.models.tags import Implication, TagDefinition, TagType

ADDRESS_SPACE = "as-1"


def make_node(
    node_id: str,
    cidr: str,
    tags: dict[str, str] | None = None,
    parent_id: str | None = None,
) -> NetworkNode:
    """Build a node in the sample address space."""
    return NetworkNode(
        address_space_id=ADDRESS_SPACE,
        id=node_id,
        prefix=Prefix.parse(cidr),
        direct_tags=dict(tags or {}),
        parent_id=parent_id,
    )


def make_definition(
    name: str,
    known_values: list[str] | None = None,
    inheritable: bool = True,
    implications: dict[str, list[tuple[str, str]]] | None = None,
    attributes: dict[str, dict[str, str]] | None = None,
) -> TagDefinition:
    """Build a tag definition in the sample address space."""
    return TagDefinition(
        address_space_id=ADDRESS_SPACE,
        name=name,
        type=TagType.INHERITABLE if inheritable else TagType.NON_INHERITABLE,
        known_values=frozenset(known_values or []),
        attributes=attributes or {},
        implications={
            value: [Implication(tag, implied) for tag, implied in implied_list]
            for value, implied_list in (implications or {}).items()
        },
    )


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def node_factory():
    """Factory for nodes in the sample address space.

    Example:
        def test_something(node_factory):
            node = node_factory("n1", "10.0.0.0/8", {"Env": "Prod"})
    """
    return make_node


@pytest.fixture
def definition_factory():
    """Factory for tag definitions in the sample address space.

    Example:
        def test_something(definition_factory):
            env = definition_factory("Env", ["Prod"], implications={"Prod": [("Tier", "Gold")]})
    """
    return make_definition


# =============================================================================
# Schema Fixtures
# =============================================================================


@pytest.fixture
def definitions() -> dict[str, TagDefinition]:
    """Sample schema.

    - Env (Prod/Dev), Prod implies Tier=Critical
    - Tier (Critical/Standard)
    - Site (unconstrained)
    - Owner (NonInheritable, unconstrained)
    """
    defs = [
        make_definition("Env", ["Prod", "Dev"], implications={"Prod": [("Tier", "Critical")]}),
        make_definition("Tier", ["Critical", "Standard"]),
        make_definition("Site"),
        make_definition("Owner", inheritable=False),
    ]
    return {definition.name: definition for definition in defs}


# =============================================================================
# Node Fixtures
# =============================================================================


@pytest.fixture
def nodes() -> list[NetworkNode]:
    """Sample hierarchy with links computed by the PrefixIndex.

    corp   10.0.0.0/8      Env=Prod, Tier=Critical
    ├── dc1  10.1.0.0/16   Site=AMS
    │   └── rack 10.1.2.0/24  Owner=ops
    └── lab  10.2.0.0/16
    v6     2001:db8::/32
    """
    raw = [
        make_node("corp", "10.0.0.0/8", {"Env": "Prod", "Tier": "Critical"}),
        make_node("dc1", "10.1.0.0/16", {"Site": "AMS"}),
        make_node("rack", "10.1.2.0/24", {"Owner": "ops"}),
        make_node("lab", "10.2.0.0/16"),
        make_node("v6", "2001:db8::/32"),
    ]
    return PrefixIndex().build_hierarchy(raw)


@pytest.fixture
def nodes_by_id(nodes: list[NetworkNode]) -> dict[str, NetworkNode]:
    """Sample nodes keyed by id."""
    return {node.id: node for node in nodes}


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    """Raw snapshot document matching the ``definitions`` and ``nodes`` fixtures."""
    return {
        "version": "1.0",
        "address_space": ADDRESS_SPACE,
        "tags": [
            {
                "name": "Env",
                "type": "Inheritable",
                "known_values": ["Prod", "Dev"],
                "attributes": {"Prod": {"owner": "ops"}},
                "implications": {"Prod": [{"tag": "Tier", "value": "Critical"}]},
            },
            {"name": "Tier", "known_values": ["Critical", "Standard"]},
            {"name": "Site"},
            {"name": "Owner", "type": "NonInheritable"},
        ],
        "nodes": [
            {"id": "corp", "prefix": "10.0.0.0/8", "tags": {"Env": "Prod", "Tier": "Critical"}},
            {"id": "dc1", "prefix": "10.1.0.0/16", "tags": {"Site": "AMS"}},
            {"id": "rack", "prefix": "10.1.2.0/24", "tags": {"Owner": "ops"}},
            {"id": "lab", "prefix": "10.2.0.0/16"},
            {"id": "v6", "prefix": "2001:db8::/32"},
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict[str, Any]) -> Path:
    """Sample snapshot written to a temp YAML file."""
    path = tmp_path / "address_space.yaml"
    path.write_text(yaml.safe_dump(snapshot_data, sort_keys=False))
    return path
