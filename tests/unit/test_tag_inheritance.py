"""Tests for TagInheritanceValidator."""

import pytest

from src.ipamcore.tags.inheritance import TagInheritanceValidator
from src.ipamcore.utils.exceptions import (
    ImplicationConflictError,
    InheritanceConflictError,
    InsufficientDifferentiationError,
    TagValidationError,
    UnknownTagValueError,
)


@pytest.fixture
def validator(definitions):
    return TagInheritanceValidator(definitions)


class TestExpand:
    """Test implication expansion to a fixed point."""

    def test_scenario_expands_to_both(self, validator):
        assert validator.expand({"Env": "Prod"}) == {"Env": "Prod", "Tier": "Critical"}

    def test_transitive_chain(self, definition_factory):
        defs = {
            "A": definition_factory("A", implications={"1": [("B", "2")]}),
            "B": definition_factory("B", implications={"2": [("C", "3")]}),
            "C": definition_factory("C"),
        }

        expanded = TagInheritanceValidator(defs).expand({"A": "1"})

        assert expanded == {"A": "1", "B": "2", "C": "3"}

    def test_conflict_raises_instead_of_overwriting(self, validator):
        with pytest.raises(ImplicationConflictError):
            validator.expand({"Env": "Prod", "Tier": "Standard"})

    def test_no_implications(self, validator):
        assert validator.expand({"Site": "AMS"}) == {"Site": "AMS"}


class TestValidate:
    """Test the full four-step validation."""

    def test_returns_expanded_tags(self, validator):
        assert validator.validate({"Env": "Prod"}) == {"Env": "Prod", "Tier": "Critical"}

    def test_unknown_value(self, validator):
        with pytest.raises(UnknownTagValueError):
            validator.validate({"Env": "Staging"})

    def test_undefined_tag_skips_known_values(self, validator):
        assert validator.validate({"Ghost": "x"}) == {"Ghost": "x"}

    def test_implication_conflict_reported_before_known_values(self, validator):
        with pytest.raises(ImplicationConflictError):
            validator.validate({"Env": "Prod", "Tier": "Standard", "Site": "AMS"})

    def test_inheritance_conflict(self, validator):
        """Parent Env=Prod, child Env=Dev."""
        with pytest.raises(InheritanceConflictError) as exc_info:
            validator.validate({"Env": "Dev"}, {"Env": "Prod"})

        error = exc_info.value
        assert error.tag_name == "Env"
        assert error.parent_value == "Prod"
        assert error.child_value == "Dev"
        assert str(error) == "Inheritable tag conflict: parent has Env=Prod, but child has Env=Dev"

    def test_same_value_as_parent_is_fine(self, validator):
        assert validator.validate({"Env": "Prod"}, {"Env": "Prod", "Tier": "Critical"}) == {
            "Env": "Prod",
            "Tier": "Critical",
        }

    def test_conflict_through_implication(self, validator):
        """The child's implied Tier=Critical clashes with an inherited Tier=Standard."""
        with pytest.raises(InheritanceConflictError) as exc_info:
            validator.validate({"Env": "Prod"}, {"Tier": "Standard"})

        assert exc_info.value.tag_name == "Tier"

    def test_non_inheritable_parent_tag_ignored(self, validator):
        assert validator.validate({"Owner": "dev"}, {"Owner": "ops"}) == {"Owner": "dev"}

    def test_all_failures_are_tag_validation_errors(self, validator):
        with pytest.raises(TagValidationError):
            validator.validate({"Env": "Dev"}, {"Env": "Prod"})


class TestEqualPrefixRule:
    """Test the extra-tag rule for nodes sharing the parent's network."""

    def test_scenario_same_single_tag_fails(self, validator):
        with pytest.raises(InsufficientDifferentiationError) as exc_info:
            validator.validate(
                {"Site": "AMS"}, {"Site": "AMS"}, same_prefix_as_parent=True, prefix="10.1.0.0/16"
            )

        assert exc_info.value.prefix == "10.1.0.0/16"
        assert exc_info.value.child_count == 1
        assert exc_info.value.parent_count == 1

    def test_scenario_one_more_tag_passes(self, validator):
        expanded = validator.validate(
            {"Site": "AMS", "Env": "Dev"}, {"Site": "AMS"}, same_prefix_as_parent=True
        )

        assert expanded == {"Site": "AMS", "Env": "Dev"}

    def test_inherited_tags_do_not_count(self, validator):
        with pytest.raises(InsufficientDifferentiationError) as exc_info:
            validator.validate({"Env": "Dev"}, {"Site": "AMS"}, same_prefix_as_parent=True)

        assert exc_info.value.child_count == 1
        assert exc_info.value.parent_count == 1

    def test_fewer_own_tags_than_parent_fails(self, validator):
        with pytest.raises(InsufficientDifferentiationError) as exc_info:
            validator.validate(
                {"Env": "Dev"}, {"Site": "AMS", "Tier": "Standard"}, same_prefix_as_parent=True
            )

        assert exc_info.value.child_count == 1
        assert exc_info.value.parent_count == 2

    def test_restated_parent_tags_plus_one_pass(self, validator):
        expanded = validator.validate(
            {"Site": "AMS", "Tier": "Standard", "Env": "Dev"},
            {"Site": "AMS", "Tier": "Standard"},
            same_prefix_as_parent=True,
        )

        assert expanded == {"Site": "AMS", "Tier": "Standard", "Env": "Dev"}

    def test_non_inheritable_extra_tag_does_not_count(self, validator):
        with pytest.raises(InsufficientDifferentiationError):
            validator.validate(
                {"Site": "AMS", "Owner": "ops"}, {"Site": "AMS"}, same_prefix_as_parent=True
            )

    def test_only_applies_to_same_prefix(self, validator):
        assert validator.validate({"Site": "AMS"}, {"Site": "AMS"}) == {"Site": "AMS"}

    def test_top_level_same_prefix_needs_one_tag(self, validator):
        with pytest.raises(InsufficientDifferentiationError):
            validator.validate({}, None, same_prefix_as_parent=True)


class TestEffectiveTags:
    """Test tag resolution over an ancestor chain."""

    def test_effective_tags(self, validator, nodes_by_id):
        ancestors = [nodes_by_id["rack"], nodes_by_id["dc1"], nodes_by_id["corp"]]

        assert validator.effective_tags(ancestors) == {
            "Site": "AMS",
            "Env": "Prod",
            "Tier": "Critical",
        }

    def test_nearest_ancestor_wins(self, validator, node_factory):
        near = node_factory("near", "10.1.0.0/16", {"Site": "AMS"})
        far = node_factory("far", "10.0.0.0/8", {"Site": "FRA"})

        assert validator.effective_tags([near, far]) == {"Site": "AMS"}

    def test_top_level(self, validator):
        assert validator.effective_tags([]) == {}

    def test_resolve_tags_flags_inherited(self, validator, nodes_by_id):
        rack = nodes_by_id["rack"]
        ancestors = [nodes_by_id["dc1"], nodes_by_id["corp"]]
        resolved = validator.resolve_tags(rack.direct_tags, ancestors)

        assert resolved["Owner"].is_inherited is False
        assert resolved["Site"].is_inherited is True
        assert resolved["Env"].value == "Prod"


class TestPropagateToChildren:
    """Test tag propagation when a node is deleted."""

    def test_missing_inheritable_tags_pushed(self, validator, node_factory):
        children = [
            node_factory("a", "10.1.0.0/16", {"Site": "AMS"}),
            node_factory("b", "10.2.0.0/16", {"Env": "Prod", "Tier": "Critical"}),
        ]

        updates = validator.propagate_to_children(
            {"Env": "Prod", "Tier": "Critical", "Owner": "ops"}, children
        )

        assert updates == {"a": {"Site": "AMS", "Env": "Prod", "Tier": "Critical"}}

    def test_child_keeps_own_value(self, validator, node_factory):
        child = node_factory("a", "10.1.0.0/16", {"Site": "FRA"})

        updates = validator.propagate_to_children({"Site": "AMS", "Env": "Dev"}, [child])

        assert updates == {"a": {"Site": "FRA", "Env": "Dev"}}

    def test_nothing_inheritable(self, validator, node_factory):
        child = node_factory("a", "10.1.0.0/16")

        assert validator.propagate_to_children({"Owner": "ops"}, [child]) == {}
