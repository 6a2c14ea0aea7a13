"""Tag definition rules: implication expansion, known values, schema checks."""

from collections.abc import Iterable, Mapping

from ..models.tags import TagAssignment, TagDefinition
from ..utils.exceptions import (
    ImplicationConflictError,
    InvalidTagDefinitionError,
    UnknownTagValueError,
)


def expand_implications(
    definitions: Mapping[str, TagDefinition],
    assignment: TagAssignment,
    existing: Iterable[TagAssignment],
) -> list[TagAssignment]:
    """
    Apply one step of implication expansion for a single assignment.

    Looks up what ``assignment`` implies and returns the implied
    assignments whose tag name is not present yet. The caller iterates
    until no new assignments appear.

    Args:
        definitions: Tag name -> definition for the address space
        assignment: The assignment whose implications are applied
        existing: Assignments already on the node

    Returns:
        New non-inherited assignments, in implication order

    Raises:
        ImplicationConflictError: If an implied value differs from the value
            already assigned to that tag
    """
    definition = definitions.get(assignment.name)
    if definition is None:
        return []

    present = {existing_assignment.name: existing_assignment.value for existing_assignment in existing}
    added: list[TagAssignment] = []

    for implication in definition.implied_by(assignment.value):
        current = present.get(implication.tag)
        if current is None:
            added.append(TagAssignment(implication.tag, implication.value, is_inherited=False))
            present[implication.tag] = implication.value
        elif current != implication.value:
            raise ImplicationConflictError(
                implication.tag, current, implication.value, str(assignment)
            )

    return added


def validate_known_value(definition: TagDefinition, value: str) -> None:
    """
    Check a value against the definition's known values.

    Args:
        definition: Tag definition
        value: Value being assigned

    Raises:
        UnknownTagValueError: If known values are constrained and do not include value
    """
    if definition.is_constrained and value not in definition.known_values:
        raise UnknownTagValueError(definition.name, value, sorted(definition.known_values))


def validate_tag_definition(
    definition: TagDefinition, definitions: Mapping[str, TagDefinition]
) -> None:
    """
    Check a definition's business rules against the rest of the schema.

    Rules:
    - The name is not blank
    - Values that carry implications or attributes are known values
      (when known values are constrained)
    - Every implied tag is defined and Inheritable
    - Every implied value is a known value of the implied tag (when constrained)
    - Attribute names are not blank

    Acyclicity is checked separately by ``validate_acyclic`` since it needs
    the whole schema at once.

    Args:
        definition: Definition being created or updated
        definitions: Tag name -> definition for the address space

    Raises:
        InvalidTagDefinitionError: Listing every broken rule
    """
    problems: list[str] = []

    if not definition.name or not definition.name.strip():
        problems.append("Tag name is required")

    for value, implied in definition.implications.items():
        if definition.is_constrained and value not in definition.known_values:
            problems.append(f"Implication source value '{value}' is not a known value")

        for implication in implied:
            target = definitions.get(implication.tag)
            if target is None:
                problems.append(f"Implied tag '{implication.tag}' does not exist")
                continue
            if not target.is_inheritable:
                problems.append(f"Cannot imply non-inheritable tag '{implication.tag}'")
            if target.is_constrained and implication.value not in target.known_values:
                problems.append(
                    f"Implied value '{implication.value}' for tag '{implication.tag}' "
                    f"is not in known values: {', '.join(sorted(target.known_values))}"
                )

    for value, attributes in definition.attributes.items():
        if definition.is_constrained and value not in definition.known_values:
            problems.append(f"Attributes given for unknown value '{value}'")
        for attribute_name in attributes:
            if not attribute_name or not attribute_name.strip():
                problems.append(f"Attribute name for value '{value}' cannot be empty")

    if problems:
        raise InvalidTagDefinitionError(definition.name, problems)
