"""Tests for the indexed entity registry."""

from __future__ import annotations

import pytest

from sphinxgen.index import IndexDefinition, IndexField
from sphinxgen.registry import EntityRegistry, IndexedEntity, RegistryError


def _definition(entity: str, delta: bool = False) -> IndexDefinition:
    return IndexDefinition(entity=entity, table=f"{entity.lower()}s", delta=delta)


def test_entities_keep_registration_order() -> None:
    registry = EntityRegistry()
    registry.define_index("Person", _definition("Person"))
    registry.define_index("Friendship", _definition("Friendship"))
    registry.define_index("Person", _definition("Person", delta=True))

    entities = registry.entities()

    assert [entity.name for entity in entities] == ["Person", "Friendship"]
    assert [definition.delta for definition in entities[0].definitions] == [False, True]
    assert entities[0].has_delta
    assert not entities[1].has_delta


def test_get_is_case_insensitive() -> None:
    registry = EntityRegistry()
    registry.define_index("Person", _definition("Person"))

    assert registry.get("person").name == "Person"
    with pytest.raises(RegistryError):
        registry.get("Friendship")


def test_definition_for_another_entity_is_rejected() -> None:
    registry = EntityRegistry()

    with pytest.raises(RegistryError):
        registry.define_index("Person", _definition("People"))

    assert registry.entities() == []


def test_entity_name_match_ignores_case() -> None:
    registry = EntityRegistry()

    registry.define_index("person", _definition("Person"))

    assert registry.get("Person").definitions[0].source_name(0) == "person_0_core"


def test_entity_unions_field_flags_across_definitions() -> None:
    entity = IndexedEntity(
        name="Person",
        definitions=[
            IndexDefinition(
                entity="Person", table="people", fields=[IndexField(column="a", prefix=True)]
            ),
            IndexDefinition(
                entity="Person",
                table="people",
                fields=[IndexField(column="b", prefix=True), IndexField(column="c", infix=True)],
            ),
        ],
    )

    assert entity.lowercase_name == "person"
    assert entity.prefix_fields == ["a", "b"]
    assert entity.infix_fields == ["c"]


def test_load_modules_reports_missing_modules() -> None:
    with pytest.raises(RegistryError):
        EntityRegistry().load_modules(["sphinxgen_tests_missing_module"])


def test_clear_empties_registry() -> None:
    registry = EntityRegistry()
    registry.define_index("Person", _definition("Person"))

    registry.clear()

    assert registry.entities() == []
