"""Tests for feature switches and their effect on the registry."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sphinxgen.index import IndexDefinition
from sphinxgen.registry import EntityRegistry
from sphinxgen.switches import FeatureSwitches


def test_switches_enabled_by_default() -> None:
    switches = FeatureSwitches()

    assert switches.define_indexes is True
    assert switches.deltas_enabled is True


def test_switches_can_be_toggled() -> None:
    switches = FeatureSwitches()

    switches.define_indexes = False
    switches.deltas_enabled = False
    assert switches.define_indexes is False
    assert switches.deltas_enabled is False

    switches.define_indexes = True
    switches.deltas_enabled = True
    assert switches.define_indexes is True
    assert switches.deltas_enabled is True


def test_switch_assignment_is_validated() -> None:
    with pytest.raises(ValidationError):
        FeatureSwitches().deltas_enabled = "sometimes"  # type: ignore[assignment]


def test_temporarily_restores_previous_values() -> None:
    switches = FeatureSwitches()

    with switches.temporarily(deltas_enabled=False):
        assert switches.deltas_enabled is False

    assert switches.deltas_enabled is True


def test_define_indexes_switch_gates_registration() -> None:
    switches = FeatureSwitches(define_indexes=False)
    registry = EntityRegistry(switches)
    definition = IndexDefinition(entity="Person", table="people")

    assert registry.define_index("Person", definition) is None
    assert registry.entities() == []

    switches.define_indexes = True
    assert registry.define_index("Person", definition) is definition
    assert registry.names() == ["Person"]
