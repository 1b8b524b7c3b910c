"""Tests for delta lifecycle hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pytest

from sphinxgen.config import SphinxgenConfig
from sphinxgen.delta import DeltaController, RebuildOutcome, entity_name_for
from sphinxgen.switches import FeatureSwitches
from tests.fakes import FakeRunner


@dataclass
class Person:
    name: str
    delta: bool = False


@dataclass
class LegacyRecord:
    entity_name: str
    delta: bool = False


def _controller(
    tmp_path: Path,
    *,
    environment: str = "development",
    switches: FeatureSwitches | None = None,
    runner: FakeRunner | None = None,
) -> tuple[DeltaController, FakeRunner, list[RebuildOutcome]]:
    runner = runner or FakeRunner()
    outcomes: list[RebuildOutcome] = []
    config = SphinxgenConfig(app_root=tmp_path, environment=environment)
    controller = DeltaController(config, switches, runner=runner, on_rebuild=outcomes.append)
    return controller, runner, outcomes


def test_mark_dirty_sets_delta_flag(tmp_path: Path) -> None:
    controller, runner, _ = _controller(tmp_path)
    person = Person(name="Pat")

    controller.mark_dirty(person)

    assert person.delta is True
    assert runner.calls == []


def test_rebuild_runs_indexer_with_rotate(tmp_path: Path) -> None:
    controller, runner, outcomes = _controller(tmp_path)

    assert controller.rebuild_delta_index("Person") is True

    assert runner.calls == [
        (tmp_path / "config" / "development.sphinx.conf", ["person_delta"], True)
    ]
    assert outcomes[0].succeeded
    assert outcomes[0].returncode == 0


def test_rebuild_command_line(tmp_path: Path) -> None:
    runner = FakeRunner()
    config_file = tmp_path / "config" / "development.sphinx.conf"

    assert runner.command(config_file, ["person_delta"]) == [
        "indexer",
        "--config",
        str(config_file),
        "--rotate",
        "person_delta",
    ]


def test_rebuild_skipped_in_test_environment(tmp_path: Path) -> None:
    controller, runner, outcomes = _controller(tmp_path, environment="test")

    assert controller.rebuild_delta_index("Person") is True

    assert runner.calls == []
    assert outcomes[0].skipped == "test_environment"


def test_rebuild_skipped_when_deltas_disabled(tmp_path: Path) -> None:
    switches = FeatureSwitches(deltas_enabled=False)
    controller, runner, outcomes = _controller(tmp_path, switches=switches)

    assert controller.rebuild_delta_index("Person") is True

    assert runner.calls == []
    assert outcomes[0].skipped == "deltas_disabled"


def test_switch_changes_take_effect_immediately(tmp_path: Path) -> None:
    switches = FeatureSwitches()
    controller, runner, _ = _controller(tmp_path, switches=switches)

    switches.deltas_enabled = False
    controller.rebuild_delta_index("Person")
    switches.deltas_enabled = True
    controller.rebuild_delta_index("Person")

    assert len(runner.calls) == 1


def test_failed_indexer_still_reports_success(tmp_path: Path) -> None:
    runner = FakeRunner(returncode=1, stderr="FATAL: no such index\n")
    controller, _, outcomes = _controller(tmp_path, runner=runner)

    assert controller.rebuild_delta_index("Person") is True

    assert not outcomes[0].succeeded
    assert outcomes[0].returncode == 1
    assert outcomes[0].error == "FATAL: no such index"


def test_missing_indexer_binary_still_reports_success(tmp_path: Path) -> None:
    runner = FakeRunner(error=FileNotFoundError("indexer"))
    controller, _, outcomes = _controller(tmp_path, runner=runner)

    assert controller.rebuild_delta_index("Person") is True

    assert outcomes[0].returncode is None
    assert outcomes[0].error == "indexer"


def test_failing_rebuild_hook_is_logged_not_raised(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_hook(outcome: RebuildOutcome) -> None:
        raise RuntimeError("hook exploded")

    config = SphinxgenConfig(app_root=tmp_path)
    runner = FakeRunner()
    controller = DeltaController(config, runner=runner, on_rebuild=broken_hook)

    with caplog.at_level(logging.ERROR, logger="sphinxgen.delta"):
        assert controller.rebuild_delta_index("Person") is True

    assert len(runner.calls) == 1
    assert "Rebuild hook failed for person_delta" in caplog.text


def test_concurrent_requests_are_not_coalesced(tmp_path: Path) -> None:
    controller, runner, _ = _controller(tmp_path)

    controller.rebuild_delta_index("Person")
    controller.rebuild_delta_index("Person")

    assert len(runner.calls) == 2


def test_save_hooks_mark_and_rebuild(tmp_path: Path) -> None:
    controller, runner, _ = _controller(tmp_path)
    person = Person(name="Pat")

    controller.before_save(person)
    controller.after_save(person)

    assert person.delta is True
    assert runner.calls[0][1] == ["person_delta"]


def test_entity_name_prefers_explicit_attribute() -> None:
    assert entity_name_for(Person(name="Pat")) == "Person"
    assert entity_name_for(LegacyRecord(entity_name="Friendship")) == "Friendship"


def test_controller_defaults_to_config_switches(tmp_path: Path) -> None:
    config = SphinxgenConfig(app_root=tmp_path, switches={"deltas_enabled": False})
    runner = FakeRunner()

    DeltaController(config, runner=runner).rebuild_delta_index("Person")

    assert runner.calls == []
