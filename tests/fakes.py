"""Test doubles for database connections and the indexer binary."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from sphinxgen.config import DatabaseOptions, SphinxgenConfig
from sphinxgen.indexer import IndexerRunner


class FakeConnection:
    """Records statements and returns canned rows."""

    def __init__(
        self,
        rows: list[Mapping[str, Any]] | None = None,
        execute_error: Exception | None = None,
    ) -> None:
        self.rows = rows or []
        self.execute_error = execute_error
        self.queries: list[str] = []
        self.executed: list[str] = []

    def query(self, sql: str) -> list[Mapping[str, Any]]:
        self.queries.append(sql)
        return self.rows

    def execute(self, sql: str) -> None:
        self.executed.append(sql)
        if self.execute_error is not None:
            raise self.execute_error


class FakeRunner(IndexerRunner):
    """Indexer runner that records calls instead of spawning processes."""

    def __init__(self, returncode: int = 0, stderr: str = "", error: OSError | None = None) -> None:
        super().__init__("indexer")
        self.returncode = returncode
        self.stderr = stderr
        self.error = error
        self.calls: list[tuple[Path, list[str], bool]] = []

    def run(
        self, config_file: Path, index_names: Sequence[str], *, rotate: bool = True
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append((config_file, list(index_names), rotate))
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(
            args=self.command(config_file, index_names, rotate=rotate),
            returncode=self.returncode,
            stdout="",
            stderr=self.stderr,
        )


def write_database_yaml(
    app_root: Path, environments: Mapping[str, Mapping[str, Any]] | None = None
) -> DatabaseOptions:
    """Write ``config/database.yaml`` under ``app_root`` and return its provider."""

    if environments is None:
        environments = {"development": {"option": "value"}}
    path = app_root / "config" / "database.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(dict(environments)), encoding="utf-8")
    return DatabaseOptions(path)


def make_config(app_root: Path, **overrides: Any) -> SphinxgenConfig:
    """Return a development config rooted at ``app_root``."""

    return SphinxgenConfig(app_root=app_root, **overrides)
