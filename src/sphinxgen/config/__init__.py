"""Configuration management for sphinxgen."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .database import DatabaseOptions
from .exceptions import ConfigError, DatabaseConfigError
from .models import IndexSettings, LoggingSettings, SearchdSettings, SphinxgenConfig
from .resolver import environment_overrides, flatten_for_env, resolve_with_precedence

CONFIG_RELATIVE_PATH = Path("config/sphinx.yaml")
DATABASE_RELATIVE_PATH = Path("config/database.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # sphinxgen configuration file
    # Manage via `sphinxgen config edit` or `sphinxgen config set`.
    """
)
# Populated by ConfigManager from the app root and SPHINXGEN_ENV, never persisted.
_RUNTIME_KEYS = {"app_root", "environment"}


class ConfigManager:
    """Load and persist configuration for one application root."""

    def __init__(
        self,
        app_root: Path | None = None,
        *,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._app_root = (app_root or Path.cwd()).expanduser()
        self._config_path = (config_path or self._app_root / CONFIG_RELATIVE_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def app_root(self) -> Path:
        """Return the application root."""
        return self._app_root

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = False,
        env_overrides: Mapping[str, str] | None = None,
    ) -> SphinxgenConfig:
        """Load configuration, applying defaults < file < environment < CLI."""
        if ensure_file:
            self.ensure_exists()

        env_data: dict[str, Any] | None = None
        if include_env:
            env_data = environment_overrides(
                env_overrides if env_overrides is not None else self._env
            )

        defaults = SphinxgenConfig(app_root=self._app_root)
        return resolve_with_precedence(
            defaults=defaults,
            file_overrides=self._read_file(),
            env_overrides=env_data,
            cli_overrides=cli_overrides,
        )

    def database_options(self) -> DatabaseOptions:
        """Return the database options provider for this application root."""
        return DatabaseOptions(self._app_root / DATABASE_RELATIVE_PATH)

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: SphinxgenConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if isinstance(config, SphinxgenConfig):
            data = config.model_dump(mode="json", exclude=_RUNTIME_KEYS)
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self.save(SphinxgenConfig())
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            _CONFIG_HEADER + f"# Last updated: {stamp}\n" + serialized, encoding="utf-8"
        )


__all__ = [
    "ConfigManager",
    "ConfigError",
    "DatabaseConfigError",
    "DatabaseOptions",
    "IndexSettings",
    "LoggingSettings",
    "SearchdSettings",
    "SphinxgenConfig",
    "environment_overrides",
    "flatten_for_env",
    "resolve_with_precedence",
]
