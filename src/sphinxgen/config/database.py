"""Environment-keyed database options used when rendering sources."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import DatabaseConfigError


class DatabaseOptions:
    """Read connection options for each environment from ``database.yaml``.

    The file maps environment names to option mappings::

        development:
          adapter: mysql
          host: localhost
          username: app
          database: app_development
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return the options file location."""
        return self._path

    def for_environment(self, environment: str) -> dict[str, Any]:
        """Return the options for ``environment``.

        Args:
            environment: Environment name to look up.

        Returns:
            dict[str, Any]: Option names mapped to their values.

        Raises:
            DatabaseConfigError: If the file is missing, unparseable, or has no
                mapping for the environment.
        """
        if not self._path.exists():
            raise DatabaseConfigError(f"No database configuration found at {self._path}")

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise DatabaseConfigError(f"Failed to parse database configuration: {exc}") from exc

        if not isinstance(raw, dict):
            raise DatabaseConfigError("Database configuration must contain a mapping at the top level.")

        options = raw.get(environment)
        if not isinstance(options, dict):
            raise DatabaseConfigError(
                f"Database configuration has no settings for environment '{environment}'."
            )
        return {str(key): value for key, value in options.items()}


__all__ = ["DatabaseOptions"]
