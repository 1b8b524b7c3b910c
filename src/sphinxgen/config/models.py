"""Configuration models describing sphinxgen settings."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sphinxgen.switches import FeatureSwitches


class SphinxgenBaseModel(BaseModel):
    """Shared configuration for sphinxgen Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class SearchdSettings(SphinxgenBaseModel):
    """Daemon and indexer settings rendered into the global settings block.

    Attributes:
        config_file: Location of the generated configuration file.
        searchd_file_path: Directory holding the on-disk index files.
        searchd_log_file: Daemon log location.
        query_log_file: Daemon query log location.
        pid_file: Daemon pid file location.
        port: Port the daemon listens on.
        mem_limit: Indexer memory limit.
        max_matches: Maximum matches returned by the daemon.
        read_timeout: Network read timeout in seconds.
        max_children: Maximum concurrent daemon children.
        indexer_binary: Executable used to build indexes.

    Unset paths are derived from the application root and the environment.
    """

    config_file: Optional[Path] = None
    searchd_file_path: Optional[Path] = None
    searchd_log_file: Optional[Path] = None
    query_log_file: Optional[Path] = None
    pid_file: Optional[Path] = None
    port: int = 3312
    mem_limit: str = "64M"
    max_matches: int = 1_000
    read_timeout: int = 5
    max_children: int = 30
    indexer_binary: str = "indexer"


class IndexSettings(SphinxgenBaseModel):
    """Settings rendered into each core index stanza.

    Attributes:
        charset_type: Character set type, always rendered.
        morphology: Morphology processors; omitted when blank.
        charset_table: Custom charset table; omitted when unset.
        ignore_chars: Characters to ignore; omitted when unset.
        allow_star: Whether wildcard (star) matching is enabled.
    """

    charset_type: str = "utf-8"
    morphology: Optional[str] = "stem_en"
    charset_table: Optional[str] = None
    ignore_chars: Optional[str] = None
    allow_star: bool = False


class LoggingSettings(SphinxgenBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
        file: Log file name, relative to the application log directory.
    """

    level: str = "WARNING"
    max_size_mb: int = 100
    backup_count: int = 5
    file: str = "sphinxgen.log"


class SphinxgenConfig(SphinxgenBaseModel):
    """Top-level configuration struct for sphinxgen.

    Attributes:
        environment: Active environment name.
        app_root: Application root that relative paths resolve against.
        entity_modules: Modules imported to register index definitions.
        test_environments: Environments in which delta rebuilds never run.
        searchd: Daemon and indexer settings.
        index: Index stanza settings.
        switches: Feature switch defaults.
        logging: Logging configuration.
    """

    environment: str = "development"
    app_root: Path = Path(".")
    entity_modules: List[str] = Field(default_factory=list)
    test_environments: List[str] = Field(default_factory=lambda: ["test"])
    searchd: SearchdSettings = Field(default_factory=SearchdSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    switches: FeatureSwitches = Field(default_factory=FeatureSwitches)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def config_file(self) -> Path:
        """Return the path the generated configuration is written to."""
        return self._resolve(self.searchd.config_file, f"config/{self.environment}.sphinx.conf")

    @property
    def searchd_file_path(self) -> Path:
        """Return the directory holding index files."""
        return self._resolve(self.searchd.searchd_file_path, f"db/sphinx/{self.environment}")

    @property
    def searchd_log_file(self) -> Path:
        """Return the daemon log path."""
        return self._resolve(self.searchd.searchd_log_file, "log/searchd.log")

    @property
    def query_log_file(self) -> Path:
        """Return the daemon query log path."""
        return self._resolve(self.searchd.query_log_file, "log/searchd.query.log")

    @property
    def pid_file(self) -> Path:
        """Return the daemon pid file path."""
        return self._resolve(self.searchd.pid_file, f"log/searchd.{self.environment}.pid")

    @property
    def log_dir(self) -> Path:
        """Return the directory that sphinxgen's own log file lives in."""
        return self.app_root / "log"

    @property
    def in_test_environment(self) -> bool:
        """Return whether the active environment suppresses delta rebuilds."""
        return self.environment in self.test_environments

    def _resolve(self, value: Optional[Path], default: str) -> Path:
        path = value if value is not None else Path(default)
        if path.is_absolute():
            return path
        return self.app_root / path


__all__ = [
    "SphinxgenBaseModel",
    "SearchdSettings",
    "IndexSettings",
    "LoggingSettings",
    "SphinxgenConfig",
]
