"""Invocation of the external indexer binary."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Sequence

LOGGER = logging.getLogger(__name__)


class IndexerRunner:
    """Build and run ``indexer`` command lines.

    Runs are blocking and have no timeout; the indexer serializes its own work.
    """

    def __init__(self, binary: str = "indexer") -> None:
        self.binary = binary

    def command(
        self,
        config_file: Path,
        index_names: Sequence[str] = (),
        *,
        rotate: bool = True,
        all_indexes: bool = False,
    ) -> list[str]:
        """Return the argument vector for an indexer run.

        Args:
            config_file: Generated configuration file.
            index_names: Indexes to build; ignored when ``all_indexes`` is set.
            rotate: Hot-swap rebuilt indexes into a running daemon.
            all_indexes: Build every index in the configuration.
        """
        args = [self.binary, "--config", str(config_file)]
        if all_indexes:
            args.append("--all")
        if rotate:
            args.append("--rotate")
        if not all_indexes:
            args.extend(index_names)
        return args

    def run(
        self,
        config_file: Path,
        index_names: Sequence[str],
        *,
        rotate: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Build ``index_names`` and wait for the indexer to exit.

        Raises:
            OSError: If the binary cannot be launched.
        """
        return self._execute(self.command(config_file, index_names, rotate=rotate))

    def index_all(
        self, config_file: Path, *, rotate: bool = True
    ) -> subprocess.CompletedProcess[str]:
        """Build every index in ``config_file``."""
        return self._execute(self.command(config_file, rotate=rotate, all_indexes=True))

    def _execute(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        LOGGER.info("Running %s", shlex.join(args))
        return subprocess.run(
            args,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )


__all__ = ["IndexerRunner"]
