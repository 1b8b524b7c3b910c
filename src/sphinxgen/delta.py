"""Record lifecycle hooks that keep delta indexes current."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

from sphinxgen.config import SphinxgenConfig
from sphinxgen.indexer import IndexerRunner
from sphinxgen.switches import FeatureSwitches

LOGGER = logging.getLogger(__name__)

SkipReason = Literal["test_environment", "deltas_disabled"]


@dataclass(slots=True)
class RebuildOutcome:
    """What happened when a delta rebuild was requested.

    Attributes:
        entity_name: Entity whose delta index was requested.
        index_name: Delta index name, e.g. ``person_delta``.
        skipped: Why no indexer ran, if it did not.
        returncode: Indexer exit status when it ran.
        error: Launch error or indexer stderr for failed runs.
    """

    entity_name: str
    index_name: str
    skipped: Optional[SkipReason] = None
    returncode: Optional[int] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.skipped is None and self.error is None and self.returncode == 0


def entity_name_for(record: Any) -> str:
    """Return the entity name for ``record``: its ``entity_name`` or class name."""
    return getattr(record, "entity_name", None) or type(record).__name__


class DeltaController:
    """Mark records dirty and rebuild their entity's delta index.

    Rebuilds never report failure to the caller: a failed or unlaunchable
    indexer is logged and passed to ``on_rebuild``, and the call still returns
    ``True``. Concurrent requests for the same entity are not coalesced.
    """

    def __init__(
        self,
        config: SphinxgenConfig,
        switches: FeatureSwitches | None = None,
        *,
        runner: IndexerRunner | None = None,
        on_rebuild: Callable[[RebuildOutcome], None] | None = None,
    ) -> None:
        self.config = config
        self.switches = switches if switches is not None else config.switches
        self.runner = runner or IndexerRunner(config.searchd.indexer_binary)
        self.on_rebuild = on_rebuild

    def mark_dirty(self, record: Any) -> None:
        """Flag ``record`` for inclusion in the next delta index."""
        record.delta = True

    def rebuild_delta_index(self, entity_name: str) -> bool:
        """Rebuild and rotate the delta index for ``entity_name``.

        Args:
            entity_name: Entity whose delta index should be rebuilt.

        Returns:
            bool: Always ``True``.
        """

        outcome = RebuildOutcome(entity_name=entity_name, index_name=f"{entity_name.lower()}_delta")
        if self.config.in_test_environment:
            outcome.skipped = "test_environment"
        elif not self.switches.deltas_enabled:
            outcome.skipped = "deltas_disabled"

        if outcome.skipped:
            LOGGER.debug("Skipping %s rebuild (%s).", outcome.index_name, outcome.skipped)
        else:
            self._run(outcome)

        if self.on_rebuild is not None:
            try:
                self.on_rebuild(outcome)
            except Exception:
                LOGGER.exception("Rebuild hook failed for %s.", outcome.index_name)
        return True

    def before_save(self, record: Any) -> None:
        """Hook for record creation and update, before persisting."""
        self.mark_dirty(record)

    def after_save(self, record: Any) -> bool:
        """Hook for record creation and update, after persisting."""
        return self.rebuild_delta_index(entity_name_for(record))

    def _run(self, outcome: RebuildOutcome) -> None:
        try:
            completed = self.runner.run(
                self.config.config_file, [outcome.index_name], rotate=True
            )
        except OSError as exc:
            outcome.error = str(exc)
            LOGGER.warning("Unable to launch indexer for %s: %s", outcome.index_name, exc)
            return

        outcome.returncode = completed.returncode
        if completed.returncode != 0:
            outcome.error = (completed.stderr or "").strip() or None
            LOGGER.warning(
                "Indexer exited with status %s while rebuilding %s.",
                completed.returncode,
                outcome.index_name,
            )
        else:
            LOGGER.info("Rebuilt %s.", outcome.index_name)


__all__ = ["DeltaController", "RebuildOutcome", "entity_name_for"]
