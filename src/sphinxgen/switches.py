"""Process-wide feature switches for index definition and delta indexing."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from pydantic import BaseModel, ConfigDict


class FeatureSwitches(BaseModel):
    """Mutable switches shared by the registry and the delta controller.

    Attributes:
        define_indexes: Whether index definitions are registered when declared.
        deltas_enabled: Whether delta rebuilds are ever executed.

    Instances are meant to be configured at boot or in test setup; they are not
    synchronized for mutation from concurrent request threads.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    define_indexes: bool = True
    deltas_enabled: bool = True

    @contextmanager
    def temporarily(self, **values: bool) -> Iterator["FeatureSwitches"]:
        """Apply switch values for the duration of a ``with`` block.

        Args:
            **values: Switch names mapped to the values to apply.

        Yields:
            FeatureSwitches: This instance with the temporary values applied.
        """

        previous = {name: getattr(self, name) for name in values}
        for name, value in values.items():
            setattr(self, name, value)
        try:
            yield self
        finally:
            for name, value in previous.items():
                setattr(self, name, value)


__all__ = ["FeatureSwitches"]
