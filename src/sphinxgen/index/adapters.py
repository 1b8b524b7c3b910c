"""SQL dialect differences between the supported storage adapters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

AdapterName = Literal["mysql", "postgres"]


@dataclass(frozen=True, slots=True)
class Dialect:
    """SQL fragments that differ per storage adapter.

    Attributes:
        source_type: Value of the ``type`` setting in a source block.
        quote_char: Identifier quote character.
        true_literal: Literal compared against the delta column for dirty records.
        false_literal: Literal written when the delta flag is reset.
    """

    source_type: str
    quote_char: str
    true_literal: str
    false_literal: str

    def quote(self, identifier: str) -> str:
        """Quote a possibly dotted identifier; SQL expressions pass through."""
        if "(" in identifier or " " in identifier:
            return identifier
        return ".".join(
            f"{self.quote_char}{part}{self.quote_char}" for part in identifier.split(".")
        )

    def concatenate(self, expression: str) -> str:
        """Return an aggregate joining all values of ``expression`` with spaces."""
        if self.source_type == "mysql":
            return f"CAST(GROUP_CONCAT(DISTINCT {expression} SEPARATOR ' ') AS CHAR)"
        return f"array_to_string(array_accum({expression}), ' ')"

    def timestamp(self, expression: str) -> str:
        """Return ``expression`` converted to a UNIX timestamp."""
        if self.source_type == "mysql":
            return f"UNIX_TIMESTAMP({expression})"
        return f"cast(extract(epoch from {expression}) as int)"


DIALECTS: dict[str, Dialect] = {
    "mysql": Dialect(source_type="mysql", quote_char="`", true_literal="1", false_literal="0"),
    "postgres": Dialect(
        source_type="pgsql", quote_char='"', true_literal="TRUE", false_literal="FALSE"
    ),
}


__all__ = ["AdapterName", "Dialect", "DIALECTS"]
