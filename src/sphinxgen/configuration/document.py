"""Generated configuration document model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

StanzaKind = Literal["source", "core", "delta", "distributed"]


@dataclass(frozen=True, slots=True)
class Stanza:
    """One rendered block of the configuration document.

    Attributes:
        kind: Block role; ``source`` blocks may hold a core and a delta source.
        name: Source or index name.
        text: Rendered block text.
    """

    kind: StanzaKind
    name: str
    text: str


@dataclass(slots=True)
class ConfigurationDocument:
    """Ordered configuration blocks preceded by the global settings block.

    Attributes:
        settings: Rendered ``indexer`` and ``searchd`` blocks.
        blocks: Source and index blocks, grouped per entity in registry order.
    """

    settings: str
    blocks: list[Stanza] = field(default_factory=list)

    @property
    def sources(self) -> list[Stanza]:
        return [block for block in self.blocks if block.kind == "source"]

    @property
    def stanzas(self) -> list[Stanza]:
        """Return index stanzas in document order."""
        return [block for block in self.blocks if block.kind != "source"]

    def index_names(self) -> list[str]:
        return [stanza.name for stanza in self.stanzas]

    def stanza(self, name: str) -> Stanza:
        """Return the index stanza called ``name``.

        Raises:
            KeyError: If the document has no such index.
        """
        for stanza in self.stanzas:
            if stanza.name == name:
                return stanza
        raise KeyError(name)

    def render(self) -> str:
        """Return the full document text."""
        return "\n".join([self.settings, *(block.text for block in self.blocks)])


__all__ = ["ConfigurationDocument", "Stanza", "StanzaKind"]
