"""Search daemon configuration assembly."""

from .assembler import ConfigurationAssembler
from .document import ConfigurationDocument, Stanza

__all__ = ["ConfigurationAssembler", "ConfigurationDocument", "Stanza"]
