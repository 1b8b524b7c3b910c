"""Index definitions and source rendering."""

from .adapters import DIALECTS, AdapterName, Dialect
from .models import IndexAttribute, IndexDefinition, IndexField, IndexOptions

__all__ = [
    "AdapterName",
    "DIALECTS",
    "Dialect",
    "IndexAttribute",
    "IndexDefinition",
    "IndexField",
    "IndexOptions",
]
