"""Registry of indexed entities and their index definitions."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sphinxgen.index import IndexDefinition
from sphinxgen.switches import FeatureSwitches

LOGGER = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when entities cannot be looked up or discovered."""


@dataclass(slots=True)
class IndexedEntity:
    """A named record type and its ordered index definitions.

    Attributes:
        name: Unqualified entity name, e.g. ``Person``.
        definitions: Definitions in ordinal order.
    """

    name: str
    definitions: list[IndexDefinition] = field(default_factory=list)

    @property
    def lowercase_name(self) -> str:
        return self.name.lower()

    @property
    def has_delta(self) -> bool:
        """Return whether any definition tracks deltas."""
        return any(definition.delta for definition in self.definitions)

    @property
    def prefix_fields(self) -> list[str]:
        return [name for definition in self.definitions for name in definition.prefix_fields]

    @property
    def infix_fields(self) -> list[str]:
        return [name for definition in self.definitions for name in definition.infix_fields]


class EntityRegistry:
    """Ordered registry of indexed entities.

    Entity modules call :meth:`define_index` at import time; the registry honours
    the ``define_indexes`` switch it was constructed with.
    """

    def __init__(self, switches: FeatureSwitches | None = None) -> None:
        self.switches = switches or FeatureSwitches()
        self._entities: dict[str, IndexedEntity] = {}

    def define_index(
        self, entity_name: str, definition: IndexDefinition
    ) -> Optional[IndexDefinition]:
        """Register ``definition`` for ``entity_name``.

        Args:
            entity_name: Entity the definition belongs to.
            definition: Index definition to append after existing ones.

        Returns:
            Optional[IndexDefinition]: The registered definition, or ``None`` when
            index definition is switched off.

        Raises:
            RegistryError: If the definition declares a different entity.
        """

        if definition.entity.lower() != entity_name.lower():
            raise RegistryError(
                f"Index for '{entity_name}' declares entity '{definition.entity}'."
            )
        if not self.switches.define_indexes:
            LOGGER.debug("Index definition disabled; ignoring index for %s.", entity_name)
            return None
        entity = self._entities.setdefault(entity_name, IndexedEntity(name=entity_name))
        entity.definitions.append(definition)
        return definition

    def entities(self) -> list[IndexedEntity]:
        """Return registered entities in registration order."""
        return list(self._entities.values())

    def names(self) -> list[str]:
        return list(self._entities)

    def get(self, name: str) -> IndexedEntity:
        """Return the entity called ``name`` (case-insensitive).

        Raises:
            RegistryError: If no such entity is registered.
        """
        for entity in self._entities.values():
            if entity.name == name or entity.lowercase_name == name.lower():
                return entity
        raise RegistryError(f"No indexed entity named '{name}'.")

    def load_modules(self, module_paths: Iterable[str]) -> None:
        """Import modules that register index definitions on import.

        Raises:
            RegistryError: If a module cannot be imported.
        """
        for path in module_paths:
            try:
                importlib.import_module(path)
            except ImportError as exc:
                raise RegistryError(f"Unable to import entity module '{path}': {exc}") from exc
            LOGGER.debug("Loaded entity module %s.", path)

    def clear(self) -> None:
        self._entities.clear()


default_registry = EntityRegistry()


def define_index(entity_name: str, definition: IndexDefinition) -> Optional[IndexDefinition]:
    """Register a definition on the default registry."""
    return default_registry.define_index(entity_name, definition)


__all__ = [
    "EntityRegistry",
    "IndexedEntity",
    "RegistryError",
    "default_registry",
    "define_index",
]
