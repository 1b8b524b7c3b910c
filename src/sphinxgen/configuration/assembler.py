"""Assembly of the search daemon configuration from indexed entities."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Iterable

from sphinxgen.config import DatabaseOptions, SphinxgenConfig
from sphinxgen.probe import DatabaseConnection, create_array_accum, use_group_by_shortcut
from sphinxgen.registry import IndexedEntity
from sphinxgen.stanza import render_stanza, setting, source_references

from .document import ConfigurationDocument, Stanza

LOGGER = logging.getLogger(__name__)


class ConfigurationAssembler:
    """Build the configuration document for a set of indexed entities.

    Each entity yields its source blocks, a core index, an optional delta index,
    and a distributed index combining them.
    """

    def __init__(
        self,
        config: SphinxgenConfig,
        database_options: DatabaseOptions,
        *,
        connection: DatabaseConnection | None = None,
    ) -> None:
        self.config = config
        self.database_options = database_options
        self.connection = connection

    def build(self, entities: Iterable[IndexedEntity]) -> ConfigurationDocument:
        """Render the configuration document.

        Args:
            entities: Indexed entities in registry order.

        Returns:
            ConfigurationDocument: The rendered document.

        Raises:
            DatabaseConfigError: If no database options exist for the environment.
        """

        entities = [entity for entity in entities if entity.definitions]
        db_options = self.database_options.for_environment(self.config.environment)
        charset_type = self.config.index.charset_type
        shortcut = self._group_by_shortcut(entities)

        blocks: list[Stanza] = []
        uses_postgres = False
        for entity in entities:
            sources: list[str] = []
            delta_sources: list[str] = []
            for ordinal, definition in enumerate(entity.definitions):
                text = definition.render_source(
                    ordinal, db_options, charset_type, group_by_shortcut=shortcut
                )
                core_source = definition.source_name(ordinal, "core")
                blocks.append(Stanza("source", core_source, text))
                sources.append(core_source)
                if definition.delta:
                    delta_sources.append(definition.source_name(ordinal, "delta"))
                uses_postgres = uses_postgres or definition.adapter == "postgres"

            name = entity.lowercase_name
            blocks.append(
                Stanza(
                    "core",
                    f"{name}_core",
                    self.core_index_for_entity(entity, source_references(sources)),
                )
            )
            if delta_sources:
                blocks.append(
                    Stanza(
                        "delta",
                        f"{name}_delta",
                        self.delta_index_for_entity(entity, source_references(delta_sources)),
                    )
                )
            blocks.append(Stanza("distributed", name, self.distributed_index_for_entity(entity)))

        if uses_postgres:
            self.create_array_accum()

        LOGGER.info(
            "Assembled configuration for %d entities (%d blocks).", len(entities), len(blocks)
        )
        return ConfigurationDocument(settings=self.settings_block(), blocks=blocks)

    def build_and_write(self, entities: Iterable[IndexedEntity], path: Path | None = None) -> Path:
        """Build the document and write it; nothing is written if the build fails."""
        document = self.build(entities)
        self.config.searchd_file_path.mkdir(parents=True, exist_ok=True)
        return self.write(document, path)

    def write(self, document: ConfigurationDocument, path: Path | None = None) -> Path:
        """Atomically write ``document`` to ``path`` or the configured file.

        Returns:
            Path: Location of the written file.
        """
        target = path or self.config.config_file
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document.render())
            os.chmod(temp_name, _file_mode(target))
            os.replace(temp_name, target)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        LOGGER.info("Wrote configuration to %s.", target)
        return target

    def settings_block(self) -> str:
        """Render the ``indexer`` and ``searchd`` blocks."""
        searchd = self.config.searchd
        indexer = render_stanza("indexer", [setting("mem_limit", searchd.mem_limit)])
        daemon = render_stanza(
            "searchd",
            [
                setting("port", searchd.port),
                setting("log", self.config.searchd_log_file),
                setting("query_log", self.config.query_log_file),
                setting("read_timeout", searchd.read_timeout),
                setting("max_children", searchd.max_children),
                setting("pid_file", self.config.pid_file),
                setting("max_matches", searchd.max_matches),
            ],
        )
        return indexer + "\n" + daemon

    def core_index_for_entity(self, entity: IndexedEntity, sources: str) -> str:
        """Render the core index stanza.

        Args:
            entity: Entity being indexed.
            sources: Newline-separated ``source = ...`` reference lines.
        """
        settings = self.config.index
        name = f"{entity.lowercase_name}_core"
        lines = [
            sources,
            setting("path", self.config.searchd_file_path / name),
            setting("charset_type", settings.charset_type),
        ]

        morphology = settings.morphology
        for definition in entity.definitions:
            morphology = definition.options.morphology or morphology
        if morphology:
            lines.append(setting("morphology", morphology))
        if settings.charset_table is not None:
            lines.append(setting("charset_table", settings.charset_table))
        if settings.ignore_chars is not None:
            lines.append(setting("ignore_chars", settings.ignore_chars))
        if settings.allow_star:
            lines.append(setting("enable_star", 1))
            lines.append(setting("min_prefix_len", 1))
            lines.append(setting("min_infix_len", 1))

        prefix_fields = entity.prefix_fields
        if prefix_fields:
            lines.append(setting("prefix_fields", ", ".join(prefix_fields)))
        infix_fields = entity.infix_fields
        if infix_fields:
            lines.append(setting("infix_fields", ", ".join(infix_fields)))

        return render_stanza(f"index {name}", lines)

    def delta_index_for_entity(self, entity: IndexedEntity, sources: str) -> str:
        """Render the delta index stanza, inheriting from the core index."""
        name = entity.lowercase_name
        return render_stanza(
            f"index {name}_delta : {name}_core",
            [sources, setting("path", self.config.searchd_file_path / f"{name}_delta")],
        )

    def distributed_index_for_entity(self, entity: IndexedEntity) -> str:
        """Render the distributed index presenting core and delta as one index."""
        name = entity.lowercase_name
        lines = [setting("type", "distributed"), setting("local", f"{name}_core")]
        if entity.has_delta:
            lines.append(setting("local", f"{name}_delta"))
        return render_stanza(f"index {name}", lines)

    def create_array_accum(self) -> None:
        """Ensure the PostgreSQL ``array_accum`` aggregate exists."""
        if self.connection is None:
            LOGGER.warning("No database connection; skipping array_accum setup.")
            return
        create_array_accum(self.connection)

    def _group_by_shortcut(self, entities: list[IndexedEntity]) -> bool:
        if self.connection is None:
            return False
        uses_mysql = any(
            definition.adapter == "mysql"
            for entity in entities
            for definition in entity.definitions
        )
        return uses_mysql and use_group_by_shortcut(self.connection)


def _file_mode(target: Path) -> int:
    """Return the existing file's permissions, or the umask-derived default."""
    if target.exists():
        return stat.S_IMODE(target.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


__all__ = ["ConfigurationAssembler"]
