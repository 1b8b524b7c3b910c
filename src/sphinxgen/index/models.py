"""Index definition models and source block rendering."""

from __future__ import annotations

from typing import Any, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from sphinxgen.stanza import render_stanza, setting

from .adapters import DIALECTS, AdapterName, Dialect

AttributeKind = Literal["uint", "bool", "timestamp", "float", "str2ordinal"]


class IndexField(BaseModel):
    """A full-text field.

    Attributes:
        column: Column name, dotted ``table.column`` reference, or SQL expression.
        alias: Field name in the index; defaults to the last column segment.
        prefix: Whether the field requires prefix matching.
        infix: Whether the field requires infix matching.
        aggregate: Whether values come from a one-to-many join and are concatenated.
    """

    model_config = ConfigDict(extra="forbid")

    column: str
    alias: Optional[str] = None
    prefix: bool = False
    infix: bool = False
    aggregate: bool = False

    @property
    def name(self) -> str:
        return self.alias or self.column.split(".")[-1]


class IndexAttribute(BaseModel):
    """A filterable or sortable attribute stored alongside documents."""

    model_config = ConfigDict(extra="forbid")

    column: str
    alias: Optional[str] = None
    kind: AttributeKind = "uint"

    @property
    def name(self) -> str:
        return self.alias or self.column.split(".")[-1]


class IndexOptions(BaseModel):
    """Per-definition overrides.

    Attributes:
        morphology: Replaces the global morphology for the entity's core index.
        group_concat_max_len: Session ``group_concat_max_len`` for MySQL sources.
    """

    model_config = ConfigDict(extra="forbid")

    morphology: Optional[str] = None
    group_concat_max_len: Optional[int] = None


class IndexDefinition(BaseModel):
    """Declares how one entity's records are fed into the search daemon.

    Attributes:
        entity: Name of the indexed entity.
        table: Table the records are read from.
        primary_key: Primary key column, used as the document id.
        adapter: Storage adapter the source reads through.
        delta: Whether dirty records are tracked in a delta index.
        fields: Full-text fields.
        attributes: Document attributes.
        joins: Raw SQL join clauses appended to the FROM clause.
        conditions: Raw SQL conditions restricting indexed records.
        options: Per-definition overrides.
    """

    model_config = ConfigDict(extra="forbid")

    entity: str
    table: str
    primary_key: str = "id"
    adapter: AdapterName = "mysql"
    delta: bool = False
    fields: List[IndexField] = Field(default_factory=list)
    attributes: List[IndexAttribute] = Field(default_factory=list)
    joins: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    options: IndexOptions = Field(default_factory=IndexOptions)

    @property
    def prefix_fields(self) -> list[str]:
        """Return names of fields flagged for prefix matching, in declaration order."""
        return [field.name for field in self.fields if field.prefix]

    @property
    def infix_fields(self) -> list[str]:
        """Return names of fields flagged for infix matching, in declaration order."""
        return [field.name for field in self.fields if field.infix]

    @property
    def dialect(self) -> Dialect:
        return DIALECTS[self.adapter]

    def source_name(self, ordinal: int, kind: Literal["core", "delta"] = "core") -> str:
        """Return the generated source name, e.g. ``person_0_core``."""
        return f"{self.entity.lower()}_{ordinal}_{kind}"

    def render_source(
        self,
        ordinal: int,
        db_options: Mapping[str, Any],
        charset_type: str,
        *,
        group_by_shortcut: bool = False,
    ) -> str:
        """Render the core source block and, for delta definitions, the delta block.

        Args:
            ordinal: Position of this definition within its entity.
            db_options: Connection options for the active environment.
            charset_type: Charset type of the generated indexes.
            group_by_shortcut: Group MySQL aggregates by primary key alone.

        Returns:
            str: Source blocks separated by a blank line.
        """

        core_name = self.source_name(ordinal, "core")
        blocks = [
            render_stanza(
                f"source {core_name}",
                self._core_lines(db_options, charset_type, group_by_shortcut),
            )
        ]
        if self.delta:
            delta_name = self.source_name(ordinal, "delta")
            blocks.append(
                render_stanza(
                    f"source {delta_name} : {core_name}",
                    self._delta_lines(charset_type, group_by_shortcut),
                )
            )
        return "\n".join(blocks)

    def _core_lines(
        self, db_options: Mapping[str, Any], charset_type: str, group_by_shortcut: bool
    ) -> list[str]:
        dialect = self.dialect
        lines = [
            setting("type", dialect.source_type),
            setting("sql_host", db_options.get("host") or "localhost"),
            setting("sql_user", db_options.get("username") or ""),
            setting("sql_pass", db_options.get("password") or ""),
            setting("sql_db", db_options.get("database") or ""),
        ]
        if db_options.get("port"):
            lines.append(setting("sql_port", db_options["port"]))
        if db_options.get("socket"):
            lines.append(setting("sql_sock", db_options["socket"]))

        lines.extend(self._session_pre_queries(charset_type))
        if self.delta:
            lines.append(
                setting(
                    "sql_query_pre",
                    f"UPDATE {dialect.quote(self.table)} SET {dialect.quote('delta')} = "
                    f"{dialect.false_literal} WHERE {dialect.quote('delta')} = "
                    f"{dialect.true_literal}",
                )
            )
        lines.append(setting("sql_query", self._select(delta=False, shortcut=group_by_shortcut)))
        lines.append(setting("sql_query_range", self._range(delta=False)))
        lines.append(
            setting(
                "sql_query_info",
                f"SELECT * FROM {dialect.quote(self.table)} WHERE {self._primary_key()} = $id",
            )
        )
        for attribute in self.attributes:
            lines.append(setting(f"sql_attr_{attribute.kind}", attribute.name))
        lines.append(setting("sql_attr_uint", "sphinx_internal_id"))
        return lines

    def _delta_lines(self, charset_type: str, group_by_shortcut: bool) -> list[str]:
        # An empty sql_query_pre clears the inherited delta reset.
        return [
            setting("sql_query_pre", ""),
            *self._session_pre_queries(charset_type),
            setting("sql_query", self._select(delta=True, shortcut=group_by_shortcut)),
            setting("sql_query_range", self._range(delta=True)),
        ]

    def _session_pre_queries(self, charset_type: str) -> list[str]:
        if self.adapter != "mysql":
            return []
        lines: list[str] = []
        if charset_type == "utf-8":
            lines.append(setting("sql_query_pre", "SET NAMES utf8"))
        if self.options.group_concat_max_len:
            lines.append(
                setting(
                    "sql_query_pre",
                    f"SET SESSION group_concat_max_len = {self.options.group_concat_max_len}",
                )
            )
        return lines

    def _select(self, *, delta: bool, shortcut: bool) -> str:
        dialect = self.dialect
        primary_key = self._primary_key()
        columns = [primary_key]
        grouped = [primary_key]
        for field in self.fields:
            expression = self._column(field.column)
            if field.aggregate:
                expression = dialect.concatenate(expression)
            else:
                grouped.append(expression)
            columns.append(f"{expression} AS {dialect.quote(field.name)}")
        for attribute in self.attributes:
            expression = self._column(attribute.column)
            grouped.append(expression)
            if attribute.kind == "timestamp":
                expression = dialect.timestamp(expression)
            columns.append(f"{expression} AS {dialect.quote(attribute.name)}")
        columns.append(f"{primary_key} AS {dialect.quote('sphinx_internal_id')}")

        sql = f"SELECT {', '.join(columns)} FROM {dialect.quote(self.table)}"
        if self.joins:
            sql += " " + " ".join(self.joins)
        conditions = [f"{primary_key} >= $start", f"{primary_key} <= $end", *self.conditions]
        if delta:
            conditions.append(self._delta_condition())
        sql += " WHERE " + " AND ".join(conditions)

        if self.joins or any(field.aggregate for field in self.fields):
            if shortcut and self.adapter == "mysql":
                grouped = [primary_key]
            sql += " GROUP BY " + ", ".join(grouped)
        return sql

    def _range(self, *, delta: bool) -> str:
        primary_key = self._primary_key()
        sql = f"SELECT MIN({primary_key}), MAX({primary_key}) FROM {self.dialect.quote(self.table)}"
        if delta:
            sql += f" WHERE {self._delta_condition()}"
        return sql

    def _delta_condition(self) -> str:
        dialect = self.dialect
        return f"{dialect.quote(f'{self.table}.delta')} = {dialect.true_literal}"

    def _primary_key(self) -> str:
        return self.dialect.quote(f"{self.table}.{self.primary_key}")

    def _column(self, column: str) -> str:
        if "(" in column or "." in column:
            return self.dialect.quote(column)
        return self.dialect.quote(f"{self.table}.{column}")


__all__ = [
    "AttributeKind",
    "IndexAttribute",
    "IndexDefinition",
    "IndexField",
    "IndexOptions",
]
