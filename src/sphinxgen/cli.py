"""Command line interface for sphinxgen."""

from __future__ import annotations

import difflib
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from sphinxgen.config import ConfigError, ConfigManager, SphinxgenConfig, resolve_with_precedence
from sphinxgen.configuration import ConfigurationAssembler, ConfigurationDocument
from sphinxgen.delta import DeltaController, RebuildOutcome
from sphinxgen.indexer import IndexerRunner
from sphinxgen.logsetup import configure_logging
from sphinxgen.probe import SqlAlchemyConnection
from sphinxgen.registry import RegistryError, default_registry

console = Console()


def _manager(ctx: click.Context) -> ConfigManager:
    return ConfigManager(app_root=ctx.obj["app_root"])


def _load_config(ctx: click.Context) -> SphinxgenConfig:
    """Load the effective configuration and set up logging.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    try:
        config = _manager(ctx).load(cli_overrides=ctx.obj["overrides"] or None)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging, config.log_dir)
    return config


def _load_entities(config: SphinxgenConfig) -> None:
    """Import the configured entity modules into the default registry.

    Raises:
        click.ClickException: If a module cannot be imported.
    """
    root = str(config.app_root.resolve())
    if root not in sys.path:
        sys.path.insert(0, root)
    default_registry.switches = config.switches
    try:
        default_registry.load_modules(config.entity_modules)
    except RegistryError as exc:
        raise click.ClickException(str(exc)) from exc


def _document_table(document: ConfigurationDocument) -> Table:
    table = Table(title="Generated indexes")
    table.add_column("Index")
    table.add_column("Kind")
    for stanza in document.stanzas:
        table.add_row(stanza.name, stanza.kind)
    return table


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="sphinxgen")
@click.option(
    "--app-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Application root holding config/sphinx.yaml and config/database.yaml.",
)
@click.option(
    "-e",
    "--environment",
    type=str,
    help="Environment to build for (defaults to SPHINXGEN_ENV or development).",
)
@click.pass_context
def cli(ctx: click.Context, app_root: Path, environment: str | None) -> None:
    """sphinxgen generates search daemon configuration and maintains delta indexes."""
    ctx.ensure_object(dict)
    ctx.obj["app_root"] = app_root
    ctx.obj["overrides"] = {"environment": environment} if environment else {}


@cli.command()
@click.option(
    "--database-url",
    envvar="SPHINXGEN_DATABASE_URL",
    help="SQLAlchemy URL used for capability probes and PostgreSQL setup.",
)
@click.pass_context
def configure(ctx: click.Context, database_url: str | None) -> None:
    """Write the configuration file for all indexed entities."""
    config = _load_config(ctx)
    _load_entities(config)

    connection = SqlAlchemyConnection.from_url(database_url) if database_url else None
    assembler = ConfigurationAssembler(
        config, _manager(ctx).database_options(), connection=connection
    )
    try:
        document = assembler.build(default_registry.entities())
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    config.searchd_file_path.mkdir(parents=True, exist_ok=True)
    path = assembler.write(document)
    console.print(_document_table(document))
    console.print(f"[green]Wrote {path}.[/green]")


@cli.command()
@click.option("--no-rotate", is_flag=True, help="Do not hot-swap indexes into a running daemon.")
@click.pass_context
def index(ctx: click.Context, no_rotate: bool) -> None:
    """Build every index in the generated configuration."""
    config = _load_config(ctx)
    if not config.config_file.exists():
        raise click.ClickException(
            f"No configuration at {config.config_file}; run `sphinxgen configure` first."
        )

    runner = IndexerRunner(config.searchd.indexer_binary)
    try:
        completed = runner.index_all(config.config_file, rotate=not no_rotate)
    except OSError as exc:
        raise click.ClickException(f"Unable to run indexer: {exc}") from exc

    if completed.stdout:
        console.print(completed.stdout.rstrip())
    if completed.returncode != 0:
        raise click.ClickException(
            f"Indexer exited with status {completed.returncode}: {completed.stderr.strip()}"
        )
    console.print("[green]Indexing complete.[/green]")


@cli.command()
@click.argument("entity")
@click.pass_context
def delta(ctx: click.Context, entity: str) -> None:
    """Rebuild the delta index for ENTITY."""
    config = _load_config(ctx)
    outcomes: list[RebuildOutcome] = []
    controller = DeltaController(config, on_rebuild=outcomes.append)
    controller.rebuild_delta_index(entity)

    outcome = outcomes[0]
    if outcome.skipped:
        console.print(f"[yellow]Skipped {outcome.index_name}: {outcome.skipped}.[/yellow]")
    elif outcome.succeeded:
        console.print(f"[green]Rebuilt {outcome.index_name}.[/green]")
    else:
        detail = outcome.error or f"exit status {outcome.returncode}"
        console.print(f"[yellow]Rebuild of {outcome.index_name} failed: {escape(detail)}[/yellow]")


@cli.command()
@click.pass_context
def switches(ctx: click.Context) -> None:
    """Show the effective feature switches."""
    config = _load_config(ctx)
    table = Table(title="Feature switches")
    table.add_column("Switch")
    table.add_column("Enabled")
    for name, value in config.switches.model_dump().items():
        table.add_row(name, "yes" if value else "no")
    console.print(table)


@cli.group()
def config() -> None:
    """Manage sphinxgen configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = _manager(ctx)
    try:
        config = manager.load(include_env=not no_env, ensure_file=True)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = _manager(ctx)
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'index.allow_star'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=SphinxgenConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = list(
        difflib.unified_diff(
            before, after, fromfile="sphinx.yaml (before)", tofile="sphinx.yaml (after)", lineterm=""
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the configuration file in an interactive editor session."""
    manager = _manager(ctx)
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None or edited == original:
        console.print("[yellow]No changes applied.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=SphinxgenConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
