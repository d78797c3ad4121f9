"""StoryLoom CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from storyloom.config import ConfigError, ProjectConfig, load_project_config
from storyloom.export import export_story, get_exporter, supported_formats
from storyloom.graph import (
    StoryGraphError,
    StoryNavigator,
    convert_authoring_graph,
    load_authoring_project,
    migrate_legacy_story,
)
from storyloom.models.story import nodes_to_dicts
from storyloom.observability import close_file_logging, configure_logging, project_log_file
from storyloom.persistence import StorageError, open_store
from storyloom.persistence.saves import SaveManager

if TYPE_CHECKING:
    from storyloom.graph import LoadedStory, ValidationResult

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="storyloom",
    help="StoryLoom: validate, convert, export and play branching stories.",
    no_args_is_help=True,
)
saves_app = typer.Typer(help="Manage save slots in the project store.", no_args_is_help=True)
app.add_typer(saves_app, name="saves")

console = Console()
err_console = Console(stderr=True)
_project_path: Path = Path()


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option("--log", help="Append JSON-lines logs to {project}/logs/storyloom.jsonl."),
    ] = False,
    project: Annotated[
        Path,
        typer.Option(
            "--project",
            "-p",
            help="Project directory holding storyloom.yaml and the save store.",
            envvar="STORYLOOM_PROJECT",
        ),
    ] = Path(),
) -> None:
    """StoryLoom: validate, convert, export and play branching stories."""
    global _project_path
    _project_path = project

    log_file = project_log_file(project) if log_to_file else None
    configure_logging(verbosity=verbose, log_file=log_file)
    if log_file is not None:
        atexit.register(close_file_logging)
        err_console.print(f"[dim]Logging to {escape(str(log_file))}[/dim]")


def _error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def _load_config() -> ProjectConfig:
    try:
        return load_project_config(_project_path)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(1) from e


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        _error(f"Cannot read {path}: {e}")
        raise typer.Exit(1) from e
    except json.JSONDecodeError as e:
        _error(f"{path} is not valid JSON: {e}")
        raise typer.Exit(1) from e


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {escape(str(output))}")


def _load_story(story_file: Path, *, take_first: bool = False) -> LoadedStory:
    navigator = StoryNavigator(restart_label=_load_config().restart_label)
    try:
        return navigator.load_file(story_file, take_first=take_first)
    except StoryGraphError as e:
        _error(str(e))
        raise typer.Exit(1) from e


def _print_findings(errors: list[str], warnings: list[str], *, out: Console = console) -> None:
    for message in errors:
        out.print(f"  [red]✗[/red] {escape(message)}")
    for message in warnings:
        out.print(f"  [yellow]![/yellow] {escape(message)}")


def _open_saves() -> SaveManager:
    config = _load_config()
    try:
        store = open_store(config.storage, _project_path)
    except StorageError as e:
        _error(str(e))
        raise typer.Exit(1) from e
    return SaveManager.from_config(store, config.saves)


# =============================================================================
# Story commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from storyloom import __version__

    console.print(f"StoryLoom v{__version__}")


@app.command()
def validate(
    story_file: Annotated[Path, typer.Argument(help="Story JSON file (any supported shape).")],
) -> None:
    """Check a story's structure. Exits 1 if it has errors."""
    story = _load_story(story_file, take_first=True)
    result: ValidationResult = story.validate_story()

    if result.is_valid:
        console.print(f"[green]✓[/green] {escape(str(story_file))}: {result.summary}")
    else:
        console.print(f"[red]✗[/red] {escape(str(story_file))}: {result.summary}")
    _print_findings(result.errors, result.warnings)

    if not result.is_valid:
        raise typer.Exit(1)


@app.command()
def stats(
    story_file: Annotated[Path, typer.Argument(help="Story JSON file (any supported shape).")],
    take_first: Annotated[
        bool,
        typer.Option("--take-first", help="Use the first start candidate if there are several."),
    ] = False,
) -> None:
    """Show node, choice and depth statistics."""
    story = _load_story(story_file, take_first=take_first)
    story_stats = story.get_stats()

    table = Table(title=f"Story: {story_file.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold", justify="right")
    table.add_row("Start node", story.start_node_id)
    table.add_row("Nodes", str(story_stats.total_nodes))
    table.add_row("Choices", str(story_stats.total_choices))
    table.add_row("Avg choices / node", f"{story_stats.average_choices_per_node:.2f}")
    table.add_row("Max depth", str(story_stats.max_depth))
    table.add_row("End nodes", str(story_stats.end_nodes))
    console.print(table)


@app.command()
def convert(
    project_file: Annotated[Path, typer.Argument(help="Editor document with nodes and edges.")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the story here instead of stdout."),
    ] = None,
) -> None:
    """Convert an editor document into a canonical story array."""
    config = _load_config()
    payload = _read_json(project_file)
    try:
        project = load_authoring_project(payload)
    except StoryGraphError as e:
        _error(str(e))
        raise typer.Exit(1) from e

    result = convert_authoring_graph(
        project.nodes, project.edges, restart_label=config.restart_label
    )
    if not result.ok:
        console.print(f"[red]✗[/red] Conversion failed with {len(result.errors)} error(s)")
        _print_findings(result.errors, result.warnings)
        raise typer.Exit(1)

    # Story JSON may go to stdout, so findings go to stderr
    _print_findings([], result.warnings, out=err_console)
    _write_output(json.dumps(nodes_to_dicts(result.story), indent=2, ensure_ascii=False), output)


@app.command()
def migrate(
    legacy_file: Annotated[Path, typer.Argument(help="Legacy {id, text, options} story array.")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the story here instead of stdout."),
    ] = None,
) -> None:
    """Migrate a legacy story into the canonical format."""
    payload = _read_json(legacy_file)
    try:
        nodes = migrate_legacy_story(payload)
    except StoryGraphError as e:
        _error(str(e))
        raise typer.Exit(1) from e
    _write_output(json.dumps(nodes_to_dicts(nodes), indent=2, ensure_ascii=False), output)


@app.command("export")
def export_command(
    story_file: Annotated[Path, typer.Argument(help="Story JSON file (any supported shape).")],
    format_name: Annotated[
        str,
        typer.Option("--format", "-f", help=f"Export format: {', '.join(supported_formats())}."),
    ] = "json",
    output_dir: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory to write the export into."),
    ] = Path(),
    minify: Annotated[bool, typer.Option("--minify", help="Compact JSON output.")] = False,
    no_metadata: Annotated[
        bool,
        typer.Option("--no-metadata", help="Leave out the metadata block or header."),
    ] = False,
) -> None:
    """Export a story to another format."""
    try:
        exporter = get_exporter(format_name)
    except ValueError as e:
        _error(str(e))
        raise typer.Exit(1) from e

    story = _load_story(story_file)
    result = export_story(story, exporter, include_metadata=not no_metadata, minify=minify)
    path = result.write(output_dir)
    console.print(
        f"[green]✓[/green] Exported {result.total_nodes} nodes "
        f"({result.file_size} bytes) to {escape(str(path))}"
    )


# =============================================================================
# Save commands
# =============================================================================


@saves_app.command("list")
def saves_list() -> None:
    """List saves, newest first."""
    manager = _open_saves()
    records = manager.list_saves()
    if not records:
        console.print("[dim]No saves.[/dim]")
        return

    table = Table(title="Saves")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Saved", style="bold")
    table.add_column("Node")
    table.add_column("Progress", justify="right")
    for record in records:
        table.add_row(
            record.id,
            escape(record.name),
            record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            record.game_state.current_node_id,
            str(record.story_progress),
        )
    console.print(table)


@saves_app.command("export")
def saves_export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the export here instead of stdout."),
    ] = None,
) -> None:
    """Export every save as a JSON array."""
    _write_output(_open_saves().export_all(), output)


@saves_app.command("import")
def saves_import(
    import_file: Annotated[Path, typer.Argument(help="JSON array written by 'saves export'.")],
) -> None:
    """Import saves. Each gets a new id and timestamp."""
    manager = _open_saves()
    try:
        text = import_file.read_text(encoding="utf-8")
    except OSError as e:
        _error(f"Cannot read {import_file}: {e}")
        raise typer.Exit(1) from e

    try:
        count = asyncio.run(manager.import_all(text))
    except StorageError as e:
        _error(str(e))
        raise typer.Exit(1) from e
    console.print(f"[green]✓[/green] Imported {count} save(s)")


@saves_app.command("delete")
def saves_delete(
    save_id: Annotated[str, typer.Argument(help="Id of the save to delete.")],
) -> None:
    """Delete one save."""
    if not _open_saves().delete(save_id):
        _error(f"No save with id '{save_id}'")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Deleted {escape(save_id)}")


@saves_app.command("stats")
def saves_stats() -> None:
    """Show save count, size and date range."""
    save_stats = _open_saves().stats()

    table = Table(title="Save statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold", justify="right")
    table.add_row("Saves", str(save_stats.total_saves))
    table.add_row("Size (KB)", f"{save_stats.total_size_kb:.2f}")
    table.add_row("Oldest", save_stats.oldest_save.isoformat() if save_stats.oldest_save else "-")
    table.add_row("Newest", save_stats.newest_save.isoformat() if save_stats.newest_save else "-")
    console.print(table)
