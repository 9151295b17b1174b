import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import typer
from rich import print as rprint
from rich.console import Console
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from bedside_scales.config import Settings, load_settings
from bedside_scales.core.catalog import ScaleCatalog, load_catalog
from bedside_scales.core.errors import (
    DefinitionError,
    PersistenceFailure,
    PreconditionViolation,
    ScaleNotFoundError,
)
from bedside_scales.core.models import (
    SaveContext,
    ScaleDefinition,
    ScoreResult,
    Severity,
    StoredResult,
)
from bedside_scales.core.scoring import ScaleInstance, evaluate
from bedside_scales.storage import JsonFileResultStore, ResultStore
from bedside_scales.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Bedside clinical scales: score observations and review saved results.")
console = Console()

SEVERITY_STYLES = {
    Severity.LOW: "green",
    Severity.MODERATE: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "bold red",
}


def default_store_factory(settings: Settings) -> ResultStore:
    return JsonFileResultStore(settings.store_path)


# Replaced in tests to run the commands against another store.
store_factory: Callable[[Settings], ResultStore] = default_store_factory


class AppContext:
    """Catalog and store shared by the commands of one invocation."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._catalog: Optional[ScaleCatalog] = None
        self._store: Optional[ResultStore] = None

    @property
    def catalog(self) -> ScaleCatalog:
        if self._catalog is None:
            self._catalog = load_catalog(self.settings.catalog_path)
        return self._catalog

    @property
    def store(self) -> ResultStore:
        if self._store is None:
            self._store = store_factory(self.settings).open()
        return self._store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None


def _fail(message: str) -> None:
    rprint(f"[bold red]:x: {message}[/bold red]")
    raise typer.Exit(code=1)


def _scale(ctx: typer.Context, scale_id: str) -> ScaleDefinition:
    try:
        return ctx.obj.catalog.get(scale_id)
    except ScaleNotFoundError as e:
        _fail(f"{e}. Run 'scales' to list the available scales.")


def _store(ctx: typer.Context) -> ResultStore:
    try:
        return ctx.obj.store
    except PersistenceFailure as e:
        _fail(f"Result store unavailable: {e}")


def parse_selection(raw: str) -> Tuple[str, int]:
    """Parse a ``key=value`` selection from the command line."""
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected key=value, got '{raw}'")
    try:
        return key, int(value.strip())
    except ValueError:
        raise ValueError(f"Value for '{key}' must be an integer, got '{value.strip()}'") from None


def _severity_text(result: ScoreResult) -> str:
    style = SEVERITY_STYLES[result.severity]
    return f"[{style}]{result.interpretation_label}[/{style}]"


def _print_result(definition: ScaleDefinition, result: ScoreResult) -> None:
    maximum = f"/{definition.max_score}" if definition.max_score else ""
    table = Table(title=definition.display_name, show_header=False)
    table.add_column("Field", style="cyan", width=20)
    table.add_column("Value")
    table.add_row("Total score", f"[bold]{result.total_score}{maximum}[/bold]")
    table.add_row("Interpretation", _severity_text(result))
    table.add_row("Severity", result.severity.value)
    if result.cutoff is not None:
        table.add_row("Adjusted cutoff", str(result.cutoff))
    if result.overridden:
        table.add_row("Override", "A single parameter forced this interpretation")
    console.print(table)


def _save(ctx: typer.Context, instance: ScaleInstance, result: ScoreResult) -> StoredResult:
    store = _store(ctx)
    context = SaveContext.for_scale(instance.definition, instance.snapshot())
    try:
        stored = store.save(result, context)
    except PersistenceFailure as e:
        _fail(f"Could not save result: {e}")
    rprint(f"[green]:heavy_check_mark: Saved as {stored.id}[/green]")
    return stored


@app.callback()
def main(
    ctx: typer.Context,
    store_path: Optional[Path] = typer.Option(
        None, "--store", help="Results file (overrides BEDSIDE_SCALES_STORE_PATH)."
    ),
    catalog_path: Optional[Path] = typer.Option(
        None,
        "--catalog",
        help="Scale catalog YAML (overrides BEDSIDE_SCALES_CATALOG_PATH).",
        exists=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
):
    settings = load_settings()
    updates = {}
    if store_path:
        updates["store_path"] = store_path.expanduser()
    if catalog_path:
        updates["catalog_path"] = catalog_path
    if verbose:
        updates["log_level"] = "DEBUG"
    if updates:
        settings = settings.model_copy(update=updates)

    configure_logging(settings.log_level, settings.log_file)
    app_context = AppContext(settings)
    ctx.obj = app_context
    ctx.call_on_close(app_context.close)

    try:
        app_context.catalog
    except DefinitionError as e:
        _fail(f"Invalid scale catalog: {e}")


@app.command(name="scales")
def list_scales(ctx: typer.Context):
    """List the available scales by category."""
    for category, definitions in ctx.obj.catalog.by_category().items():
        if not definitions:
            continue
        table = Table(title=category.value, show_header=True, header_style="bold blue")
        table.add_column("ID", style="cyan")
        table.add_column("Scale", style="bold")
        table.add_column("Description")
        for definition in definitions:
            table.add_row(definition.id, definition.display_name, definition.description)
        console.print(table)


@app.command(name="show")
def show_scale(ctx: typer.Context, scale_id: str = typer.Argument(..., help="Scale ID.")):
    """Show the parameters and options of a scale."""
    definition = _scale(ctx, scale_id)
    instance = ScaleInstance.default(definition)
    rprint(f"[bold]{definition.display_name}[/bold] - {definition.description}")
    for parameter in definition.parameters:
        table = Table(
            title=f"{parameter.label} ({parameter.key})", show_header=True, header_style="bold blue"
        )
        table.add_column("Value", style="cyan", justify="right")
        table.add_column("Option")
        table.add_column("Default", justify="center")
        for option in instance.visible_options(parameter.key):
            marker = "*" if option.value == parameter.default else ""
            table.add_row(str(option.value), option.label, marker)
        console.print(table)
        if parameter.visibility_rule:
            rprint(
                f"[yellow]Options depend on '{parameter.visibility_rule.depends_on}'.[/yellow]"
            )


@app.command(name="score")
def score_scale(
    ctx: typer.Context,
    scale_id: str = typer.Argument(..., help="Scale ID."),
    selections: Optional[List[str]] = typer.Option(
        None, "--set", "-s", help="Selection as key=value; repeat for several parameters."
    ),
    save: bool = typer.Option(False, "--save", help="Save the result to the history."),
):
    """Score a scale from its defaults plus the given selections."""
    definition = _scale(ctx, scale_id)
    instance = ScaleInstance.default(definition)
    for raw in selections or []:
        try:
            key, value = parse_selection(raw)
            instance.select(key, value)
        except (ValueError, PreconditionViolation) as e:
            _fail(str(e))

    result = evaluate(definition, instance)
    _print_result(definition, result)
    rprint(f"Parameters: {instance.snapshot()}")
    if save:
        _save(ctx, instance, result)


@app.command(name="form")
def fill_form(ctx: typer.Context, scale_id: str = typer.Argument(..., help="Scale ID.")):
    """Fill in a scale interactively, one parameter at a time."""
    definition = _scale(ctx, scale_id)
    instance = ScaleInstance.default(definition)
    for parameter in definition.parameters:
        options = instance.visible_options(parameter.key)
        rprint(f"\n[bold]{parameter.label}[/bold]")
        for option in options:
            rprint(f"  [cyan]{option.value:>3}[/cyan]  {option.label}")
        value = IntPrompt.ask(
            "Value",
            choices=[str(option.value) for option in options],
            default=instance[parameter.key],
            console=console,
        )
        instance.select(parameter.key, value)
        result = evaluate(definition, instance)
        rprint(f"  Running total: [bold]{result.total_score}[/bold] - {_severity_text(result)}")

    result = evaluate(definition, instance)
    _print_result(definition, result)
    if Confirm.ask("Save this result?", default=False, console=console):
        _save(ctx, instance, result)


@app.command(name="history")
def show_history(ctx: typer.Context):
    """List saved results, most recent first."""
    results = _store(ctx).list_all()
    if not results:
        rprint("[italic]No saved results. Results you save will appear here.[/italic]")
        return

    table = Table(title="History", show_header=True, header_style="bold blue")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Scale", style="bold")
    table.add_column("Points", justify="right")
    table.add_column("Interpretation")
    for entry in results:
        style = SEVERITY_STYLES.get(entry.severity, "white")
        table.add_row(
            entry.id,
            entry.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            entry.scale_name,
            str(entry.total_points),
            f"[{style}]{entry.interpretation_label}[/{style}]",
        )
    console.print(table)


@app.command(name="detail")
def show_detail(ctx: typer.Context, result_id: str = typer.Argument(..., help="Result ID.")):
    """Show every field of one saved result."""
    entry = _store(ctx).get(result_id)
    if entry is None:
        _fail(f"No saved result with id {result_id}")

    table = Table(title="Result details", show_header=False)
    table.add_column("Field", style="cyan", width=20)
    table.add_column("Value")
    local_time = entry.created_at.astimezone()
    table.add_row("Scale", entry.scale_name)
    table.add_row("Category", entry.category.value)
    table.add_row("Description", entry.description or "Not provided")
    table.add_row("Date", local_time.strftime("%Y-%m-%d"))
    table.add_row("Time", local_time.strftime("%H:%M:%S"))
    table.add_row("Points", str(entry.total_points))
    table.add_row("Interpretation", entry.interpretation_label)
    if entry.parameters_snapshot:
        table.add_row("Parameters", entry.parameters_snapshot)
    console.print(table)


@app.command(name="delete")
def delete_result(ctx: typer.Context, result_id: str = typer.Argument(..., help="Result ID.")):
    """Delete one saved result."""
    try:
        deleted = _store(ctx).delete(result_id)
    except PersistenceFailure as e:
        _fail(f"Could not delete result: {e}")
    if deleted:
        rprint(f"[green]:heavy_check_mark: Deleted {result_id}[/green]")
    else:
        rprint(f"[yellow]Nothing deleted: no result with id {result_id}[/yellow]")


@app.command(name="clear")
def clear_history(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Delete all saved results. This cannot be undone."""
    if not yes and not Confirm.ask(
        "Delete all saved results? This cannot be undone.", default=False, console=console
    ):
        rprint("Cancelled.")
        return
    try:
        _store(ctx).delete_all()
    except PersistenceFailure as e:
        _fail(f"Could not delete results: {e}")
    rprint("[green]:heavy_check_mark: All results deleted[/green]")


if __name__ == "__main__":
    app()
