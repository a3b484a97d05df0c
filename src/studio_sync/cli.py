"""CLI interface for the studio sync engine."""

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .config import AppConfig, load_config
from .logging_utils import redact_key, setup_logging
from .models import Severity, SyncStatus
from .remote import RemoteStoreError
from .schemas import ENTITY_SCHEMAS, EntityType, UnknownEntityError, get_schema
from .sync import ReconciliationEngine, SeedSyncOrchestrator

app = typer.Typer(
    name="studio-sync",
    help="Local-first sync between the studio console data and its remote store",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]

_SEVERITY_STYLES = {
    Severity.SUCCESS: "green",
    Severity.INFO: "blue",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}


def get_config(config_path: Path | None = None, verbose: bool = False) -> AppConfig:
    """Load configuration from file and environment, then set up logging."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1) from None
    setup_logging(verbose, redact=config.remote.anon_key)
    return config


def run_async(coro: Any) -> Any:
    """Run an async function synchronously."""
    return asyncio.run(coro)


def parse_entity(value: str) -> EntityType:
    try:
        return get_schema(value).entity
    except UnknownEntityError:
        names = ", ".join(e.value for e in EntityType)
        console.print(f"[red]Unknown entity: {value}[/red] (expected one of: {names})")
        raise typer.Exit(1) from None


class SeedProgressReporter:
    """Live progress line for a seed push."""

    def __init__(self, live: Live):
        self.live = live

    def callback(self, status: SyncStatus) -> None:
        line = Text("  ⠋ " if status.is_syncing else "  ✓ ", style="bold blue")
        line.append(f"{status.current}/{status.total} articles")
        if status.error_count:
            line.append(f"  {status.error_count} failed", style="red")
        if status.is_syncing and status.current == status.total and status.total:
            line.append("  finishing…", style="dim")
        self.live.update(line)


@app.command()
def status(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Bootstrap the engine and show what it holds."""
    config = get_config(config_path, verbose)
    engine = ReconciliationEngine.from_config(config)

    async def _status():
        try:
            await engine.bootstrap()
        finally:
            await engine.close()

    run_async(_status())
    state = engine.state

    mode = "[green]remote[/green]" if engine.remote.is_configured else "[yellow]local-only[/yellow]"
    console.print(f"[bold]Mode:[/bold] {mode}")
    console.print(f"[bold]Cache:[/bold] {config.cache.path}")
    console.print(f"[bold]Loading:[/bold] {engine.is_loading}\n")

    table = Table(title="Collections")
    table.add_column("Entity", style="cyan")
    table.add_column("Table", style="dim")
    table.add_column("Records", style="green", justify="right")
    for entity, schema in ENTITY_SCHEMAS.items():
        table.add_row(entity.value, schema.table, str(len(state.records(schema.collection))))
    console.print(table)

    if state.hidden_ids:
        console.print(f"\n[bold]Hidden seed records:[/bold] {', '.join(state.hidden_ids)}")


@app.command(name="push-seed")
def push_seed(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Push the seed article catalog to the remote store."""
    config = get_config(config_path, verbose)
    engine = ReconciliationEngine.from_config(config)
    if not engine.remote.is_configured:
        console.print("[red]Remote store is not configured (set SUPABASE_URL and SUPABASE_ANON_KEY)[/red]")
        raise typer.Exit(1)

    orchestrator = SeedSyncOrchestrator.from_config(
        config.sync, engine.store, engine.remote, engine.activity
    )

    async def _push():
        try:
            with Live(Text("  Starting seed push…", style="dim"), console=console) as live:
                orchestrator.add_listener(SeedProgressReporter(live).callback)
                return await orchestrator.push_seed_articles()
        finally:
            await engine.close()

    result = run_async(_push())
    pushed = result.total - result.error_count
    if result.error_count:
        console.print(f"[yellow]Pushed {pushed}/{result.total}, {result.error_count} failed[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Pushed {pushed} articles[/green]")


@app.command(name="push-settings")
def push_settings(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Push the full settings document to the remote store."""
    config = get_config(config_path, verbose)
    engine = ReconciliationEngine.from_config(config)
    orchestrator = SeedSyncOrchestrator.from_config(
        config.sync, engine.store, engine.remote, engine.activity
    )

    async def _push():
        try:
            await engine.bootstrap()
            return await orchestrator.push_settings()
        finally:
            await engine.close()

    if not run_async(_push()):
        console.print("[red]✗ Settings push failed[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Settings pushed[/green]")


@app.command()
def activity(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Entries to show")] = 20,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the most recent activity entries."""
    config = get_config(config_path, verbose)
    engine = ReconciliationEngine.from_config(config)
    entries = engine.activity.entries[:limit]

    if not entries:
        console.print("[dim]No activity recorded yet.[/dim]")
        return

    table = Table(title="Activity")
    table.add_column("When", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Severity")
    table.add_column("Label")
    for entry in entries:
        style = _SEVERITY_STYLES[entry.severity]
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.category,
            f"[{style}]{entry.severity.value}[/{style}]",
            entry.label,
        )
    console.print(table)


def _tombstone(entity: str, record_id: str, config_path: Path | None, verbose: bool, hide: bool):
    config = get_config(config_path, verbose)
    kind = parse_entity(entity)
    engine = ReconciliationEngine.from_config(config)

    async def _apply():
        try:
            await engine.bootstrap()
            if hide:
                return engine.hide_seed(kind, record_id)
            return engine.restore_seed(kind, record_id)
        finally:
            await engine.close()

    changed = run_async(_apply())
    verb = "Hidden" if hide else "Restored"
    if changed:
        console.print(f"[green]✓ {verb} {kind.value} {record_id}[/green]")
    else:
        console.print(f"[dim]Nothing to do for {kind.value} {record_id}[/dim]")


@app.command()
def hide(
    entity: Annotated[str, typer.Argument(help="Entity type (e.g. article, service)")],
    record_id: Annotated[str, typer.Argument(help="Seed record id")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Hide a seed record (durable tombstone)."""
    _tombstone(entity, record_id, config_path, verbose, hide=True)


@app.command()
def restore(
    entity: Annotated[str, typer.Argument(help="Entity type (e.g. article, service)")],
    record_id: Annotated[str, typer.Argument(help="Seed record id")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Restore a hidden seed record."""
    _tombstone(entity, record_id, config_path, verbose, hide=False)


@app.command()
def reset(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Discard the local snapshot and go back to the built-in defaults."""
    config = get_config(config_path, verbose)

    if not yes:
        console.print(f"[yellow]This will discard the local snapshot in {config.cache.path}[/yellow]")
        console.print("[yellow]The remote store is not touched.[/yellow]\n")
        confirm = typer.confirm("Are you sure?")
        if not confirm:
            console.print("Cancelled.")
            raise typer.Exit(0)

    engine = ReconciliationEngine.from_config(config)
    engine.reset_to_default()
    console.print("[green]✓ Local data reset to defaults[/green]")


@app.command()
def verify(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Verify the connection to the remote store."""
    config = get_config(config_path, verbose)
    engine = ReconciliationEngine.from_config(config)

    if not engine.remote.is_configured:
        console.print("[yellow]Remote store not configured; running local-only[/yellow]")
        raise typer.Exit(1)

    console.print("[bold]Verifying remote connection...[/bold]\n")

    async def _verify():
        try:
            return await engine.remote.ping()
        except RemoteStoreError as e:
            console.print(f"[red]{e}[/red]")
            return False
        finally:
            await engine.close()

    if run_async(_verify()):
        console.print("[green]✓ Connected[/green]")
    else:
        console.print("[red]✗ Failed[/red]")
        raise typer.Exit(1)


@app.command()
def config_show(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Show current configuration (with secrets masked)."""
    config = get_config(config_path, verbose)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Remote URL", config.remote.url or "[red]Not set[/red]")
    key = config.remote.anon_key
    table.add_row("Remote Key", redact_key(key) if key else "[red]Not set[/red]")
    table.add_row("Remote Schema", config.remote.schema_name)
    table.add_row("Cache Path", str(config.cache.path))
    table.add_row("Item Delay", f"{config.sync.item_delay_ms} ms")
    table.add_row("Grace Period", f"{config.sync.grace_period_seconds} s")
    table.add_row("Activity Limit", str(config.sync.activity_limit))

    console.print(table)


if __name__ == "__main__":
    app()
