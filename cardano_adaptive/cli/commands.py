"""CLI commands for Cardano Adaptive."""

import asyncio

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from cardano_adaptive import __logo__, __version__

app = typer.Typer(
    name="cardano-adaptive",
    help=f"{__logo__} Cardano Adaptive - natural-language front-end for Cardano dApps",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} Cardano Adaptive v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """Cardano Adaptive - natural-language front-end for Cardano dApps."""
    pass


def _toggle_logs(logs: bool) -> None:
    if logs:
        logger.enable("cardano_adaptive")
    else:
        logger.disable("cardano_adaptive")


# ============================================================================
# Database
# ============================================================================


@app.command("init-db")
def init_db():
    """Create the registry and action-chain tables."""
    from cardano_adaptive.storage.database import create_all_tables, dispose_engine

    async def run():
        await create_all_tables()
        await dispose_engine()

    asyncio.run(run())
    console.print("[green]✓[/green] Tables created")


@app.command()
def seed(
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show runtime logs"),
):
    """Upsert the built-in dApp registry (idempotent)."""
    from cardano_adaptive.seed import seed_registry
    from cardano_adaptive.storage.database import (
        create_all_tables,
        dispose_engine,
        get_session_factory,
    )

    _toggle_logs(logs)

    async def run() -> dict[str, int]:
        await create_all_tables()
        try:
            async with get_session_factory()() as session:
                counts = await seed_registry(session)
                await session.commit()
        finally:
            await dispose_engine()
        return counts

    counts = asyncio.run(run())
    console.print(
        f"[green]✓[/green] Seeded {counts['dapps']} dApps, "
        f"{counts['interfaces']} interfaces, {counts['pools']} pools"
    )


# ============================================================================
# Intents
# ============================================================================


@app.command()
def parse(
    text: str = typer.Argument(..., help="What you want to do, in plain words"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show runtime logs"),
):
    """Classify TEXT and resolve every action against the registry."""
    from cardano_adaptive.chains.orchestrator import IntentOrchestrator
    from cardano_adaptive.errors import AdaptiveError
    from cardano_adaptive.nl.intent_engine import IntentClassifier
    from cardano_adaptive.registry.resolver import DAppResolver
    from cardano_adaptive.registry.store import SqlRegistryStore
    from cardano_adaptive.settings import get_settings
    from cardano_adaptive.storage.database import dispose_engine, get_session_factory
    from cardano_adaptive.storage.repository import ActionChainRepo

    _toggle_logs(logs)
    settings = get_settings()

    async def run():
        factory = get_session_factory()
        resolver = DAppResolver(SqlRegistryStore(factory), settings.resolver_candidate_limit)
        try:
            async with factory() as session:
                orchestrator = IntentOrchestrator(
                    IntentClassifier.from_settings(settings), resolver, ActionChainRepo(session),
                )
                result = await orchestrator.orchestrate(text)
                await session.commit()
        finally:
            await dispose_engine()
        return result

    try:
        with console.status("[dim]Resolving intent...[/dim]", spinner="dots"):
            result = asyncio.run(run())
    except AdaptiveError as exc:
        console.print(f"[red]✗ {exc.category}[/red]: {exc}")
        raise typer.Exit(1) from exc

    table = Table(title=f"Actions ({result.execution_mode.value})")
    table.add_column("#", style="cyan")
    table.add_column("Action")
    table.add_column("dApp", style="green")
    table.add_column("Confidence")
    table.add_column("Parameters")
    table.add_column("Depends on")
    for a in result.actions:
        params = ", ".join(f"{k}={v}" for k, v in a.parameters.items())
        table.add_row(
            str(a.order),
            a.action_type,
            a.dapp_name,
            f"{a.confidence:.2f}",
            params,
            str(a.depends_on) if a.depends_on is not None else "",
        )
    console.print(table)
    if result.chain_id:
        console.print(f"Chain: [cyan]{result.chain_id}[/cyan]")


# ============================================================================
# Registry
# ============================================================================


@app.command()
def dapps():
    """List active dApps and the actions they support."""
    from cardano_adaptive.storage.database import dispose_engine, get_session_factory
    from cardano_adaptive.storage.repository import DAppRepo

    async def run():
        try:
            async with get_session_factory()() as session:
                rows = await DAppRepo(session).list_active()
                return [
                    (d.id, d.name, d.type.value, sorted(i.action_type for i in d.interfaces), d.tvl)
                    for d in rows
                ]
        finally:
            await dispose_engine()

    rows = asyncio.run(run())
    if not rows:
        console.print("No dApps registered. Run [bold]cardano-adaptive seed[/bold] first.")
        return

    table = Table(title="dApp Registry")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Actions", style="green")
    table.add_column("TVL")
    for dapp_id, name, dapp_type, actions, tvl in rows:
        table.add_row(dapp_id, name, dapp_type, ", ".join(actions), "" if tvl is None else f"{tvl:,.0f}")
    console.print(table)


@app.command()
def index(
    loop: bool = typer.Option(False, "--loop", help="Keep indexing on the configured interval"),
    logs: bool = typer.Option(True, "--logs/--no-logs", help="Show runtime logs"),
):
    """Refresh TVL, volume and pools for every active dApp."""
    from cardano_adaptive.indexer.base import build_indexers
    from cardano_adaptive.indexer.scheduler import IndexerScheduler
    from cardano_adaptive.settings import get_settings
    from cardano_adaptive.storage.database import dispose_engine, get_session_factory

    _toggle_logs(logs)
    settings = get_settings()
    scheduler = IndexerScheduler(
        get_session_factory(),
        build_indexers(timeout=settings.http_timeout_seconds),
        interval_minutes=settings.indexer_interval_minutes,
    )

    async def run():
        try:
            if loop:
                await scheduler.run_forever()
            else:
                return await scheduler.run_once()
        finally:
            await dispose_engine()

    try:
        summary = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nStopped.")
        return
    if summary is not None:
        console.print(
            f"[green]✓[/green] Indexed {summary.indexed}, failed {summary.failed} "
            f"({summary.duration_ms}ms)"
        )


# ============================================================================
# Serve (FastAPI HTTP)
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind host (defaults to settings)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (defaults to settings)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Start the Cardano Adaptive HTTP API server (FastAPI + Uvicorn)."""
    import uvicorn

    from cardano_adaptive.settings import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"{__logo__} Starting Cardano Adaptive API on {host}:{port} ...")
    uvicorn.run(
        "cardano_adaptive.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


if __name__ == "__main__":
    app()
