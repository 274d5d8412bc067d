"""CLI interface with Typer."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress
from rich.table import Table

from nftpersona.core.config import alchemy_api_key, load_config, section

app = typer.Typer(name="nftpersona", help="Persona-matched NFT collection discovery for Shape Network")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """nftpersona - AI-curated Shape Network collections."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _build(config: dict):
    from nftpersona.analyzer.llm import ClaudeGenerator
    from nftpersona.collectors.alchemy import AlchemyClient
    from nftpersona.collectors.gateway import CollectionGateway
    from nftpersona.core.cache import CollectionCache

    provider = AlchemyClient(section(config, "alchemy"), alchemy_api_key())
    gateway = CollectionGateway(provider, fetch_delay=section(config, "gateway").get("fetch_delay", 0.1))
    cache_cfg = section(config, "cache")
    cache = CollectionCache(
        gateway,
        progress_start=cache_cfg.get("progress_start", 10),
        progress_end=cache_cfg.get("progress_end", 95),
    )
    generator = ClaudeGenerator(section(config, "llm"))
    return provider, cache, generator


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"Report saved to [green]{output}[/green]")
    else:
        console.print(text, markup=False, highlight=False)


@app.command()
def collections() -> None:
    """Load the curated collections and list them."""
    config = load_config()
    provider, cache, _ = _build(config)

    async def run():
        with Progress(console=console, transient=True) as progress:
            task = progress.add_task("Loading collections...", total=100)

            async def update(pct: float, status: str) -> None:
                progress.update(task, completed=pct, description=status)

            try:
                return await cache.load(update)
            finally:
                await provider.close()

    loaded = asyncio.run(run())

    table = Table(title=f"Shape Network collections ({loaded.source.value})")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Symbol")
    table.add_column("Supply", justify="right")
    table.add_column("Owners", justify="right")
    table.add_column("Contract", style="dim")
    for i, c in enumerate(loaded.collections, start=1):
        table.add_row(
            str(i), c.display_name, c.symbol or "-",
            "-" if c.total_supply is None else str(c.total_supply),
            "-" if c.owners is None else str(c.owners),
            c.contract_address,
        )
    console.print(table)
    if loaded.error:
        console.print(f"[yellow]Fallback data in use: {loaded.error}[/yellow]")


@app.command()
def match(
    persona: str = typer.Argument(..., help="renegade, fomo, zen or chaos"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file path"),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json"),
) -> None:
    """Match the curated collections to a persona."""
    from nftpersona.analyzer.persona import PersonaMatcher
    from nftpersona.core.engine import WorkflowController
    from nftpersona.core.models import PERSONA_DEFINITIONS, parse_persona
    from nftpersona.reporter.generator import match_to_markdown, to_json

    persona_type = parse_persona(persona.lower())
    if persona_type is None:
        console.print(f"[red]Unknown persona: {persona}[/red]")
        raise typer.Exit(1)

    config = load_config()
    provider, cache, generator = _build(config)
    controller = WorkflowController(cache, PersonaMatcher(generator), provider)
    definition = PERSONA_DEFINITIONS[persona_type]

    console.print(Panel(f"Matching collections for [bold]{definition.emoji} {definition.title}[/bold]..."))

    async def run():
        try:
            await controller.start()
            controller.expand()
            return await controller.select_persona(persona_type)
        finally:
            await provider.close()

    result = asyncio.run(run())
    text = to_json(result) if fmt == "json" else match_to_markdown(definition, result)
    _emit(text, output)


@app.command()
def analyze(
    address: str = typer.Argument(..., help="Collection contract address"),
    ai: bool = typer.Option(False, "--ai", help="Ask Claude for the verdict instead of local heuristics"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file path"),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json"),
) -> None:
    """Run market, holder and activity analytics plus a deep-dive verdict."""
    from nftpersona.analyzer.persona import PersonaMatcher
    from nftpersona.analyzer.synthesis import LocalSynthesizer, ProviderSynthesizer
    from nftpersona.collectors.gateway import is_curated
    from nftpersona.core.engine import MetricKind, MetricStatus, WorkflowController
    from nftpersona.reporter.generator import deep_dive_to_markdown, to_json

    config = load_config()
    provider, cache, generator = _build(config)
    if ai and not generator.configured:
        console.print("[red]ANTHROPIC_API_KEY not set[/red]")
        raise typer.Exit(1)
    if not is_curated(address):
        console.print(f"[yellow]{address} is not in the curated Shape list[/yellow]")

    synthesizer = (
        ProviderSynthesizer(generator, section(config, "llm").get("deep_dive_max_tokens", 1000))
        if ai else LocalSynthesizer()
    )
    controller = WorkflowController(cache, PersonaMatcher(generator), provider, synthesizer)

    async def run():
        try:
            fetch = await cache.gateway.fetch_one(address)
            collection = fetch.collection
            await asyncio.gather(*[
                controller.run_analytics(collection, kind)
                for kind in (MetricKind.MARKET, MetricKind.HOLDER, MetricKind.ACTIVITY)
            ])
            await controller.run_analytics(collection, MetricKind.AI)
            return collection
        finally:
            await provider.close()

    console.print(Panel(f"Analyzing [bold]{address}[/bold]..."))
    collection = asyncio.run(run())
    entry = controller.analytics_for(address)

    for kind, error in entry.errors.items():
        console.print(f"[red]{kind.value} analytics failed: {error}[/red]")
    if entry.status[MetricKind.AI] is not MetricStatus.LOADED:
        raise typer.Exit(1)

    analysis = entry.data[MetricKind.AI]
    if fmt == "json":
        text = to_json(analysis)
    else:
        text = deep_dive_to_markdown(
            collection, analysis,
            entry.data.get(MetricKind.MARKET),
            entry.data.get(MetricKind.HOLDER),
            entry.data.get(MetricKind.ACTIVITY),
        )
    _emit(text, output)


@app.command()
def debug(
    address: str = typer.Argument(..., help="Collection contract address"),
    output: str | None = typer.Option(None, "--output", "-o", help="Save debug output to file"),
) -> None:
    """Fetch one collection and its raw analytics inputs, showing every provider response."""
    import json

    from rich.syntax import Syntax

    from nftpersona.analyzer.metrics import (
        fetch_activity_trends,
        fetch_holder_analysis,
        fetch_market_health,
    )

    config = load_config()
    provider, cache, _ = _build(config)
    provider.debug = True

    console.print(Panel(f"[yellow]DEBUG MODE[/yellow] - fetching [bold]{address}[/bold]"))

    async def run():
        try:
            fetch = await cache.gateway.fetch_one(address)
            snapshots = await asyncio.gather(
                fetch_market_health(provider, fetch.collection),
                fetch_holder_analysis(provider, fetch.collection),
                fetch_activity_trends(provider, fetch.collection),
                return_exceptions=True,
            )
            return fetch, snapshots
        finally:
            await provider.close()

    fetch, snapshots = asyncio.run(run())

    status = f"[red]DEGRADED: {fetch.error}[/red]" if fetch.degraded else "[green]OK[/green]"
    console.print(f"[bold]COLLECTION[/bold] - {status}")
    console.print(Syntax(fetch.collection.model_dump_json(by_alias=True, indent=2), "json", theme="monokai"))

    results: dict[str, object] = {}
    for label, snap in zip(("market", "holder", "activity"), snapshots):
        if isinstance(snap, Exception):
            console.print(f"[bold]{label.upper()}[/bold] - [red]FAIL: {snap}[/red]")
            results[label] = {"error": str(snap)}
            continue
        console.print(f"[bold]{label.upper()}[/bold] - [green]OK[/green]")
        results[label] = snap.model_dump(mode="json", by_alias=True)
        console.print(Syntax(json.dumps(results[label], indent=2), "json", theme="monokai"))

    entries = provider.get_debug_log()
    if entries:
        console.print("[bold yellow]RAW API RESPONSES[/bold yellow]")
    for entry in entries:
        console.print(f"[cyan]{entry['label']}[/cyan] | status {entry['status']}")
        raw = json.dumps(entry["response"], indent=2, default=str)
        if len(raw) > 5000:
            raw = raw[:5000] + "\n... (truncated)"
        console.print(Syntax(raw, "json", theme="monokai"))

    if output:
        dump = {
            "collection": fetch.model_dump(mode="json", by_alias=True),
            "analytics": results,
            "raw_api_logs": entries,
        }
        Path(output).write_text(json.dumps(dump, indent=2, default=str), encoding="utf-8")
        console.print(f"Debug output saved to [green]{output}[/green]")


if __name__ == "__main__":
    app()
