"""CLI entry point for crisisfeed."""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from crisisfeed.config import get_settings
from crisisfeed.logger import get_logger
from crisisfeed.models.analysis import AnalysisKind
from crisisfeed.models.crisis import CrisisData
from crisisfeed.services.feed_client import CrisisFeedClient
from crisisfeed.services.pipeline import SOURCE_FALLBACK, SOURCE_STALE

console = Console()
logger = get_logger(__name__)

SEVERITY_STYLES = {"Critical": "bold red", "High": "red", "Medium": "yellow", "Low": "green"}
ACTION_STYLES = {"STRONG_BUY": "bold green", "BUY": "green", "HOLD": "yellow", "SELL": "red", "STRONG_SELL": "bold red"}


@click.group()
@click.version_option(version="0.1.0", prog_name="crisisfeed")
def cli():
    """Crisis Feed: LLM-generated crisis intelligence.

    Generate a crisis feed, profit opportunities and trading signals.
    """
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
@click.option("--port", "-p", type=int, default=8000, help="Port (default: 8000)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API server."""
    import uvicorn

    logger.info(f"Serve command started on {host}:{port}")
    console.print(f"[bold]Crisis Feed API[/bold] on http://{host}:{port} (docs at /docs)")
    uvicorn.run("crisisfeed.api.main:app", host=host, port=port, reload=reload)


@cli.command()
@click.option("--refresh", "-r", is_flag=True, help="Ignore cached data and generate a new feed")
@click.option("--remote", type=str, default=None, help="Fetch from a running server at this URL")
def scan(refresh: bool, remote: Optional[str]):
    """Generate and display the crisis feed."""
    logger.info("=" * 60)
    logger.info(f"Scan started (refresh={refresh}, remote={remote})")

    try:
        with _spinner("Generating crisis feed..."):
            if remote:
                data, source = asyncio.run(_fetch_remote(remote, refresh)), "remote"
            else:
                data, source = asyncio.run(_scan_local(refresh))
    except Exception as e:
        logger.error(f"Error during scan: {e}", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    _display_crisis_data(data, source)
    logger.info("Scan completed")


@cli.command()
def signals():
    """Generate trading signals for the current crisis feed."""
    _run_financial(AnalysisKind.TRADING_SIGNALS)


@cli.command()
def opportunities():
    """Generate profit opportunities for the current crisis feed."""
    _run_financial(AnalysisKind.PROFIT_OPPORTUNITIES)


@cli.command()
@click.argument("url")
def health(url: str):
    """Check whether a crisisfeed server is up."""

    async def probe():
        client = CrisisFeedClient(url)
        try:
            return await client.health()
        finally:
            await client.close()

    body = asyncio.run(probe())
    if body is None:
        console.print(f"[red]✗[/red] {url} is not reachable")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] {url} status: {body.get('status')} ({body.get('timestamp')})")


def _spinner(description: str):
    progress = Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console)
    progress.add_task(description, total=None)
    return progress


def _build_service():
    from crisisfeed.api.services.analysis_service import AnalysisService

    return AnalysisService(get_settings())


async def _fetch_remote(url: str, refresh: bool) -> CrisisData:
    client = CrisisFeedClient(url)
    try:
        return await client.get_crisis_data(force_refresh=refresh)
    finally:
        await client.close()


async def _scan_local(refresh: bool):
    service = _build_service()
    try:
        result = await service.analyze_crisis(force_refresh=refresh)
        return result.value, result.source
    finally:
        await service.close()


async def _financial_local(kind: AnalysisKind):
    service = _build_service()
    try:
        crisis = await service.analyze_crisis()
        events = [e.model_dump(by_alias=True, mode="json") for e in crisis.value.events]
        result = await service.analyze_financial(events, kind.value)
        return result.value, result.source
    finally:
        await service.close()


def _run_financial(kind: AnalysisKind):
    logger.info(f"{kind.value} command started")
    try:
        with _spinner(f"Generating {kind.value.replace('-', ' ')}..."):
            analysis, source = asyncio.run(_financial_local(kind))
    except Exception as e:
        logger.error(f"Error during {kind.value}: {e}", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if kind is AnalysisKind.TRADING_SIGNALS:
        _display_signals(analysis.signals, source)
    else:
        _display_opportunities(analysis.opportunities, source)

    console.print()
    console.print(
        "[dim]Note: Generated by a language model for educational purposes only. "
        "Not financial advice.[/dim]"
    )


def _source_note(source: str) -> str:
    if source == SOURCE_FALLBACK:
        return "[yellow]static fallback data (model unavailable)[/yellow]"
    if source == SOURCE_STALE:
        return "[yellow]last good result (model unavailable)[/yellow]"
    return source


def _display_crisis_data(data: CrisisData, source: str):
    """Display the crisis events."""
    console.print()
    console.print(
        Panel(
            f"[bold]Events:[/bold] {data.total_events}\n"
            f"[bold]High risk:[/bold] {data.high_risk_events}\n"
            f"[bold]Updated:[/bold] {data.last_updated:%Y-%m-%d %H:%M} UTC\n"
            f"[bold]Source:[/bold] {_source_note(source)}",
            title="Crisis Feed",
            border_style="cyan",
        )
    )

    table = Table(show_header=True, title="Crisis Events")
    table.add_column("#", style="dim")
    table.add_column("Crisis", style="bold", max_width=40)
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Risk", justify="right")
    table.add_column("Impact", justify="right")
    table.add_column("Companies", max_width=30)

    for event in data.events:
        style = SEVERITY_STYLES.get(event.severity, "")
        table.add_row(
            str(event.id),
            event.title,
            event.type,
            f"[{style}]{event.severity}[/{style}]" if style else event.severity,
            str(event.risk_score),
            f"{event.market_impact:+.1f}%",
            ", ".join(c.symbol for c in event.companies) or "-",
        )

    console.print(table)


def _display_opportunities(opportunities, source: str):
    """Display profit opportunities."""
    table = Table(show_header=True, title=f"Profit Opportunities ({_source_note(source)})")
    table.add_column("Symbol", style="bold")
    table.add_column("Company", max_width=25)
    table.add_column("Probability", justify="right")
    table.add_column("Return", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Stop", justify="right")
    table.add_column("Quality")

    for opp in opportunities:
        table.add_row(
            opp.symbol,
            opp.company_name,
            f"{opp.profit_probability:.0f}%",
            f"{opp.expected_return:+.1f}%",
            f"${opp.entry_price:.2f}",
            f"${opp.target_price:.2f}",
            f"${opp.stop_loss:.2f}",
            opp.validation.data_quality,
        )

    console.print()
    console.print(table)


def _display_signals(signals, source: str):
    """Display trading signals."""
    table = Table(show_header=True, title=f"Trading Signals ({_source_note(source)})")
    table.add_column("Symbol", style="bold")
    table.add_column("Action")
    table.add_column("Confidence", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Stop", justify="right")
    table.add_column("Horizon")
    table.add_column("Risk")
    table.add_column("Valid")

    for signal in signals:
        style = ACTION_STYLES.get(signal.action, "")
        table.add_row(
            signal.symbol,
            f"[{style}]{signal.action}[/{style}]" if style else signal.action,
            f"{signal.confidence:.0f}%",
            f"${signal.target_price:.2f}",
            f"${signal.stop_loss:.2f}",
            signal.time_horizon,
            signal.risk_level,
            "[green]yes[/green]" if signal.validation.is_valid else "[red]no[/red]",
        )

    console.print()
    console.print(table)


if __name__ == "__main__":
    cli()
