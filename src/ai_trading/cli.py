"""Command-line interface for the AI trading analysis service."""

import asyncio
import json
from typing import List, Optional

import numpy as np
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ai_trading import __version__
from ai_trading.config.settings import get_settings
from ai_trading.core.exceptions import AITradingError
from ai_trading.core.logging import setup_logging
from ai_trading.models.analysis import AnalysisResult, IndicatorSnapshot, SignalType
from ai_trading.services.analysis_service import AnalysisService
from ai_trading.services.data_service import DataService
from ai_trading.services.database_service import (
    DatabaseService,
    create_supabase_client,
)
from ai_trading.services.signal_service import SignalService

console = Console()

app = typer.Typer(
    name="ai-trading",
    help="Technical-indicator and signal-scoring engine for stocks",
)

SIGNAL_STYLES = {
    SignalType.BUY: "green",
    SignalType.SELL: "red",
    SignalType.HOLD: "yellow",
}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the configured log level"
    ),
    log_file: Optional[bool] = typer.Option(
        None,
        "--log-file/--no-log-file",
        help="Also write logs under the configured log directory",
    ),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(get_settings(), level=log_level, log_to_file=log_file)


def get_services() -> SignalService:
    """Compose the service graph once per command."""
    try:
        settings = get_settings()
        client = create_supabase_client(settings)
        database_service = DatabaseService(client, settings)

        if database_service.is_available():
            console.print("[green]✅ Database service ready for signal storage[/green]")
        else:
            console.print(
                "[yellow]⚠️  Database service unavailable - "
                "signals won't be stored[/yellow]"
            )

        return SignalService(
            settings,
            DataService(settings),
            AnalysisService(settings),
            database_service,
        )
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize services: {e}[/red]")
        raise


def get_data_service() -> DataService:
    return DataService(get_settings())


def _run(coro) -> None:
    """Run a command coroutine, turning service errors into exit code 1."""
    try:
        asyncio.run(coro)
    except AITradingError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(code=1)


def _parse_symbols(symbols: Optional[str]) -> Optional[List[str]]:
    if not symbols:
        return None
    return [s.strip().upper() for s in symbols.split(",") if s.strip()]


@app.command()
def analyze(
    symbol: str = typer.Argument(..., help="Stock symbol to analyze"),
    output: Optional[str] = typer.Option(None, "--output", help="Output file (JSON)"),
    store: bool = typer.Option(
        True, "--store/--no-store", help="Store the prediction in the database"
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Seed for the hold-target jitter"
    ),
) -> None:
    """Run the full analysis for a single symbol."""

    async def _analyze():
        signal_service = get_services()
        rng = np.random.default_rng(seed) if seed is not None else None

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"Analyzing {symbol.upper()}...", total=None)
            result = await signal_service.analyze_stock(symbol, store=store, rng=rng)
            progress.update(task, description="Complete!")

        _display_analysis_result(result)

        if output:
            with open(output, "w") as f:
                json.dump(result.model_dump(mode="json"), f, indent=2)
            console.print(f"[green]Results saved to {output}[/green]")

    _run(_analyze())


@app.command()
def signals(
    symbols: Optional[str] = typer.Argument(
        None, help="Comma-separated symbols (defaults to the watch list)"
    ),
    store: bool = typer.Option(
        True, "--store/--no-store", help="Store signals in the database"
    ),
) -> None:
    """Generate trading signals for a list of symbols."""

    async def _signals():
        signal_service = get_services()
        results = await signal_service.generate_trading_signals(
            _parse_symbols(symbols), store=store
        )

        if not results:
            console.print("[yellow]No trading signals generated[/yellow]")
            return

        table = Table(title="Trading Signals")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Signal", justify="center")
        table.add_column("Target", justify="right")
        table.add_column("Confidence", justify="right")
        table.add_column("Risk", justify="right")
        table.add_column("Reasoning", style="white")

        for signal in results:
            style = SIGNAL_STYLES[signal.signal_type]
            table.add_row(
                signal.symbol,
                f"[{style}]{signal.signal_type.value.upper()}[/{style}]",
                f"${signal.target_price:.2f}",
                f"{signal.confidence_score:.0%}",
                f"{signal.risk_score:.2f}",
                signal.reasoning,
            )

        console.print(table)
        console.print(f"\n[bold]Generated {len(results)} signals[/bold]")

    _run(_signals())


@app.command()
def scan(
    symbols: Optional[str] = typer.Argument(
        None, help="Comma-separated symbols (defaults to the watch list)"
    ),
    min_confidence: float = typer.Option(
        0.5, "--min-confidence", help="Minimum confidence for an opportunity"
    ),
) -> None:
    """Scan symbols for actionable buy or sell setups."""

    async def _scan():
        signal_service = get_services()
        opportunities = await signal_service.scan_opportunities(
            _parse_symbols(symbols), min_confidence=min_confidence
        )

        if not opportunities:
            console.print(
                f"[yellow]No opportunities at confidence ≥ {min_confidence:.0%}[/yellow]"
            )
            return

        table = Table(title=f"Opportunities (Confidence ≥ {min_confidence:.0%})")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Signal", justify="center")
        table.add_column("Confidence", justify="right")
        table.add_column("Target", justify="right")
        table.add_column("Final Score", justify="right")
        table.add_column("Regime", style="magenta")

        for result in opportunities:
            prediction = result.prediction
            style = SIGNAL_STYLES[prediction.signal]
            table.add_row(
                result.symbol,
                f"[{style}]{prediction.signal.value.upper()}[/{style}]",
                f"{prediction.confidence:.0%}",
                f"${prediction.target_price:.2f}",
                f"{prediction.final_score:+.3f}",
                prediction.market_regime.value,
            )

        console.print(table)

    _run(_scan())


@app.command()
def market() -> None:
    """Show quotes for the major indices and index ETFs."""

    async def _market():
        data_service = get_data_service()
        quotes = await data_service.get_market_summary()

        table = Table(title="Market Summary")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Price", justify="right")
        table.add_column("Change", justify="right")
        table.add_column("Change %", justify="right")
        table.add_column("Volume", justify="right")
        table.add_column("Market Cap", justify="right")

        for quote in quotes:
            style = "green" if quote.change >= 0 else "red"
            table.add_row(
                quote.symbol,
                quote.name or "-",
                f"{quote.price:,.2f}",
                f"[{style}]{quote.change:+,.2f}[/{style}]",
                f"[{style}]{quote.change_percent:+.2f}%[/{style}]",
                f"{quote.volume:,.0f}",
                _format_market_cap(quote.market_cap),
            )

        console.print(table)

    _run(_market())


@app.command()
def search(
    query: str = typer.Argument(..., help="Ticker or company name to look up"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum matches"),
) -> None:
    """Look up symbols by ticker or company name."""

    async def _search():
        matches = await get_data_service().search_symbols(query, limit=limit)

        if not matches:
            console.print(f"[yellow]No symbols found for '{query}'[/yellow]")
            return

        table = Table(title=f"Search: {query}")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Exchange")
        table.add_column("Type", style="magenta")

        for match in matches:
            table.add_row(
                match.symbol, match.name or "-", match.exchange or "-", match.type or "-"
            )

        console.print(table)

    _run(_search())


@app.command()
def version() -> None:
    """Show version information and system status."""
    console.print("[bold blue]AI Trading Analysis[/bold blue]")
    console.print(f"Version: {__version__}")

    settings = get_settings()
    if settings.is_database_enabled():
        console.print("[green]✅ Database configured[/green]")
    else:
        console.print("[yellow]⚠️  Database not configured[/yellow]")


def _format_market_cap(value: Optional[float]) -> str:
    if not value:
        return "-"
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M")):
        if value >= threshold:
            return f"${value / threshold:.2f}{suffix}"
    return f"${value:,.0f}"


def _display_analysis_result(result: AnalysisResult) -> None:
    """Display a single analysis result."""
    prediction = result.prediction
    style = SIGNAL_STYLES[prediction.signal]

    lines = [
        f"Symbol: {result.symbol}",
        f"Model: {result.model_version}",
        f"Signal: [{style}]{prediction.signal.value.upper()}[/{style}]",
        f"Confidence: {prediction.confidence:.0%}",
        f"Target Price: ${prediction.target_price:.2f}",
        f"Market Regime: {prediction.market_regime.value}",
    ]

    indicators = result.technical_indicators
    if isinstance(indicators, IndicatorSnapshot):
        lines += [
            "",
            f"Final Score: {prediction.final_score:+.3f} "
            f"(ensemble {prediction.ensemble_score:+.3f})",
            "Models: "
            + ", ".join(f"{k} {v:+.2f}" for k, v in prediction.model_scores.items()),
            "Timeframes: "
            + ", ".join(
                f"{k} {v:+.2f}" for k, v in prediction.timeframe_scores.items()
            ),
            "",
            f"RSI: {indicators.rsi:.1f} (fast {indicators.rsi_fast:.1f})",
            f"MACD: {indicators.macd:.3f} / signal {indicators.macd_signal:.3f}",
            f"Trend: {indicators.trend.value}",
            f"Support / Resistance: ${indicators.support:.2f} / "
            f"${indicators.resistance:.2f}",
            f"Volume Ratio: {indicators.volume_ratio:.2f}x",
        ]
        if result.patterns:
            lines.append(
                "Patterns: " + ", ".join(p.type.value for p in result.patterns)
            )
        if result.risk_metrics:
            risk = result.risk_metrics
            lines.append(
                f"Risk: volatility {risk.volatility:.2f}%, "
                f"max drawdown {risk.max_drawdown:.2f}%, "
                f"sharpe {risk.sharpe_ratio:.2f}"
            )
    else:
        lines += ["", indicators.note]

    if prediction.reasoning:
        lines += ["", prediction.reasoning]

    console.print(
        Panel("\n".join(lines), title=result.message, border_style=style)
    )


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ CLI Error: {e}[/red]")
        raise
