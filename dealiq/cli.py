"""CLI interface for DealIQ."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dealiq.config import AppConfig, load_config
from dealiq.errors import BatchInProgressError, DealIQError
from dealiq.models import (
    AnalysisOutcome,
    BatchSummary,
    BuyerRecord,
    DealClass,
    MarketSnapshot,
    PropertyRecord,
    PropertyType,
)

app = typer.Typer(
    name="dealiq",
    help="Real estate deal analysis - valuation, offers, scoring and buyer matching.",
    no_args_is_help=True,
)
console = Console()

CLASS_STYLES = {
    DealClass.HOT: "bold red",
    DealClass.SOLID: "bold green",
    DealClass.PORTFOLIO: "bold yellow",
    DealClass.PASS: "dim",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _read_export(path: Path) -> dict[str, Any]:
    """Read a JSON export: either a list of properties or an object with
    ``properties``, ``buyers`` and ``markets`` lists."""
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {path}: {e}[/red]")
        raise typer.Exit(code=1)
    if isinstance(data, list):
        return {"properties": data}
    if not isinstance(data, dict):
        console.print(f"[red]{path} must contain a JSON object or list[/red]")
        raise typer.Exit(code=1)
    return data


def _load_buyers(data: dict[str, Any]) -> list[BuyerRecord]:
    return [BuyerRecord.model_validate(b) for b in data.get("buyers", [])]


def _load_markets(data: dict[str, Any]) -> dict[str, MarketSnapshot]:
    markets = [MarketSnapshot.model_validate(m) for m in data.get("markets", [])]
    return {m.area_key: m for m in markets}


@app.command()
def analyze(
    address: str = typer.Argument(..., help="Property address"),
    price: float = typer.Option(..., "--price", "-p", help="Asking price"),
    sqft: int = typer.Option(1500, "--sqft"),
    beds: int = typer.Option(3, "--beds"),
    baths: float = typer.Option(2, "--baths"),
    year_built: int = typer.Option(0, "--year-built"),
    zip_code: str = typer.Option("", "--zip"),
    city: str = typer.Option("", "--city"),
    state: str = typer.Option("", "--state"),
    property_type: PropertyType = typer.Option(PropertyType.SINGLE_FAMILY, "--type"),
    condition: str = typer.Option("", "--condition", help="Free-text condition, e.g. 'needs work'"),
    days_on_market: int = typer.Option(0, "--dom", help="Days on market"),
    motivation: int = typer.Option(5, "--motivation", help="Seller motivation, 1-10"),
    notes: str = typer.Option("", "--notes", help="Seller motivation notes"),
    arv: float = typer.Option(None, "--arv", help="Known after-repair value"),
    repairs: float = typer.Option(None, "--repairs", help="Known repair estimate"),
    balance: float = typer.Option(None, "--balance", help="Known mortgage balance"),
    rent: float = typer.Option(None, "--rent", help="Known monthly rent"),
    buyers_path: Path = typer.Option(None, "--buyers", "-b", help="JSON file with buyers"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw analysis as JSON"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config TOML file"),
):
    """Analyze a single property."""
    cfg = load_config(config_path)

    from dealiq.analysis.engine import DealAnalyzer

    try:
        record = PropertyRecord(
            id="manual-entry",
            address=address,
            city=city,
            state=state,
            zip_code=zip_code,
            asking_price=price,
            beds=beds,
            baths=baths,
            sqft=sqft,
            year_built=year_built,
            property_type=property_type,
            condition=condition,
            days_on_market=days_on_market,
            motivation_score=motivation,
            motivation_notes=notes,
            known_arv=arv,
            known_repairs=repairs,
            mortgage_balance=balance,
            monthly_rent=rent,
        )
    except ValueError as e:
        console.print(f"[red]Invalid property: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    buyers: list[BuyerRecord] = []
    market = None
    if buyers_path:
        data = _read_export(buyers_path)
        buyers = _load_buyers(data)
        market = _load_markets(data).get(zip_code)

    outcome = DealAnalyzer(cfg).analyze(record, market, buyers)

    if as_json:
        console.print_json(outcome.model_dump_json())
        return
    _display_outcome(outcome)


def _display_outcome(outcome: AnalysisOutcome) -> None:
    a = outcome.analysis
    v, m, s, c = a.valuation, a.mao, a.scores, a.classification
    style = CLASS_STYLES[c.deal_class]

    body = (
        f"[{style}]{c.deal_class.value}[/{style}]  grade {c.grade}  "
        f"success {c.success_probability:.0f}%\n"
        f"{c.reason}\n"
        f"Next action: {c.next_action.value}\n\n"
        f"ARV: ${v.arv:,} ({v.arv_source.value}, confidence {v.confidence})\n"
        f"Repairs: ${v.repair_estimate:,} ({v.repair_tier.value})  "
        f"Holding: ${v.holding_cost_monthly:,}/mo\n"
        f"Recommended offer: ${m.recommended:,} ({m.recommended_strategy})\n\n"
        f"Deal score: {s.deal_score:.1f}  Risk: {s.risk_score:.1f}  "
        f"Equity: {s.equity_percent:.1f}%  Margin: {s.margin_percent:.1f}%"
    )
    console.print(Panel(body, title=a.address))

    offers = Table(title="Maximum Allowable Offers")
    offers.add_column("Strategy", style="cyan")
    offers.add_column("MAO", style="green", justify="right")
    for name, value in m.by_strategy().items():
        offers.add_row(name, f"${value:,}")
    console.print(offers)

    strategies = Table(title="Strategies")
    strategies.add_column("#", style="dim", width=3)
    strategies.add_column("Strategy", style="cyan")
    strategies.add_column("Score", style="bold")
    strategies.add_column("Profit", style="green", justify="right")
    strategies.add_column("Rationale")
    for i, cand in enumerate(a.strategies.ranked, 1):
        strategies.add_row(
            str(i), cand.name, f"{cand.score:.0f}", f"${cand.profit_estimate:,}", cand.rationale
        )
    console.print(strategies)

    for label, notes in (
        ("Strengths", a.strengths),
        ("Weaknesses", a.weaknesses),
        ("Opportunities", a.opportunities),
        ("Threats", a.threats),
    ):
        if notes:
            console.print(f"[bold]{label}:[/bold] " + "; ".join(notes))

    if a.due_on_sale:
        console.print(
            f"[bold]Due-on-sale risk:[/bold] {a.due_on_sale.level} "
            f"(LTV {a.due_on_sale.loan_to_value:.0%}) - " + "; ".join(a.due_on_sale.factors)
        )

    p = a.holding_projection
    if p:
        console.print(
            f"[bold]{p.years}-year hold ({p.strategy}):[/bold] "
            f"cashflow ${p.cashflow:,} + appreciation ${p.appreciation:,} "
            f"+ paydown ${p.principal_paydown:,} = [green]${p.total_return:,}[/green]"
        )

    if a.enrichment and a.enrichment.narrative:
        console.print(Panel(a.enrichment.narrative, title="Enrichment"))

    _display_matches(outcome)


def _display_matches(outcome: AnalysisOutcome) -> None:
    result = outcome.matches
    if not result.matches:
        console.print(f"[yellow]{result.note or 'No buyer matches'}[/yellow]")
        return
    table = Table(title=f"Buyer Matches ({result.matched_count})")
    table.add_column("Buyer", style="cyan")
    table.add_column("Score", style="bold")
    table.add_column("Criteria met", style="dim")
    for match in result.matches:
        table.add_row(
            match.buyer_name or match.buyer_id, f"{match.score:.1f}", ", ".join(match.criteria_met)
        )
    console.print(table)


@app.command()
def batch(
    input_path: Path = typer.Option(
        None, "--input", "-i", help="JSON export to analyze (defaults to the database)"
    ),
    save: bool = typer.Option(False, "--save", help="Store results in the database"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config TOML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Analyze many properties, from a JSON export or the database."""
    setup_logging(verbose)
    cfg = load_config(config_path)

    from dealiq.batch import BatchRunner
    from dealiq.db.repository import Repository
    from dealiq.enrichment import Enricher

    enricher = Enricher(cfg.enrichment) if cfg.enrichment.enabled else None
    try:
        if input_path:
            data = _read_export(input_path)
            repo = Repository(cfg.database.url) if save else None
            runner = BatchRunner(cfg, repository=repo, enricher=enricher)
            summary = runner.run(
                data.get("properties", []),
                markets=_load_markets(data),
                buyers=_load_buyers(data),
            )
        else:
            runner = BatchRunner(cfg, repository=Repository(cfg.database.url), enricher=enricher)
            summary = runner.run()
    except BatchInProgressError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        if enricher:
            enricher.close()

    _display_batch(summary)


def _outcomes_table(title: str, outcomes: list[AnalysisOutcome]) -> Table:
    table = Table(title=title, show_lines=True)
    table.add_column("Property", style="white")
    table.add_column("Class", style="bold")
    table.add_column("Score")
    table.add_column("Offer", style="green", justify="right")
    table.add_column("Strategy", style="cyan")
    table.add_column("Best buyer", style="dim")

    for outcome in outcomes:
        a = outcome.analysis
        style = CLASS_STYLES[a.classification.deal_class]
        table.add_row(
            a.address[:35],
            f"[{style}]{a.classification.deal_class.value}[/{style}]",
            f"{a.scores.deal_score:.1f}",
            f"${a.mao.recommended:,}",
            a.strategies.primary.name,
            outcome.matches.best_buyer or "-",
        )
    return table


def _display_batch(summary: BatchSummary) -> None:
    ranked = sorted(summary.outcomes, key=lambda o: -o.analysis.scores.deal_score)
    console.print(_outcomes_table("Batch Results", ranked))

    console.print(
        f"\n[bold]{summary.succeeded} succeeded, {summary.failed} failed[/bold]"
        + (" [yellow](cancelled)[/yellow]" if summary.cancelled else "")
    )
    if summary.enrichment_skipped:
        console.print(f"[yellow]Enrichment skipped for {summary.enrichment_skipped} record(s)[/yellow]")
    for key, reason in summary.failure_reasons.items():
        console.print(f"[red]  {escape(key)}: {escape(reason)}[/red]")


@app.command()
def load(
    input_path: Path = typer.Argument(..., help="JSON export with properties, buyers and markets"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config TOML file"),
):
    """Seed the database from a JSON export."""
    cfg = load_config(config_path)
    data = _read_export(input_path)

    from dealiq.db.repository import Repository

    repo = Repository(cfg.database.url)
    try:
        buyers = _load_buyers(data)
        markets = _load_markets(data)
        properties = 0
        for raw in data.get("properties", []):
            repo.upsert_property(raw)
            properties += 1
    except (DealIQError, ValueError) as e:
        console.print(f"[red]Load failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    for buyer in buyers:
        repo.upsert_buyer(buyer)
    for market in markets.values():
        repo.upsert_market(market)

    console.print(
        f"[bold]Loaded {properties} properties, {len(buyers)} buyers, "
        f"{len(markets)} markets[/bold]"
    )


@app.command()
def top(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of deals to show"),
    deal_class: DealClass = typer.Option(None, "--class", help="Only show this deal class"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config TOML file"),
):
    """Show the highest-scoring stored analyses."""
    cfg = load_config(config_path)

    from dealiq.db.repository import Repository

    repo = Repository(cfg.database.url)
    deals = repo.get_top_deals(limit=limit, deal_class=deal_class.value if deal_class else None)
    if not deals:
        console.print("[dim]No stored analyses yet. Run `dealiq batch --save` first.[/dim]")
        return
    console.print(_outcomes_table(f"Top {len(deals)} Deals", deals))


@app.command()
def watch(
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Start the scheduler to periodically analyze stored properties."""
    setup_logging(verbose)
    cfg = load_config(config_path)

    from dealiq.scheduler import start_scheduler

    console.print(
        f"[bold]Starting DealIQ watcher[/bold]\n"
        f"Database: {cfg.database.url}\n"
        f"Interval: every {cfg.batch.interval_minutes} minutes\n"
        f"Weights: {_weights_label(cfg)}\n"
        f"Enrichment: {'on' if cfg.enrichment.enabled else 'off'}\n"
    )

    start_scheduler(cfg)


def _weights_label(cfg: AppConfig) -> str:
    return "custom" if cfg.scoring.weights is not None else cfg.scoring.preset


@app.command()
def config_show(
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Display current configuration."""
    cfg = load_config(config_path)
    console.print_json(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    app()
