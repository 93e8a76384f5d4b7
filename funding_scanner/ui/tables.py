"""
Rich tables for the funding rate snapshot.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.funding_rate import FundingRate
from ..models.opportunity import ArbitrageOpportunity, OpportunityType
from ..models.snapshot import FundingSnapshot
from ..utils.time_utils import to_iso_string


def _rate_markup(rate: Decimal) -> str:
    color = "green" if rate < 0 else "red"
    return f"[{color}]{rate:.4f}%[/{color}]"


def create_exchange_counts_panel(snapshot: FundingSnapshot) -> Panel:
    """Panel with the number of rates per exchange"""
    counts: Dict[str, int] = dict(snapshot.exchange_counts)
    total = counts.pop('total', len(snapshot.rates))
    lines = [f"{exchange}: [bold]{count}[/bold]" for exchange, count in counts.items()]
    lines.append(f"Total: [bold cyan]{total}[/bold cyan]")
    return Panel(
        "\n".join(lines),
        title=f"📊 Funding rates at {to_iso_string(snapshot.fetched_at)}",
        border_style="blue"
    )


def create_opportunities_table(opportunities: List[ArbitrageOpportunity],
                               opportunity_type: OpportunityType) -> Table:
    """Table of one strategy's opportunities"""
    different = opportunity_type == OpportunityType.DIFFERENT_PERIOD

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="yellow", width=10)
    table.add_column("Long", style="white", width=12)
    table.add_column("Short", style="white", width=12)
    table.add_column("Long Rate", justify="right", width=10)
    table.add_column("Short Rate", justify="right", width=10)
    if different:
        table.add_column("Periods", style="cyan", width=9)
        table.add_column("Profit", style="green", justify="right", width=9)
    else:
        table.add_column("Period", style="cyan", width=7)
        table.add_column("Diff", style="green", justify="right", width=9)
    table.add_column("Annual", style="bold green", justify="right", width=10)

    for opp in opportunities:
        if different:
            periods = f"{opp.settlement_period1:g}h/{opp.settlement_period2:g}h"
            gain = f"{opp.expected_profit:.4f}%"
        else:
            periods = f"{opp.settlement_period:g}h"
            gain = f"{opp.rate_diff:.4f}%"

        table.add_row(
            opp.symbol,
            opp.long_exchange,
            opp.short_exchange,
            _rate_markup(opp.long_rate),
            _rate_markup(opp.short_rate),
            periods,
            gain,
            f"{opp.annual_yield:.2f}%"
        )

    return table


def create_rates_table(rates: List[FundingRate]) -> Table:
    """Table of funding rates, most extreme first"""
    table = Table(show_header=True, header_style="bold white", show_lines=False)
    table.add_column("Symbol", style="yellow", width=10)
    table.add_column("Exchange", width=12)
    table.add_column("Rate", justify="right", width=10)
    table.add_column("Interval", style="cyan", width=8)
    table.add_column("Annual", justify="right", width=10)

    for rate in sorted(rates, key=lambda r: abs(r.current_rate), reverse=True):
        interval = f"{rate.settlement_interval:g}h"
        if rate.is_special_interval:
            interval = f"[bold]{interval}[/bold]"
        table.add_row(
            rate.symbol,
            rate.exchange,
            _rate_markup(rate.current_rate),
            interval,
            f"{rate.annual_rate:.2f}%"
        )

    return table


def display_snapshot(snapshot: FundingSnapshot, limit: int = 20,
                     console: Optional[Console] = None) -> None:
    """Print the counts, both opportunity tables and the top rates"""
    console = console or Console()
    console.print(create_exchange_counts_panel(snapshot))

    sections = [
        (OpportunityType.DIFFERENT_PERIOD, "⏱️ Different settlement period"),
        (OpportunityType.SAME_PERIOD, "⚖️ Same settlement period"),
    ]
    for opportunity_type, title in sections:
        opportunities = snapshot.opportunities_of_type(opportunity_type)
        console.print(f"\n{title} [dim]({len(opportunities)} found)[/dim]")
        if opportunities:
            console.print(create_opportunities_table(opportunities[:limit], opportunity_type))
        else:
            console.print("📭 [yellow]No opportunities found[/yellow]")

    console.print("\n💹 [bold cyan]Top funding rates[/bold cyan]")
    top_rates = sorted(snapshot.rates, key=lambda r: abs(r.current_rate), reverse=True)[:limit]
    console.print(create_rates_table(top_rates))
