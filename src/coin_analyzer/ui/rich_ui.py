"""
rich_ui.py: Rich rendering of coin analyses and errors for the command line.
"""

from typing import Dict
from pathlib import Path

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..api.errors import AnalysisError
from ..api.models import CoinAnalysis
from ..core.workers import BatchResult


def _fields_table(rows) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Field", style="bold", no_wrap=True)
    table.add_column("Value")
    for label, value in rows:
        table.add_row(label, value)
    return table


def analysis_panel(analysis: CoinAnalysis) -> Panel:
    """Build the result panel; unidentified coins get the guidance text instead."""
    if analysis.is_unknown_analysis:
        return Panel(
            Text(analysis.unknown_analysis_message),
            title="Could not identify coin",
            border_style="yellow",
        )

    basic = analysis.basic_info
    value = analysis.value_assessment
    technical = analysis.technical_details
    technical_rows = [("Rarity", technical.rarity)]
    if technical.mint_mark:
        technical_rows.insert(0, ("Mint Mark", technical.mint_mark))
    if technical.has_diameter:
        technical_rows.append(("Diameter", technical.formatted_diameter))

    sections = [
        Text("Basic Information", style="bold gold1"),
        _fields_table([
            ("First Released Year", basic.released_year),
            ("Country", basic.country),
            ("Denomination", basic.denomination),
            ("Composition", basic.composition),
        ]),
        Text("\nValue Assessment", style="bold gold1"),
        _fields_table([
            ("Collector Value", value.collector_value),
            ("Rarity", value.rarity),
        ]),
        Text("\nDescription", style="bold gold1"),
        Text(analysis.description),
        Text("\nHistorical Context", style="bold gold1"),
        Text(analysis.historical_context),
        Text("\nTechnical Details", style="bold gold1"),
        _fields_table(technical_rows),
    ]
    return Panel(Group(*sections), title="Coin Analysis Complete", border_style="green")


def error_panel(error: AnalysisError) -> Panel:
    body = Text(error.user_message)
    if error.offers_retry:
        body.append("\n\nTry again in a moment.", style="dim")
    return Panel(body, title="Analysis Error", border_style="red")


def batch_table(results: Dict[Path, BatchResult]) -> Table:
    table = Table(title="Batch analysis")
    table.add_column("Image")
    table.add_column("Result")
    table.add_column("Time", justify="right")
    for path, item in sorted(results.items()):
        if not item.ok:
            outcome = Text(item.result.user_message, style="red")
        elif item.result.is_unknown_analysis:
            outcome = Text("Could not identify coin", style="yellow")
        else:
            basic = item.result.basic_info
            outcome = Text(f"{basic.country}, {basic.denomination} ({basic.released_year})")
        table.add_row(path.name, outcome, f"{item.processing_time:.1f}s")
    return table


def show_analysis(analysis: CoinAnalysis, console: Console = None) -> None:
    (console or Console()).print(analysis_panel(analysis))


def show_error(error: AnalysisError, console: Console = None) -> None:
    (console or Console(stderr=True)).print(error_panel(error))
