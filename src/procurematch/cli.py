"""
procurematch CLI — command-line interface.

Usage:
    procurematch match INV-1001 --documents documents.yaml
    procurematch match INV-1001 -d documents.json --mode two-document -o match.md
    procurematch batch --documents documents.csv --config procurematch.yaml
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from procurematch import __version__

app = typer.Typer(
    name="procurematch",
    help="🧾 procurematch — Three-way invoice matching for hotel procurement",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_STATUS_COLORS = {
    "fully-matched": "green",
    "variance-within-tolerance": "green",
    "partially-matched": "yellow",
    "needs-review": "red",
    "not-matched": "red",
    "approved-with-variance": "green",
    "rejected": "red",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold]procurematch[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """🧾 procurematch — Match invoices against purchase orders and goods received notes."""


def _setup(documents: str, config: str | None, mode: str | None, verbose: bool):  # noqa: ANN202
    """Load configuration and documents, exiting with a message on failure."""
    from procurematch.analyzers.three_way_matching import ThreeWayMatcher
    from procurematch.config import MatchingConfig
    from procurematch.connectors.file_connector import FileDocumentStore
    from procurematch.exceptions import ConfigurationError

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    overrides = {"mode": mode} if mode else {}
    try:
        matching_config = MatchingConfig.load(config, **overrides)
        store = FileDocumentStore.load(documents)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    return ThreeWayMatcher(matching_config), store


@app.command()
def match(
    invoice_id: str = typer.Argument(..., help="Invoice id to match"),
    documents: str = typer.Option(
        ...,
        "--documents",
        "-d",
        help="JSON, YAML or CSV file with purchase orders, GRNs and invoices",
    ),
    config: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
    mode: str = typer.Option(
        None,
        "--mode",
        "-m",
        help="Matching mode: three-way or two-document",
    ),
    output: str = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file path (.md, .json)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log per-line matching detail",
    ),
) -> None:
    """Match one invoice against its PO and GRN."""
    from procurematch.exceptions import DocumentNotFoundError

    matcher, store = _setup(documents, config, mode, verbose)

    console.print(Panel.fit(
        f"[bold blue]🧾 procurematch[/bold blue] — {matcher.config.mode.value} match",
        subtitle=f"v{__version__}",
    ))

    try:
        result = matcher.match_from_store(invoice_id, store, matched_by="cli")
    except DocumentNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    _display_result(result)
    if output:
        _save_result(result, output)


@app.command()
def batch(
    documents: str = typer.Option(
        ...,
        "--documents",
        "-d",
        help="JSON, YAML or CSV file with purchase orders, GRNs and invoices",
    ),
    config: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
    mode: str = typer.Option(
        None,
        "--mode",
        "-m",
        help="Matching mode: three-way or two-document",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log per-line matching detail",
    ),
) -> None:
    """Match every invoice in a document file and summarise the results."""
    from procurematch.analyzers.three_way_matching import summarize

    matcher, store = _setup(documents, config, mode, verbose)

    with console.status("[bold green]Matching invoices...[/bold green]"):
        results = matcher.match_all(store, matched_by="cli")

    table = Table(title="Invoice Matches")
    table.add_column("Invoice", style="bold cyan")
    table.add_column("PO")
    table.add_column("Status")
    table.add_column("Variance", justify="right")
    table.add_column("Approval")

    for result in results:
        color = _STATUS_COLORS.get(result.match_status.value, "white")
        table.add_row(
            result.invoice_id,
            result.purchase_order_id or "—",
            f"[{color}]{result.match_status.value}[/{color}]",
            f"{result.variance_percentage:.2f}%",
            result.approval_level.value,
        )
    console.print(table)

    summary = summarize(results)
    console.print(
        f"\n[bold]{summary['total_matches']}[/bold] invoices · "
        f"{summary['auto_approved']} auto-approved · "
        f"{summary['requiring_approval']} requiring approval · "
        f"match rate {summary['match_rate']:.1f}%"
    )


def _display_result(result) -> None:  # noqa: ANN001
    """Display a matching result in the terminal."""
    from procurematch.analyzers.currency import format_currency

    console.print()

    color = _STATUS_COLORS.get(result.match_status.value, "white")
    table = Table(title=f"Invoice {result.invoice_id}", show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Status", f"[{color}]{result.match_status.value}[/{color}]")
    table.add_row("Purchase Order", result.purchase_order_id or "—")
    table.add_row("GRNs", ", ".join(result.grn_ids) or "—")
    table.add_row("Overall Variance", format_currency(result.overall_variance, result.currency))
    table.add_row("Variance %", f"{result.variance_percentage:.2f}%")
    table.add_row(
        "Items",
        f"{result.items_matched} matched / {result.items_mismatched} mismatched / "
        f"{result.items_missing} missing / {result.items_additional} additional",
    )
    table.add_row("Approval", result.approval_level.value)

    console.print(table)
    console.print()

    variances = result.actionable_variances
    if variances:
        console.print("[bold]Variances requiring action:[/bold]")
        for v in variances:
            console.print(
                f"  • {v.item_name or v.item_id} ({v.field.value}) "
                f"{v.variance_percentage:+.2f}% — {v.suggested_action}"
            )
        console.print()

    if result.recommendations:
        console.print("[bold]Recommendations:[/bold]")
        for i, rec in enumerate(result.recommendations, 1):
            console.print(f"  {i}. {rec.action_label} ({rec.priority.value}): {rec.message}")
        console.print()


def _save_result(result, output: str) -> None:  # noqa: ANN001
    """Save result to file."""
    path = Path(output)
    if path.suffix == ".json":
        content = result.to_json()
    else:
        content = result.to_markdown()

    path.write_text(content)
    console.print(f"[green]✓[/green] Result saved to [bold]{path}[/bold]")


if __name__ == "__main__":
    app()
