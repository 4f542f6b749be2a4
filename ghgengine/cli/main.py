# -*- coding: utf-8 -*-
"""
GHG Engine CLI
==============

Commands:
    ghgengine import-factors <file> [--policy skip|replace|keep_both]  - Import a factor CSV
    ghgengine calculate <fuel> <quantity> <unit> [--sector ...]         - Stationary combustion CO2e
    ghgengine fuels [--sector ...]                                      - List catalog fuels

Example:
    $ ghgengine import-factors factors.csv --policy keep_both --seed-catalog
    $ ghgengine calculate "Óleo Diesel (puro)" 1000 L --sector Energia
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ghgengine.calculation import EmissionCalculator, FuelCatalog
from ghgengine.calculation.fuel_catalog import EconomicSector
from ghgengine.config import get_config
from ghgengine.exceptions import CalculationException, ConfigurationError, ImportException
from ghgengine.factor_import import FactorImportOrchestrator, ImportReport, ImportStatus, seed_catalog_factors
from ghgengine.store import InMemoryFactorStore

app = typer.Typer(
    name="ghgengine",
    help="Emission factor import and GHG emission calculation",
    no_args_is_help=True,
)

console = Console()

_STATUS_STYLE = {
    ImportStatus.SUCCESS: "green",
    ImportStatus.WARNING: "yellow",
    ImportStatus.ERROR: "red",
    ImportStatus.DUPLICATE: "cyan",
}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default from GHG_LOG_LEVEL)"),
):
    """Configure logging for all commands."""
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_catalog() -> FuelCatalog:
    try:
        return FuelCatalog.from_yaml(get_config().fuel_catalog_path)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)


def _parse_sector(sector: Optional[str]) -> Optional[EconomicSector]:
    if sector is None:
        return None
    try:
        return EconomicSector(sector)
    except ValueError:
        valid = ", ".join(f'"{s.value}"' for s in EconomicSector)
        console.print(f"[red]✗[/red] Unknown sector {sector!r}. Valid sectors: {valid}")
        raise typer.Exit(1)


@app.command("import-factors")
def import_factors(
    file: Path = typer.Argument(..., help="CSV file with emission factors"),
    policy: str = typer.Option("skip", "--policy", "-p", help="Duplicate policy: skip, replace or keep_both"),
    seed_catalog: bool = typer.Option(
        False, "--seed-catalog/--no-seed-catalog",
        help="Reconcile against the bundled fuel catalog as system factors",
    ),
    show_rows: bool = typer.Option(True, "--show-rows/--hide-rows", help="List the outcome of each row"),
):
    """Import an emission factor CSV and print the per-row report."""
    if policy not in ("skip", "replace", "keep_both"):
        console.print(f"[red]✗[/red] Unknown policy {policy!r}")
        raise typer.Exit(1)

    store = InMemoryFactorStore()

    async def _run() -> ImportReport:
        if seed_catalog:
            summary = await seed_catalog_factors(_load_catalog(), store)
            console.print(f"[dim]Seeded {summary.created} system factors[/dim]")
        orchestrator = FactorImportOrchestrator(store)
        return await orchestrator.import_file(file, policy=policy)

    try:
        report = asyncio.run(_run())
    except ImportException as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)

    _print_report(report, show_rows)
    if report.errors:
        raise typer.Exit(2)


def _print_report(report: ImportReport, show_rows: bool) -> None:
    counts = report.status_counts
    console.print(Panel(
        f"Rows: {report.total_rows}\n"
        f"[green]Success: {counts['success']}[/green]    "
        f"[yellow]Warnings: {counts['warning']}[/yellow]    "
        f"[red]Errors: {counts['error']}[/red]    "
        f"[cyan]Duplicates: {report.duplicates}[/cyan]",
        title=f"Import report: {report.file_name}",
    ))
    if not show_rows or not report.outcomes:
        return

    table = Table(title="Row outcomes")
    table.add_column("Row", justify="right")
    table.add_column("Status")
    table.add_column("Name")
    table.add_column("Message")
    for outcome in report.outcomes:
        style = _STATUS_STYLE[outcome.status]
        table.add_row(
            str(outcome.row_number),
            f"[{style}]{outcome.status.value}[/{style}]",
            outcome.name or "",
            outcome.message,
        )
    console.print(table)


@app.command()
def calculate(
    fuel: str = typer.Argument(..., help="Fuel name from the catalog"),
    quantity: float = typer.Argument(..., help="Activity quantity"),
    unit: str = typer.Argument(..., help="Activity unit (kg, L, m³, t, ...)"),
    sector: Optional[str] = typer.Option(None, "--sector", "-s", help="Economic sector"),
):
    """Calculate stationary combustion emissions for one fuel quantity."""
    catalog = _load_catalog()
    try:
        calculator = EmissionCalculator(catalog)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)

    try:
        result = calculator.calculate(fuel, quantity, unit, _parse_sector(sector))
    except CalculationException as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)

    details = result.details
    console.print(Panel(
        f"Fuel: {details.fuel_name}\n"
        f"Mass: {details.mass_kg} kg\n\n"
        f"CO2: {result.co2} t    CH4: {result.ch4} t    N2O: {result.n2o} t\n"
        f"[bold]Fossil CO2e:[/bold] {result.fossil_co2e} t\n"
        f"[bold]Biogenic CO2e:[/bold] {result.biogenic_co2e} t\n"
        f"[bold green]Total CO2e:[/bold green] {result.total_co2e} t\n\n"
        f"[dim]Provenance: {result.provenance_hash}[/dim]",
        title="Stationary combustion",
    ))


@app.command()
def fuels(
    sector: Optional[str] = typer.Option(None, "--sector", "-s", help="Only fuels valid for this sector"),
):
    """List fuels in the reference catalog."""
    catalog = _load_catalog()
    selected = _parse_sector(sector)
    entries = catalog.for_sector(selected) if selected else list(catalog)

    table = Table(title=f"Fuels ({len(entries)})")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Unit")
    table.add_column("Calorific value", justify="right")
    table.add_column("Biofuel")
    for entry in entries:
        table.add_row(
            entry.name,
            entry.category.value,
            entry.activity_unit,
            f"{entry.calorific_value} {entry.calorific_value_unit}",
            "yes" if entry.is_biofuel else "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
