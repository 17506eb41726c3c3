"""
Finance CLI commands.

Usage:
    obras finance summary [--from 2025-01-01] [--to 2025-06-30] [--office X] [--status Y]
    obras finance export  [--from ...] [--to ...] [--project <id> ...] [--server]
"""

from datetime import datetime
from pathlib import Path
from typing import List

import typer

from obras.core.output import format_currency, format_percent

app = typer.Typer(no_args_is_help=True)

_DATE_FORMATS = ["%Y-%m-%d"]


def _filtered(api, date_from, date_to, search, office, status):
    from obras.finance.records import filter_records, load_financial_data, search_records

    dataset = load_financial_data(api, date_from, date_to)
    rows = search_records(dataset.records, search)
    rows = filter_records(rows, offices=office, statuses=status)
    return dataset, rows


@app.command()
def summary(
    date_from: datetime = typer.Option(None, "--from", formats=_DATE_FORMATS, help="Created on or after"),
    date_to: datetime = typer.Option(None, "--to", formats=_DATE_FORMATS, help="Created on or before"),
    search: str = typer.Option(None, "--search", "-s", help="Search project, client or office"),
    office: List[str] = typer.Option(None, "--office", help="Filter by office (repeatable)"),
    status: List[str] = typer.Option(None, "--status", help="Filter by project status (repeatable)"),
):
    """Per-project budget, collected, invoiced and unassigned amounts."""
    from obras.core import ApiError, get_api
    from obras.finance.records import sum_records

    try:
        _, rows = _filtered(get_api(), date_from, date_to, search, office, status)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not rows:
        typer.echo("Sin registros financieros.")
        raise typer.Exit()

    typer.echo(
        f"{'Proyecto':<32} {'Cliente':<24} {'Presupuesto':>15} {'Cobrado':>15} "
        f"{'Pdte. Cobro':>15} {'Pdte. Factura':>15} {'Sin Asignar':>15}"
    )
    typer.echo("-" * 137)
    for r in rows:
        typer.echo(
            f"{r.project_name[:32]:<32} {r.client_name[:24]:<24} "
            f"{format_currency(r.total_budget):>15} {format_currency(r.payments_received):>15} "
            f"{format_currency(r.facturado):>15} {format_currency(r.pendiente_factura):>15} "
            f"{format_currency(r.unassigned):>15}"
        )

    t = sum_records(rows)
    typer.echo("-" * 137)
    typer.echo(
        f"{f'TOTALES ({len(rows)} proyectos)':<57} "
        f"{format_currency(t['total_budget']):>15} {format_currency(t['payments_received']):>15} "
        f"{format_currency(t['facturado']):>15} {format_currency(t['pendiente_factura']):>15} "
        f"{format_currency(t['unassigned']):>15}"
    )
    typer.echo(
        f"\n  Cobrado {format_percent(t['payments_received'], t['total_budget'])}"
        f"  |  Pdte. cobro {format_percent(t['facturado'], t['total_budget'])}"
        f"  |  Pdte. factura {format_percent(t['pendiente_factura'], t['total_budget'])}"
    )


@app.command()
def export(
    date_from: datetime = typer.Option(None, "--from", formats=_DATE_FORMATS, help="Created on or after"),
    date_to: datetime = typer.Option(None, "--to", formats=_DATE_FORMATS, help="Created on or before"),
    search: str = typer.Option(None, "--search", "-s", help="Search project, client or office"),
    office: List[str] = typer.Option(None, "--office", help="Filter by office (repeatable)"),
    status: List[str] = typer.Option(None, "--status", help="Filter by project status (repeatable)"),
    project: List[str] = typer.Option(None, "--project", "-p", help="Export only these project ids"),
    output: Path = typer.Option(None, "--output", "-o", help="Output directory"),
    server: bool = typer.Option(False, "--server", help="Use the backend's billing export instead"),
):
    """Export the financial report to an Excel workbook."""
    from obras.core import OBRAS_PATHS, ApiError, get_api
    from obras.finance.excel_export import (
        build_export_rows, date_range_label, export_filename, write_financial_workbook,
    )
    from obras.finance.records import select_rows_for_export

    api = get_api()
    label = date_range_label(
        date_from.date() if date_from else None,
        date_to.date() if date_to else None,
    )

    try:
        if server:
            from obras.billing.service import export_billing_excel

            content = export_billing_excel(api, date_from, date_to)
            out_dir = output or OBRAS_PATHS.exports
            out_dir.mkdir(parents=True, exist_ok=True)
            path = out_dir / export_filename(label)
            path.write_bytes(content)
            typer.echo(f"Exportación guardada en {path}")
            return

        dataset, rows = _filtered(api, date_from, date_to, search, office, status)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    selected = select_rows_for_export(rows, project)
    if not selected:
        typer.echo("Sin datos para exportar: no hay registros visibles.", err=True)
        raise typer.Exit(1)

    path = write_financial_workbook(build_export_rows(dataset, selected), label, output)
    typer.echo(f"Se han exportado {len(selected)} registros -> {path}")
