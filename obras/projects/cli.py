"""
Project CLI commands.

Usage:
    obras projects list [--status en_ejecucion] [--office "Oficina Norte"]
    obras projects show <id>
    obras projects status <id> finalizado --nota "Entregado"
    obras projects budget-pdf <id> [--budget <budget_id>]
"""

from pathlib import Path
from typing import List

import typer

from obras.core.output import format_currency, format_date

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_projects(
    search: str = typer.Option(None, "--search", "-s", help="Search address, city, client or office"),
    status: List[str] = typer.Option(None, "--status", help="Filter by status (repeatable)"),
    office: List[str] = typer.Option(None, "--office", help="Filter by office (repeatable)"),
):
    """List projects with client and status."""
    from obras.clients.service import list_clients
    from obras.core import ApiError, get_api
    from obras.offices.service import list_offices
    from obras.projects.service import (
        enrich_projects, filter_projects, list_projects as _list, project_stats,
    )

    api = get_api()
    try:
        rows = enrich_projects(_list(api), list_clients(api), list_offices(api))
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    rows = filter_projects(rows, search=search, statuses=status, offices=office)
    if not rows:
        typer.echo("No se encontraron proyectos.")
        return

    for p in rows:
        typer.echo(
            f"  {p.get('id', ''):<26} {(p.get('direccion') or '-'):<36} "
            f"{(p.get('ciudad') or '-'):<16} {p['cliente_nombre']:<28} [{p['estado_label']}]"
        )

    stats = project_stats(rows)
    typer.echo(
        f"\n  {stats['total']} proyecto(s), {stats['en_ejecucion']} en ejecución, "
        f"{stats['finalizados']} finalizado(s)"
    )


@app.command()
def show(project_id: str = typer.Argument(..., help="Project id")):
    """Show project details, budgets and status history."""
    from obras.clients.service import display_name, get_client
    from obras.core import ApiError, get_api
    from obras.projects.budgets import calculate_budget_totals
    from obras.projects.models import status_label
    from obras.projects.service import get_project

    api = get_api()
    try:
        project = get_project(api, project_id)
        client = get_client(api, project["id_cliente"]) if project and project.get("id_cliente") else None
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not project:
        typer.echo(f"Proyecto {project_id} no encontrado.")
        raise typer.Exit(1)

    prevision = project.get("prevision") or {}
    ejecucion = project.get("ejecucion") or {}
    typer.echo(f"Proyecto: {project.get('direccion') or '-'}, {project.get('ciudad') or '-'}")
    typer.echo(f"  Cliente: {display_name(client) or 'Cliente desconocido'}")
    typer.echo(f"  Oficina: {project.get('oficina') or '-'}")
    typer.echo(f"  Estado:  {status_label(project.get('estado'))}")
    typer.echo(
        f"  Previsión: {format_date(prevision.get('fecha_inicio'))} "
        f"({prevision.get('dias_ejecucion') or 0} días)"
    )
    typer.echo(
        f"  Ejecución: {format_date(ejecucion.get('fecha_inicio'))} - "
        f"{format_date(ejecucion.get('fecha_fin'))}"
    )

    budgets = project.get("presupuestos") or []
    if budgets:
        typer.echo("\nPresupuestos:")
        for b in budgets:
            flag = "*" if b.get("id") == project.get("budget_id_aprobado") else " "
            total = calculate_budget_totals(b).total
            typer.echo(
                f"  [{flag}] {b.get('id', ''):<34} {(b.get('nombre') or '-'):<24} "
                f"{(b.get('estado') or '-'):<10} {format_currency(total):>16}"
            )

    history = project.get("fechas_cambio_estado") or []
    if history:
        typer.echo("\nHistorial de estados:")
        for h in history:
            nota = f"  {h['nota']}" if h.get("nota") else ""
            typer.echo(f"  {format_date(h.get('fecha'))}  {status_label(h.get('estado'))}{nota}")


@app.command()
def status(
    project_id: str = typer.Argument(..., help="Project id"),
    new_status: str = typer.Argument(..., help="presupuesto, planificacion, en_ejecucion, ..."),
    nota: str = typer.Option(None, "--nota", "-n", help="Note stored with the change"),
):
    """Change a project's status and record it in the history."""
    from obras.core import ApiError, ValidationError, get_api
    from obras.projects.models import status_label
    from obras.projects.service import change_status, get_project, update_project

    api = get_api()
    try:
        project = get_project(api, project_id)
        if not project:
            typer.echo(f"Proyecto {project_id} no encontrado.")
            raise typer.Exit(1)
        update_project(api, change_status(project, new_status, nota=nota))
    except (ApiError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Proyecto {project_id}: {status_label(new_status)}")


@app.command("budget-pdf")
def budget_pdf(
    project_id: str = typer.Argument(..., help="Project id"),
    budget_id: str = typer.Option(None, "--budget", "-b", help="Budget id (default: approved)"),
    output: Path = typer.Option(None, "--output", "-o", help="Output directory"),
):
    """Download a budget as PDF."""
    from obras.core import OBRAS_PATHS, ApiError, get_api
    from obras.projects.budgets import approved_budget
    from obras.projects.service import generate_budget_pdf, get_project

    api = get_api()
    try:
        project = get_project(api, project_id)
        if not project:
            typer.echo(f"Proyecto {project_id} no encontrado.")
            raise typer.Exit(1)

        budgets = {b.get("id"): b for b in project.get("presupuestos") or []}
        budget = budgets.get(budget_id) if budget_id else approved_budget(project)
        if budget is None and budget_id:
            budget = {"id": budget_id}
        if budget is None:
            typer.echo("El proyecto no tiene presupuesto aprobado; indique --budget.")
            raise typer.Exit(1)

        path = generate_budget_pdf(
            api,
            project_id,
            budget["id"],
            project.get("direccion") or "",
            budget.get("created_at"),
            output or OBRAS_PATHS.exports,
        )
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"PDF guardado en {path}")
