"""
Billing CLI commands.

Usage:
    obras billing show <project_id>
    obras billing quick-create <project_id> "30 40 30"
    obras billing invoice <project_id> <milestone_id>
    obras billing pay <project_id> <milestone_id>
    obras billing add <project_id> "Anticipo" --tipo porcentaje --importe 20
    obras billing edit <project_id> <milestone_id> [--nombre --tipo --importe]
    obras billing remove <project_id> <milestone_id>
"""

import typer

from obras.core.output import format_currency, format_date

app = typer.Typer(no_args_is_help=True)


def _load(api, project_id: str):
    """Project and its billing plan; exits when the project does not exist."""
    from obras.billing.service import get_billing_by_project
    from obras.projects.service import get_project

    project = get_project(api, project_id)
    if not project:
        typer.echo(f"Proyecto {project_id} no encontrado.")
        raise typer.Exit(1)
    return project, get_billing_by_project(api, project_id)


@app.command()
def show(project_id: str = typer.Argument(..., help="Project id")):
    """Show the billing plan and its financial summary."""
    from obras.billing.milestones import billing_summary, milestone_percentage
    from obras.billing.service import billing_budget_total
    from obras.core import ApiError, get_api

    try:
        project, billing = _load(get_api(), project_id)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not billing:
        typer.echo("El proyecto no tiene plan de facturación.")
        raise typer.Exit()

    budget_total = billing_budget_total(billing, project)
    milestones = billing.get("hitos_facturacion") or []

    typer.echo(f"Facturación: {project.get('direccion') or '-'}")
    typer.echo(f"  Dirección facturación: {billing.get('direccion_facturacion') or '-'} "
               f"{billing.get('codigo_postal') or ''}".rstrip())
    typer.echo(f"  Presupuesto: {format_currency(budget_total)}")

    if milestones:
        typer.echo("")
        for m in milestones:
            pct = milestone_percentage(m, budget_total)
            pct_txt = f"{pct:5.1f}%" if pct is not None else "   - "
            typer.echo(
                f"  {m.get('id', ''):<34} {(m.get('nombre') or '-'):<28} "
                f"{format_currency(m.get('total')):>16} {pct_txt}  {m.get('estado', '-'):<10} "
                f"{format_date(m.get('fecha_facturacion'))}"
            )

    s = billing_summary(budget_total, milestones)
    typer.echo("")
    typer.echo(f"  Cobrado:            {format_currency(s.paid):>16}")
    typer.echo(f"  Pendiente de cobro: {format_currency(s.outstanding):>16}")
    typer.echo(f"  Pendiente factura:  {format_currency(s.pending_invoice):>16}")
    typer.echo(f"  Sin asignar:        {format_currency(s.unassigned):>16}")


@app.command("quick-create")
def quick_create(
    project_id: str = typer.Argument(..., help="Project id"),
    percentages: str = typer.Argument(..., help='Whitespace-separated percentages, e.g. "30 40 30"'),
):
    """Add percentage milestones, creating the billing plan if needed."""
    from obras.billing.milestones import new_blank_billing, quick_create_milestones, validate_plan
    from obras.billing.service import billing_budget_total, create_billing, update_billing
    from obras.core import ApiError, BillingError, get_api

    api = get_api()
    try:
        project, billing = _load(api, project_id)
        if billing is None:
            billing = create_billing(api, new_blank_billing(project))

        budget_total = billing_budget_total(billing, project)
        existing = billing.get("hitos_facturacion") or []
        added = quick_create_milestones(percentages, budget_total, start_index=len(existing) + 1)

        milestones = existing + added
        errors = validate_plan(milestones, budget_total)
        if errors:
            raise BillingError(" ".join(errors))

        update_billing(api, {**billing, "hitos_facturacion": milestones})
    except (ApiError, BillingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{len(added)} hitos de facturación creados.")


def _transition(project_id: str, milestone_id: str, action):
    from obras.billing.milestones import find_milestone, replace_milestone
    from obras.billing.service import update_billing
    from obras.core import ApiError, BillingError, get_api

    api = get_api()
    try:
        _, billing = _load(api, project_id)
        milestone = find_milestone(billing or {}, milestone_id)
        if milestone is None:
            typer.echo(f"Hito {milestone_id} no encontrado.")
            raise typer.Exit(1)
        updated = action(milestone)
        update_billing(api, replace_milestone(billing, updated))
    except (ApiError, BillingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    return updated


@app.command()
def invoice(
    project_id: str = typer.Argument(..., help="Project id"),
    milestone_id: str = typer.Argument(..., help="Milestone id"),
):
    """Issue the invoice for a pending milestone."""
    from obras.billing.milestones import invoice_milestone

    m = _transition(project_id, milestone_id, invoice_milestone)
    typer.echo(f"Factura emitida para: {m['nombre']}")


@app.command()
def pay(
    project_id: str = typer.Argument(..., help="Project id"),
    milestone_id: str = typer.Argument(..., help="Milestone id"),
):
    """Mark an invoiced milestone as paid."""
    from obras.billing.milestones import mark_paid

    m = _transition(project_id, milestone_id, mark_paid)
    typer.echo(f"Hito cobrado: {m['nombre']}")


def _save_plan(api, project, billing):
    from obras.billing.milestones import validate_plan
    from obras.billing.service import billing_budget_total, update_billing
    from obras.core import BillingError

    errors = validate_plan(billing.get("hitos_facturacion") or [], billing_budget_total(billing, project))
    if errors:
        raise BillingError(" ".join(errors))
    return update_billing(api, billing)


@app.command()
def add(
    project_id: str = typer.Argument(..., help="Project id"),
    nombre: str = typer.Argument(..., help="Milestone title"),
    tipo: str = typer.Option("porcentaje", "--tipo", help="porcentaje or euro"),
    importe: float = typer.Option(0.0, "--importe", help="Percentage or euro amount"),
):
    """Add one milestone to the billing plan."""
    from obras.billing.milestones import add_milestone, edit_milestone, new_milestone
    from obras.billing.service import billing_budget_total
    from obras.core import ApiError, BillingError, get_api
    from obras.projects.budgets import approved_budget

    api = get_api()
    try:
        project, billing = _load(api, project_id)
        if billing is None or approved_budget(project) is None:
            raise BillingError("Debes aprobar un presupuesto y crear el plan para añadir un hito.")
        milestone = edit_milestone(
            new_milestone(),
            {"nombre": nombre, "tipo_de_importe": tipo, "importe": importe},
            billing_budget_total(billing, project),
        )
        _save_plan(api, project, add_milestone(billing, milestone))
    except (ApiError, BillingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Hito añadido: {milestone['nombre']} ({format_currency(milestone['total'])})")


@app.command()
def edit(
    project_id: str = typer.Argument(..., help="Project id"),
    milestone_id: str = typer.Argument(..., help="Milestone id"),
    nombre: str = typer.Option(None, "--nombre", help="New title"),
    tipo: str = typer.Option(None, "--tipo", help="porcentaje or euro"),
    importe: float = typer.Option(None, "--importe", help="New amount"),
):
    """Change a milestone's title, amount type or amount."""
    from obras.billing.milestones import edit_milestone, find_milestone, replace_milestone
    from obras.billing.service import billing_budget_total
    from obras.core import ApiError, BillingError, get_api

    changes = {
        k: v for k, v in (("nombre", nombre), ("tipo_de_importe", tipo), ("importe", importe))
        if v is not None
    }
    if not changes:
        typer.echo("Nada que cambiar.")
        raise typer.Exit(1)

    api = get_api()
    try:
        project, billing = _load(api, project_id)
        milestone = find_milestone(billing or {}, milestone_id)
        if milestone is None:
            typer.echo(f"Hito {milestone_id} no encontrado.")
            raise typer.Exit(1)
        updated = edit_milestone(milestone, changes, billing_budget_total(billing, project))
        _save_plan(api, project, replace_milestone(billing, updated))
    except (ApiError, BillingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Hito actualizado: {updated['nombre']} ({format_currency(updated['total'])})")


@app.command()
def remove(
    project_id: str = typer.Argument(..., help="Project id"),
    milestone_id: str = typer.Argument(..., help="Milestone id"),
):
    """Delete a milestone from the billing plan."""
    from obras.billing.milestones import find_milestone, remove_milestone
    from obras.core import ApiError, BillingError, get_api

    api = get_api()
    try:
        project, billing = _load(api, project_id)
        if find_milestone(billing or {}, milestone_id) is None:
            typer.echo(f"Hito {milestone_id} no encontrado.")
            raise typer.Exit(1)
        _save_plan(api, project, remove_milestone(billing, milestone_id))
    except (ApiError, BillingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Hito {milestone_id} eliminado.")
