"""
Calendar CLI.

Usage:
    obras calendar                       # current month
    obras calendar --date 2025-03-10 --view week
    obras calendar --view month --shift 1
"""

from datetime import date, datetime

import typer

from obras.core.output import format_date

app = typer.Typer(invoke_without_command=True)


@app.callback()
def show(
    day: datetime = typer.Option(None, "--date", "-d", formats=["%Y-%m-%d"], help="Focus date (default today)"),
    view: str = typer.Option("month", "--view", "-v", help="month, week or day"),
    shift: int = typer.Option(0, "--shift", help="Move the focus by N views (negative = back)"),
):
    """List forecast project events in a month, week or day window."""
    from obras.calendar.timeline import build_timeline_events, events_in_range, shift_date, view_window
    from obras.clients.service import list_clients
    from obras.core import ApiError, get_api
    from obras.projects.service import list_projects

    focus = day.date() if day else date.today()
    try:
        if shift:
            focus = shift_date(focus, view, shift)
        start, end = view_window(focus, view)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    api = get_api()
    try:
        events = build_timeline_events(list_projects(api), list_clients(api))
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    visible = sorted(events_in_range(events, start, end), key=lambda e: (e.start, e.title))
    typer.echo(f"Calendario {format_date(start)} - {format_date(end)} ({view})")
    if not visible:
        typer.echo("  Sin proyectos previstos.")
        return

    for e in visible:
        d = e.to_dict()
        typer.echo(
            f"  {format_date(e.start)} -> {format_date(e.end)}  {e.title[:36]:<36} "
            f"{e.client_name[:24]:<24} [{d['estado_label']}]"
        )
