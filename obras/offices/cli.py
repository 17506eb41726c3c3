"""
Office CLI commands.

Usage:
    obras offices list
    obras offices create --nombre "Oficina Norte" --color "#3366ff"
    obras offices delete <id>
"""

import typer

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_offices():
    """List office locations."""
    from obras.core import ApiError, get_api
    from obras.offices.service import is_brand_office, list_offices as _list

    try:
        rows = _list(get_api())
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not rows:
        typer.echo("No hay oficinas.")
        raise typer.Exit()

    typer.echo(f"{'ID':<38} {'Nombre':<28} {'Color':<9} {'Email':<30}")
    typer.echo("-" * 108)
    for o in rows:
        flag = " *" if is_brand_office(o.get("nombre")) else ""
        typer.echo(
            f"{o.get('id', ''):<38} {(o.get('nombre') or '') + flag:<28} "
            f"{(o.get('color') or '-'):<9} {(o.get('email') or '-'):<30}"
        )


@app.command()
def create(
    nombre: str = typer.Option(..., help="Office name"),
    direccion: str = typer.Option(None, help="Street address"),
    telefono: str = typer.Option(None, help="Phone number"),
    email: str = typer.Option("", help="Email address"),
    color: str = typer.Option("", help="Badge colour as #RRGGBB"),
):
    """Create an office."""
    from obras.core import ApiError, get_api
    from obras.offices.service import create_office, validate_office

    data = {
        "nombre": nombre,
        "direccion": direccion,
        "telefono": telefono,
        "email": email,
        "color": color,
    }
    errors = validate_office(data)
    if errors:
        for msg in errors:
            typer.echo(f"  - {msg}", err=True)
        raise typer.Exit(1)

    try:
        created = create_office(get_api(), {k: v for k, v in data.items() if v is not None})
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Oficina creada: {nombre} ({(created or {}).get('id', '-')})")


@app.command()
def delete(
    office_id: str = typer.Argument(..., help="Office id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete an office."""
    from obras.core import ApiError, get_api
    from obras.offices.service import delete_office

    if not yes:
        typer.confirm(f"¿Eliminar la oficina {office_id}?", abort=True)

    try:
        delete_office(get_api(), office_id)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Oficina {office_id} eliminada.")
