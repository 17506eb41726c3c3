"""
Client CLI commands.

Usage:
    obras clients list [--search TEXT]
    obras clients show <id>
    obras clients create --nombre ... --apellido1 ...
    obras clients delete <id>
"""

import typer

from obras.core.output import OutputFormat, format_result

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_clients(
    search: str = typer.Option(None, "--search", "-s", help="Filter by name, DNI, email or phone"),
    field: str = typer.Option(None, help="Server-side filter field (e.g. ciudad)"),
    value: str = typer.Option(None, help="Server-side filter value"),
    operand: str = typer.Option("eq", help="Server-side filter operand"),
):
    """List clients."""
    from obras.core import ApiError, get_api
    from obras.clients.service import display_name, list_clients as _list, search_clients

    try:
        rows = _list(get_api(), filter={"field": field, "value": value, "operand": operand})
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    rows = search_clients(rows, search)
    if not rows:
        typer.echo("No se encontraron clientes.")
        raise typer.Exit()

    typer.echo(f"{'ID':<26} {'Nombre':<36} {'DNI':<12} {'Email':<30}")
    typer.echo("-" * 106)
    for c in rows:
        typer.echo(
            f"{c.get('_id', ''):<26} {display_name(c):<36} "
            f"{(c.get('dni') or '-'):<12} {(c.get('email') or '-'):<30}"
        )
    typer.echo(f"\n  {len(rows)} cliente(s)")


@app.command()
def show(
    client_id: str = typer.Argument(..., help="Client _id (or DNI with --dni)"),
    dni: bool = typer.Option(False, "--dni", help="Look the client up by DNI"),
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """Show one client."""
    from obras.core import ApiError, get_api
    from obras.clients.service import get_client, get_client_by_dni

    try:
        lookup = get_client_by_dni if dni else get_client
        client = lookup(get_api(), client_id)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not client:
        typer.echo(f"Cliente {client_id} no encontrado.")
        raise typer.Exit(1)

    typer.echo(format_result(client, fmt, title="Cliente"))


@app.command()
def create(
    nombre: str = typer.Option(..., help="First name"),
    apellido1: str = typer.Option(..., help="First surname"),
    apellido2: str = typer.Option(None, help="Second surname"),
    dni: str = typer.Option(None, help="DNI/NIF"),
    email: str = typer.Option("", help="Email address"),
    telefono: str = typer.Option(None, help="Phone number"),
):
    """Create a client."""
    from obras.core import ApiError, get_api
    from obras.clients.service import create_client, display_name, validate_client

    data = {
        "nombre": nombre,
        "apellido1": apellido1,
        "apellido2": apellido2,
        "dni": dni,
        "email": email,
        "telefono": telefono,
    }
    data = {k: v for k, v in data.items() if v is not None}

    errors = validate_client(data)
    if errors:
        for msg in errors:
            typer.echo(f"  - {msg}", err=True)
        raise typer.Exit(1)

    try:
        created = create_client(get_api(), data)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Cliente creado: {display_name(created or data)} ({(created or {}).get('_id', '-')})")


@app.command()
def delete(
    client_id: str = typer.Argument(..., help="Client _id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a client."""
    from obras.core import ApiError, get_api
    from obras.clients.service import delete_client

    if not yes:
        typer.confirm(f"¿Eliminar el cliente {client_id}?", abort=True)

    try:
        delete_client(get_api(), client_id)
    except ApiError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Cliente {client_id} eliminado.")
