"""
Obras CLI - Main Entry Point

Unified Typer CLI that assembles all module sub-commands.

Usage:
    obras version
    obras config
    obras serve [--debug]
    obras clients [command]
    obras offices [command]
    obras projects [command]
    obras billing [command]
    obras finance [command]
    obras calendar [--date YYYY-MM-DD]
"""

import typer

import obras
from obras.core.output import OutputFormat, format_result

app = typer.Typer(
    name="obras",
    help="Construction project, budget and billing dashboard.",
    no_args_is_help=True,
)

_SECRET_KEYS = {"token", "client_secret", "secret_key"}


@app.command()
def version():
    """Show Obras version."""
    typer.echo(f"obras {obras.__version__}")


def _mask_secrets(data):
    if isinstance(data, dict):
        return {
            k: ("****" if k in _SECRET_KEYS and v else _mask_secrets(v))
            for k, v in data.items()
        }
    return data


@app.command("config")
def show_config(
    fmt: OutputFormat = typer.Option(OutputFormat.HUMAN, "--format", "-f"),
):
    """Show the effective configuration (secrets masked)."""
    from obras.core.config import CONFIG_PATH, get_config

    try:
        config = get_config(reload=True)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(format_result(_mask_secrets(config), fmt, title=f"Config ({CONFIG_PATH})"))


@app.command()
def serve(
    port: int = typer.Option(None, "--port", "-p", help="Port number (default: web.port)"),
    host: str = typer.Option(None, "--host", "-h", help="Host address (default: web.host)"),
    debug: bool = typer.Option(False, "--debug", help="Use Flask dev server with auto-reload"),
    threads: int = typer.Option(None, "--threads", "-t", help="Waitress worker threads"),
):
    """Launch the Obras web interface.

    Default: Waitress server on the configured host/port.
    With --debug: Flask dev server with auto-reload.
    """
    from waitress import serve as waitress_serve

    from obras.api import create_app
    from obras.core.config import get_config_value

    _host = host or get_config_value("web", "host", default="127.0.0.1")
    _port = port or int(get_config_value("web", "port", default=5000))
    _threads = threads or int(get_config_value("web", "threads", default=4))

    web = create_app()

    if debug:
        typer.echo(f"Starting Flask dev server at http://{_host}:{_port}")
        web.run(host=_host, port=_port, debug=True)
        return

    typer.echo(f"Starting Waitress server on {_host}:{_port} ({_threads} threads)")
    waitress_serve(web, host=_host, port=_port, threads=_threads)


def _register_modules():
    """Register module CLI sub-apps."""
    from obras.billing.cli import app as billing_app
    from obras.calendar.cli import app as calendar_app
    from obras.clients.cli import app as clients_app
    from obras.finance.cli import app as finance_app
    from obras.offices.cli import app as offices_app
    from obras.projects.cli import app as projects_app

    app.add_typer(clients_app, name="clients", help="Client directory")
    app.add_typer(offices_app, name="offices", help="Office locations")
    app.add_typer(projects_app, name="projects", help="Projects, status & budgets")
    app.add_typer(billing_app, name="billing", help="Billing plans & milestones")
    app.add_typer(finance_app, name="finance", help="Financial report & Excel export")
    app.add_typer(calendar_app, name="calendar", help="Project forecast calendar")


_register_modules()


def main():
    """Entry point for the obras CLI."""
    app()


if __name__ == "__main__":
    main()
