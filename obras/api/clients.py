"""
Clients Blueprint - client directory.

Thin delivery layer: all business logic lives in clients.service.
"""

from flask import Blueprint, abort, jsonify, render_template, request

from obras.api.helpers import backend, json_body
from obras.core.errors import ValidationError

bp = Blueprint("clients", __name__, url_prefix="/clientes")


# ---------------------------------------------------------------------------
# Page routes (render templates)
# ---------------------------------------------------------------------------


@bp.route("/")
def index():
    """Client directory with search."""
    from obras.clients.service import list_clients, search_clients

    search = request.args.get("search", "")
    clients = search_clients(list_clients(backend()), search)
    return render_template("clients/index.html", clients=clients, search=search)


@bp.route("/<client_id>")
def detail(client_id: str):
    """Client profile with their projects."""
    from obras.clients.service import get_client
    from obras.projects.service import list_projects

    api = backend()
    client = get_client(api, client_id)
    if not client:
        abort(404)
    projects = [p for p in list_projects(api) if p.get("id_cliente") == client_id]
    return render_template("clients/detail.html", client=client, projects=projects)


# ---------------------------------------------------------------------------
# Clients API
# ---------------------------------------------------------------------------


@bp.route("/api/clients", methods=["GET"])
def api_list_clients():
    from obras.clients.service import list_clients, search_clients

    filt = {
        "field": request.args.get("field"),
        "value": request.args.get("value"),
        "operand": request.args.get("operand", "eq"),
    }
    rows = list_clients(backend(), filter=filt)
    return jsonify(search_clients(rows, request.args.get("search")))


@bp.route("/api/clients/<client_id>", methods=["GET"])
def api_get_client(client_id: str):
    from obras.clients.service import get_client, get_client_by_dni

    lookup = get_client_by_dni if request.args.get("by") == "dni" else get_client
    client = lookup(backend(), client_id)
    if not client:
        abort(404)
    return jsonify(client)


@bp.route("/api/clients", methods=["POST"])
def api_create_client():
    from obras.clients.service import create_client, validate_client

    data = json_body()
    errors = validate_client(data)
    if errors:
        raise ValidationError(errors)
    return jsonify(create_client(backend(), data)), 201


@bp.route("/api/clients/<client_id>", methods=["PUT"])
def api_update_client(client_id: str):
    from obras.clients.service import update_client, validate_client

    data = {**json_body(), "_id": client_id}
    errors = validate_client(data)
    if errors:
        raise ValidationError(errors)
    return jsonify(update_client(backend(), data))


@bp.route("/api/clients/<client_id>", methods=["DELETE"])
def api_delete_client(client_id: str):
    from obras.clients.service import delete_client

    delete_client(backend(), client_id)
    return "", 204
