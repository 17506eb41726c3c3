"""
Offices Blueprint - office locations.

Thin delivery layer: all business logic lives in offices.service.
"""

from flask import Blueprint, jsonify, render_template

from obras.api.helpers import backend, json_body
from obras.core.errors import ValidationError

bp = Blueprint("offices", __name__, url_prefix="/oficinas")


@bp.route("/")
def index():
    """Office cards."""
    from obras.offices.service import is_brand_office, lighter_color, list_offices

    cards = []
    for o in list_offices(backend()):
        color = o.get("color") or ""
        cards.append({
            **o,
            "is_brand": is_brand_office(o.get("nombre")),
            "badge_bg": lighter_color(color) if color else "",
        })
    return render_template("offices/index.html", offices=cards)


@bp.route("/api/offices", methods=["GET"])
def api_list_offices():
    from obras.offices.service import list_offices

    return jsonify(list_offices(backend()))


@bp.route("/api/offices", methods=["POST"])
def api_create_office():
    from obras.offices.service import create_office, validate_office

    data = json_body()
    errors = validate_office(data)
    if errors:
        raise ValidationError(errors)
    return jsonify(create_office(backend(), data)), 201


@bp.route("/api/offices/<office_id>", methods=["PUT"])
def api_update_office(office_id: str):
    from obras.offices.service import update_office, validate_office

    data = {**json_body(), "id": office_id}
    errors = validate_office(data)
    if errors:
        raise ValidationError(errors)
    return jsonify(update_office(backend(), data))


@bp.route("/api/offices/<office_id>", methods=["DELETE"])
def api_delete_office(office_id: str):
    from obras.offices.service import delete_office

    delete_office(backend(), office_id)
    return "", 204
