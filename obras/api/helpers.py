"""
Request helpers shared by the blueprints.
"""

from typing import Any, Dict, List

from flask import current_app, request


def backend():
    """The REST client registered by create_app."""
    return current_app.extensions["obras_api"]


def json_body() -> Dict[str, Any]:
    return request.get_json(force=True, silent=True) or {}


def list_arg(name: str) -> List[str]:
    """Query arg given repeated (``?x=a&x=b``) or comma-separated (``?x=a,b``)."""
    values = []
    for raw in request.args.getlist(name):
        values.extend(v.strip() for v in raw.split(",") if v.strip())
    return values
