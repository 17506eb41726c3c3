"""
Office business logic - pure Python, no Flask imports.

Create generates the UUID client-side; update sends the whole record to
the collection endpoint.
"""

import re
import uuid
from typing import Any, Dict, List, Optional

from obras.clients.service import is_valid_email
from obras.core.config import get_config_value
from obras.core.http import get_or_none, quote_id
from obras.core.logging import get_logger

logger = get_logger("obras.offices")

ENDPOINT = "/oficinas/v1"

HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

DEFAULT_BRAND_KEYWORD = "sugate"


def list_offices(api) -> List[Dict[str, Any]]:
    return api.get(ENDPOINT) or []


def get_office(api, office_id: str) -> Optional[Dict[str, Any]]:
    return get_or_none(api, f"{ENDPOINT}/{quote_id(office_id)}")


def create_office(api, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create an office, assigning a UUID4 ``id`` when none is given."""
    payload = {k: v for k, v in data.items() if k not in ("created_at", "updated_at")}
    payload.setdefault("id", None)
    if not payload["id"]:
        payload["id"] = str(uuid.uuid4())
    created = api.post(ENDPOINT, json=payload)
    logger.info("Created office %s (%s)", payload.get("nombre"), payload["id"])
    return created


def update_office(api, office: Dict[str, Any]) -> Dict[str, Any]:
    if not office.get("id"):
        raise ValueError("Office id is required for update")
    return api.put(ENDPOINT, json=office)


def delete_office(api, office_id: str) -> None:
    api.delete(f"{ENDPOINT}/{quote_id(office_id)}")
    logger.info("Deleted office %s", office_id)


def validate_office(data: Dict[str, Any]) -> List[str]:
    """Return a list of error messages; empty when the form is valid."""
    errors = []
    if not (data.get("nombre") or "").strip():
        errors.append("El nombre es requerido")
    email = (data.get("email") or "").strip()
    if email and not is_valid_email(email):
        errors.append("Correo electrónico inválido")
    color = (data.get("color") or "").strip()
    if color and not HEX_COLOR_RE.match(color):
        errors.append("El color debe tener el formato #RRGGBB")
    return errors


def is_brand_office(nombre: Optional[str]) -> bool:
    """True when the office name contains the company brand keyword."""
    keyword = get_config_value("branding", "brand_office_keyword", default=DEFAULT_BRAND_KEYWORD)
    return bool(nombre) and (keyword or DEFAULT_BRAND_KEYWORD).lower() in nombre.lower()


def lighter_color(hex_color: str, opacity: float = 0.2) -> str:
    """Translucent ``rgba()`` version of a ``#RRGGBB`` colour."""
    clean = hex_color.lstrip("#")
    r = int(clean[0:2], 16)
    g = int(clean[2:4], 16)
    b = int(clean[4:6], 16)
    return f"rgba({r}, {g}, {b}, {opacity})"


def office_color_map(offices: List[Dict[str, Any]]) -> Dict[str, str]:
    """Map office name to its colour (offices without a colour are skipped)."""
    return {o["nombre"]: o["color"] for o in offices if o.get("nombre") and o.get("color")}
