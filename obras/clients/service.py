"""
Client business logic - pure Python, no Flask imports.

Every function that touches the backend takes the API client as its first
argument, so tests can pass an in-memory fake.
"""

import re
from typing import Any, Dict, List, Optional

from obras.core.http import get_or_none, quote_id
from obras.core.logging import get_logger

logger = get_logger("obras.clients")

ENDPOINT = "/clientes/v1"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Assigned by the server; never sent on create
_SERVER_FIELDS = ("_id", "nombre_completo", "created_at", "updated_at")

_SEARCH_FIELDS = ("nombre", "apellido1", "apellido2", "nombre_completo", "dni", "email", "telefono")


# =============================================================================
# Backend access
# =============================================================================

def build_filter(field: Optional[str], value: Optional[str], operand: str = "eq") -> Optional[str]:
    """Encode a ``field[operand]value`` filter, or None when incomplete."""
    if not field or value is None or value == "":
        return None
    return f"{field}[{operand or 'eq'}]{value}"


def list_clients(api, filter: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
    """List clients, optionally filtered server-side."""
    params = None
    if filter:
        encoded = build_filter(filter.get("field"), filter.get("value"), filter.get("operand", "eq"))
        if encoded:
            params = {"filter": encoded}
    return api.get(ENDPOINT, params=params) or []


def get_client(api, client_id: str) -> Optional[Dict[str, Any]]:
    return get_or_none(api, f"{ENDPOINT}/id/{quote_id(client_id)}")


def get_client_by_dni(api, dni: str) -> Optional[Dict[str, Any]]:
    return get_or_none(api, f"{ENDPOINT}/{quote_id(dni)}")


def create_client(api, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create a client. Server-assigned fields are dropped from the payload."""
    payload = {k: v for k, v in data.items() if k not in _SERVER_FIELDS}
    created = api.post(ENDPOINT, json=payload)
    logger.info("Created client %s", display_name(created or payload))
    return created


def update_client(api, client: Dict[str, Any]) -> Dict[str, Any]:
    if not client.get("_id"):
        raise ValueError("Client _id is required for update")
    return api.put(f"{ENDPOINT}/id/{quote_id(client['_id'])}", json=client)


def delete_client(api, client_id: str) -> None:
    api.delete(f"{ENDPOINT}/id/{quote_id(client_id)}")
    logger.info("Deleted client %s", client_id)


# =============================================================================
# Validation and display
# =============================================================================

def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def validate_client(data: Dict[str, Any]) -> List[str]:
    """Return a list of error messages; empty when the form is valid."""
    errors = []
    if not (data.get("nombre") or "").strip():
        errors.append("El nombre es obligatorio")
    if not (data.get("apellido1") or "").strip():
        errors.append("El primer apellido es obligatorio")
    email = (data.get("email") or "").strip()
    if email and not is_valid_email(email):
        errors.append("El email no es válido")
    return errors


def display_name(client: Optional[Dict[str, Any]]) -> str:
    """``nombre_completo`` when present, else the joined name parts."""
    if not client:
        return ""
    if client.get("nombre_completo"):
        return client["nombre_completo"]
    parts = [client.get("nombre"), client.get("apellido1"), client.get("apellido2")]
    return " ".join(p for p in parts if p).strip()


def search_clients(clients: List[Dict[str, Any]], text: Optional[str]) -> List[Dict[str, Any]]:
    """Case-insensitive substring search over names, dni, email and phone."""
    needle = (text or "").strip().lower()
    if not needle:
        return list(clients)
    return [
        c for c in clients
        if any(needle in str(c.get(f) or "").lower() for f in _SEARCH_FIELDS)
    ]


def client_name_map(clients: List[Dict[str, Any]]) -> Dict[str, str]:
    """Map client ``_id`` to display name."""
    return {c["_id"]: display_name(c) for c in clients if c.get("_id")}
