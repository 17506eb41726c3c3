"""
Project business logic - pure Python, no Flask imports.

CRUD over ``/proyectos/v1``, the budget PDF download, and the list-screen
helpers (enrichment with client/office data, filtering, stats).
"""

import copy
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from obras.clients.service import client_name_map
from obras.core.errors import ValidationError
from obras.core.http import get_or_none, quote_id
from obras.core.logging import get_logger
from obras.core.output import now_iso, parse_date
from obras.offices.service import office_color_map
from obras.projects.models import ProjectStatus, status_label

logger = get_logger("obras.projects")

ENDPOINT = "/proyectos/v1"

UNKNOWN_CLIENT = "Cliente desconocido"

_REQUIRED_ON_CREATE = {
    "id_cliente": "El cliente es obligatorio",
    "direccion": "La dirección es obligatoria",
    "ciudad": "La ciudad es obligatoria",
    "oficina": "La oficina es obligatoria",
}


# =============================================================================
# Backend access
# =============================================================================

def list_projects(api) -> List[Dict[str, Any]]:
    return api.get(ENDPOINT) or []


def get_project(api, project_id: str) -> Optional[Dict[str, Any]]:
    return get_or_none(api, f"{ENDPOINT}/{quote_id(project_id)}")


def create_project(api, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create a project from the new-project form. Raises ValidationError."""
    errors = validate_new_project(data)
    if errors:
        raise ValidationError(errors)
    payload = {k: data[k] for k in ("id_cliente", "direccion", "ciudad", "oficina") if data.get(k)}
    created = api.post(ENDPOINT, json=payload)
    logger.info("Created project at %s, %s", payload["direccion"], payload["ciudad"])
    return created


def update_project(api, project: Dict[str, Any]) -> Dict[str, Any]:
    """Send the whole project record back to the collection endpoint."""
    if not project.get("id"):
        raise ValueError("Project id is required for update")
    return api.put(ENDPOINT, json=project)


def delete_project(api, project_id: str) -> None:
    api.delete(f"{ENDPOINT}/{quote_id(project_id)}")
    logger.info("Deleted project %s", project_id)


def budget_pdf_filename(address: str, budget_date: Union[str, date, datetime, None]) -> str:
    """``Presupuesto_<address>_<YYYY-MM-DD>.pdf`` with the address reduced to [a-z0-9_]."""
    safe_address = re.sub(r"[^a-z0-9]", "_", address or "", flags=re.IGNORECASE).lower()
    parsed = parse_date(budget_date) or datetime.now(timezone.utc)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return f"Presupuesto_{safe_address}_{parsed.strftime('%Y-%m-%d')}.pdf"


def fetch_budget_pdf(api, project_id: str, budget_id: str):
    """Render a budget PDF on the backend. Returns (content, content_type)."""
    endpoint = f"{ENDPOINT}/{quote_id(project_id)}/presupuesto/{quote_id(budget_id)}"
    return api.download("POST", endpoint)


def generate_budget_pdf(
    api,
    project_id: str,
    budget_id: str,
    address: str,
    budget_date: Union[str, date, datetime, None],
    output_dir: Union[str, Path],
) -> Path:
    """Download a budget PDF and write it under ``output_dir``. Returns the file path."""
    content, _ = fetch_budget_pdf(api, project_id, budget_id)
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / budget_pdf_filename(address, budget_date)
    path.write_bytes(content)
    logger.info("Saved budget PDF %s (%d bytes)", path, len(content))
    return path


# =============================================================================
# Forms and status changes
# =============================================================================

def validate_new_project(data: Dict[str, Any]) -> List[str]:
    return [msg for key, msg in _REQUIRED_ON_CREATE.items() if not str(data.get(key) or "").strip()]


def change_status(
    project: Dict[str, Any],
    new_status: Union[str, ProjectStatus],
    nota: Optional[str] = None,
    when: Optional[str] = None,
) -> Dict[str, Any]:
    """Return a copy of ``project`` in ``new_status`` with the change logged in its history."""
    status = ProjectStatus.parse(getattr(new_status, "value", new_status))
    if status is None:
        raise ValidationError([f"Estado no válido: {new_status}"])

    updated = copy.deepcopy(project)
    entry = {"estado": status.value, "fecha": when or now_iso()}
    if nota:
        entry["nota"] = nota
    updated["estado"] = status.value
    updated["fechas_cambio_estado"] = list(updated.get("fechas_cambio_estado") or []) + [entry]
    return updated


# =============================================================================
# List screen helpers
# =============================================================================

def enrich_projects(
    projects: List[Dict[str, Any]],
    clients: List[Dict[str, Any]],
    offices: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Add ``cliente_nombre``, ``oficina_color`` and ``estado_label`` to each project."""
    names = client_name_map(clients)
    colors = office_color_map(offices)
    enriched = []
    for p in projects:
        row = dict(p)
        row["cliente_nombre"] = names.get(p.get("id_cliente"), UNKNOWN_CLIENT)
        row["oficina_color"] = colors.get(p.get("oficina") or "")
        row["estado_label"] = status_label(p.get("estado"))
        enriched.append(row)
    return enriched


def filter_projects(
    projects: List[Dict[str, Any]],
    search: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
    offices: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Text search over address, city, client and office, plus status/office facets."""
    needle = (search or "").strip().lower()
    status_set = set(statuses or [])
    office_set = set(offices or [])

    rows = []
    for p in projects:
        if status_set and p.get("estado") not in status_set:
            continue
        if office_set and p.get("oficina") not in office_set:
            continue
        if needle:
            haystack = " ".join(
                str(p.get(k) or "") for k in ("direccion", "ciudad", "cliente_nombre", "oficina")
            ).lower()
            if needle not in haystack:
                continue
        rows.append(p)
    return rows


def project_stats(projects: List[Dict[str, Any]]) -> Dict[str, Any]:
    by_status = {s.value: 0 for s in ProjectStatus}
    for p in projects:
        estado = p.get("estado") or ""
        by_status[estado] = by_status.get(estado, 0) + 1
    return {
        "total": len(projects),
        "en_ejecucion": by_status.get(ProjectStatus.EN_EJECUCION.value, 0),
        "finalizados": by_status.get(ProjectStatus.FINALIZADO.value, 0),
        "by_status": by_status,
    }
