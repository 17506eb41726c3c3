"""
Billing backend access over ``/facturacion/v1``.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from obras.core.http import ApiError, quote_id
from obras.core.logging import get_logger
from obras.core.output import to_iso
from obras.projects.budgets import approved_budget, calculate_budget_totals

logger = get_logger("obras.billing")

ENDPOINT = "/facturacion/v1"

DateLike = Union[str, date, datetime, None]


def get_billing_by_project(api, project_id: str) -> Optional[Dict[str, Any]]:
    """Billing plan of a project, or None when it has none yet."""
    try:
        return api.get(f"{ENDPOINT}/proyecto/{quote_id(project_id)}")
    except ApiError as e:
        if e.status == 404:
            return None
        logger.error("Error fetching billing for project %s: %s", project_id, e)
        raise


def create_billing(api, data: Dict[str, Any]) -> Dict[str, Any]:
    payload = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
    created = api.post(ENDPOINT, json=payload)
    logger.info("Created billing plan for project %s", data.get("id_proyecto"))
    return created


def update_billing(api, billing: Dict[str, Any]) -> Dict[str, Any]:
    return api.put(ENDPOINT, json=billing)


def export_billing_excel(api, date_from: DateLike = None, date_to: DateLike = None) -> bytes:
    """Server-rendered billing workbook for a creation-date range."""
    body = {"fecha_inicio": to_iso(date_from), "fecha_fin": to_iso(date_to)}
    try:
        content, _ = api.download("POST", f"{ENDPOINT}/excel-export", json=body)
    except ApiError as e:
        raise ApiError(
            f"Excel export failed: {e.status_text}", e.status, e.status_text, e.data
        ) from e
    return content


def billing_budget_total(
    billing: Optional[Dict[str, Any]],
    project: Optional[Dict[str, Any]] = None,
) -> float:
    """
    Budget total a billing plan is measured against.

    The budget snapshot stored on the plan wins; a missing or zero snapshot
    falls back to the project's approved budget, then to 0.
    """
    snapshot = calculate_budget_totals((billing or {}).get("presupuesto")).total
    return snapshot or calculate_budget_totals(approved_budget(project)).total or 0.0
