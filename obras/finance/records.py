"""
Per-project financial records for the finance report.

One FinancialRecord per project: the budget it is billed against and how
much of it is collected, invoiced, pending invoice or not yet assigned to
any milestone. ``load_financial_data`` assembles the dataset from the
backend; the remaining helpers implement the table behaviour (search,
facets, totals, sorting, pagination, export selection).
"""

import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from obras.billing.milestones import COBRADO, FACTURADO, PENDIENTE
from obras.billing.service import billing_budget_total, get_billing_by_project
from obras.clients.service import display_name, list_clients
from obras.core.http import ApiError
from obras.core.logging import get_logger
from obras.core.output import parse_date
from obras.projects.service import UNKNOWN_CLIENT, list_projects

logger = get_logger("obras.finance")

DEFAULT_PAGE_SIZE = 10

_AMOUNT_FIELDS = ("total_budget", "payments_received", "facturado", "pendiente_factura", "unassigned")


@dataclass
class FinancialRecord:
    project_id: str
    project_name: str
    client_id: str
    client_name: str
    office: str
    project_status: str
    created_at: Optional[str]
    total_budget: float = 0.0
    payments_received: float = 0.0
    facturado: float = 0.0
    pendiente_factura: float = 0.0
    unassigned: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return self.__dict__.copy()


@dataclass
class FinancialDataset:
    """Records plus the source projects and billings, keyed by project id."""
    records: List[FinancialRecord] = field(default_factory=list)
    projects: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    billings: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


# =============================================================================
# Record computation
# =============================================================================

def compute_financial_record(
    project: Dict[str, Any],
    billing: Optional[Dict[str, Any]],
    client: Optional[Dict[str, Any]],
) -> FinancialRecord:
    total_budget = billing_budget_total(billing, project)

    amounts = {COBRADO: 0.0, FACTURADO: 0.0, PENDIENTE: 0.0}
    for hito in (billing or {}).get("hitos_facturacion") or []:
        if hito.get("estado") in amounts:
            amounts[hito["estado"]] += _num(hito.get("total"))

    return FinancialRecord(
        project_id=project.get("id", ""),
        project_name=project.get("direccion") or "",
        client_id=project.get("id_cliente") or "",
        client_name=display_name(client) or UNKNOWN_CLIENT,
        office=project.get("oficina") or "",
        project_status=project.get("estado") or "",
        created_at=project.get("created_at"),
        total_budget=total_budget,
        payments_received=amounts[COBRADO],
        facturado=amounts[FACTURADO],
        pendiente_factura=amounts[PENDIENTE],
        unassigned=total_budget - sum(amounts.values()),
    )


def _as_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def in_date_range(
    created_at: Optional[str],
    date_from: Union[str, date, datetime, None] = None,
    date_to: Union[str, date, datetime, None] = None,
) -> bool:
    """Inclusive day-level check; either bound may be omitted."""
    start, end = _as_date(date_from), _as_date(date_to)
    if start is None and end is None:
        return True
    day = _as_date(created_at)
    if day is None:
        return False
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def _fetch_billing(api, project: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if not project.get("budget_id_aprobado"):
        return None
    try:
        return get_billing_by_project(api, project["id"])
    except ApiError as e:
        logger.warning("Billing unavailable for project %s: %s", project.get("id"), e)
        return None


def load_financial_data(
    api,
    date_from: Union[str, date, datetime, None] = None,
    date_to: Union[str, date, datetime, None] = None,
) -> FinancialDataset:
    """
    Build the finance dataset for projects created within [date_from, date_to].

    Billing plans are only requested for projects with an approved budget;
    a failed billing request degrades that project to "no billing" instead
    of failing the whole report.
    """
    projects = [
        p for p in list_projects(api)
        if in_date_range(p.get("created_at"), date_from, date_to)
    ]
    clients = {c.get("_id"): c for c in list_clients(api)}

    dataset = FinancialDataset()
    for project in projects:
        billing = _fetch_billing(api, project)
        dataset.records.append(
            compute_financial_record(project, billing, clients.get(project.get("id_cliente")))
        )
        dataset.projects[project["id"]] = project
        dataset.billings[project["id"]] = billing

    logger.info("Loaded %d financial records", len(dataset.records))
    return dataset


# =============================================================================
# Table behaviour
# =============================================================================

def search_records(records: List[FinancialRecord], text: Optional[str]) -> List[FinancialRecord]:
    needle = (text or "").strip().lower()
    if not needle:
        return list(records)
    return [
        r for r in records
        if needle in r.project_name.lower()
        or needle in r.client_name.lower()
        or needle in r.office.lower()
    ]


def filter_records(
    records: List[FinancialRecord],
    offices: Optional[Iterable[str]] = None,
    statuses: Optional[Iterable[str]] = None,
) -> List[FinancialRecord]:
    office_set = set(offices or [])
    status_set = set(statuses or [])
    return [
        r for r in records
        if (not office_set or r.office in office_set)
        and (not status_set or r.project_status in status_set)
    ]


def sum_records(records: List[FinancialRecord]) -> Dict[str, float]:
    totals = {name: 0.0 for name in _AMOUNT_FIELDS}
    for r in records:
        for name in _AMOUNT_FIELDS:
            totals[name] += getattr(r, name)
    return totals


def office_options(records: List[FinancialRecord]) -> List[str]:
    """Distinct non-empty offices, in first-seen order."""
    seen: Dict[str, None] = {}
    for r in records:
        if r.office:
            seen.setdefault(r.office, None)
    return list(seen)


def select_rows_for_export(
    records: List[FinancialRecord],
    selected_ids: Optional[Iterable[str]] = None,
) -> List[FinancialRecord]:
    """Selected rows when any are selected, otherwise every (filtered) row."""
    selected = set(selected_ids or [])
    if selected:
        chosen = [r for r in records if r.project_id in selected]
        if chosen:
            return chosen
    return list(records)


_SORTABLE = {f.name for f in fields(FinancialRecord)}


def sort_records(
    records: List[FinancialRecord],
    column: Optional[str],
    descending: bool = False,
) -> List[FinancialRecord]:
    if not column:
        return list(records)
    if column not in _SORTABLE:
        raise ValueError(f"Unknown sort column: {column}")

    def _key(r: FinancialRecord):
        value = getattr(r, column)
        if isinstance(value, str) or value is None:
            return (0, (value or "").lower())
        return (1, value)

    return sorted(records, key=_key, reverse=descending)


def paginate(items: List[Any], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    """Slice ``items`` for a 1-based page number; out-of-range pages are clamped."""
    page_size = max(1, page_size)
    pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, page), pages)
    start = (page - 1) * page_size
    return {
        "items": items[start:start + page_size],
        "page": page,
        "pages": pages,
        "page_size": page_size,
        "total": len(items),
    }
