"""
Billing plan rules - pure Python, no Flask imports.

A billing plan splits a project's approved budget into milestones
("hitos"). Each milestone is priced either as a percentage of the budget
or as a fixed euro amount, and moves pendiente -> facturado -> cobrado.

All functions return new dicts; inputs are never mutated.
"""

import copy
import json
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from obras.core.errors import BillingError
from obras.core.logging import get_logger
from obras.core.output import now_iso
from obras.projects.budgets import approved_budget

logger = get_logger("obras.billing.milestones")

PERCENTAGE = "porcentaje"
EURO = "euro"
AMOUNT_TYPES = (PERCENTAGE, EURO)

PENDIENTE = "pendiente"
FACTURADO = "facturado"
COBRADO = "cobrado"
MILESTONE_STATES = (PENDIENTE, FACTURADO, COBRADO)

# Rounding slack when comparing the plan against the budget
PLAN_TOLERANCE = 0.01


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _fmt_number(value: float) -> str:
    """Render 30.0 as ``30`` and 12.5 as ``12.5``."""
    return f"{value:g}"


# =============================================================================
# Milestone arithmetic
# =============================================================================

def milestone_total(amount_type: str, importe: Any, budget_total: float) -> float:
    if amount_type == PERCENTAGE:
        return budget_total * _num(importe) / 100
    return _num(importe)


def set_milestone_amount(milestone: Dict[str, Any], value: Any, budget_total: float) -> Dict[str, Any]:
    """Set the entered amount, clamped to [0, 100] for percentages and >= 0 for euros."""
    amount = _num(value)
    updated = dict(milestone)
    if milestone.get("tipo_de_importe") == PERCENTAGE:
        amount = max(0.0, min(100.0, amount))
        updated["importe"] = amount
        updated["total"] = milestone_total(PERCENTAGE, amount, budget_total)
    else:
        amount = max(0.0, amount)
        updated["importe"] = amount
        updated["total"] = amount
    updated["updated_at"] = now_iso()
    return updated


def change_amount_type(milestone: Dict[str, Any], new_type: str, budget_total: float) -> Dict[str, Any]:
    """Switch between percentage and euro pricing; the euro ``total`` is preserved."""
    if new_type not in AMOUNT_TYPES:
        raise BillingError(f"Tipo de importe no válido: {new_type}")

    total = _num(milestone.get("total"))
    if new_type == PERCENTAGE:
        importe = total / budget_total * 100 if budget_total > 0 else 0.0
    else:
        importe = total

    updated = dict(milestone)
    updated.update({
        "tipo_de_importe": new_type,
        "importe": importe,
        "total": total,
        "updated_at": now_iso(),
    })
    return updated


def recalculate_milestones(milestones: List[Dict[str, Any]], budget_total: float) -> List[Dict[str, Any]]:
    """
    Reprice milestones from their entered ``importe``.

    Amounts are clamped as in set_milestone_amount and ``total`` is always
    derived, never taken as given. Milestones whose amounts are already
    consistent come back unchanged.
    """
    repriced = []
    for m in milestones:
        if m.get("tipo_de_importe") not in AMOUNT_TYPES:
            raise BillingError(f"Tipo de importe no válido: {m.get('tipo_de_importe')}")
        updated = set_milestone_amount(m, m.get("importe"), budget_total)
        if abs(_num(m.get("importe")) - updated["importe"]) < 1e-9 \
                and abs(_num(m.get("total")) - updated["total"]) < 1e-9:
            updated = dict(m)
        repriced.append(updated)
    return repriced


def edit_milestone(milestone: Dict[str, Any], changes: Dict[str, Any], budget_total: float) -> Dict[str, Any]:
    """Apply a title, amount-type and/or amount edit to one milestone."""
    updated = dict(milestone)
    if "nombre" in changes:
        updated["nombre"] = (changes.get("nombre") or "").strip()
        updated["updated_at"] = now_iso()
    new_type = changes.get("tipo_de_importe")
    if new_type and new_type != updated.get("tipo_de_importe"):
        updated = change_amount_type(updated, new_type, budget_total)
    if "importe" in changes:
        updated = set_milestone_amount(updated, changes.get("importe"), budget_total)
    return updated


def milestone_percentage(milestone: Dict[str, Any], budget_total: float) -> Optional[float]:
    """Share of the budget this milestone represents; None when the budget is 0."""
    if budget_total <= 0:
        return None
    return _num(milestone.get("total")) / budget_total * 100


# =============================================================================
# Plan editing
# =============================================================================

def new_blank_billing(project: Dict[str, Any]) -> Dict[str, Any]:
    """Empty billing plan seeded with the project's approved budget."""
    budget = approved_budget(project)
    if budget is None:
        raise BillingError("Se necesita un proyecto con presupuesto aprobado.")
    return {
        "id_proyecto": project["id"],
        "direccion_facturacion": "",
        "codigo_postal": "",
        "presupuesto": copy.deepcopy(budget),
        "hitos_facturacion": [],
    }


def add_milestone(billing: Dict[str, Any], milestone: Dict[str, Any]) -> Dict[str, Any]:
    updated = copy.deepcopy(billing)
    updated["hitos_facturacion"] = list(updated.get("hitos_facturacion") or []) + [milestone]
    return updated


def new_milestone(nombre: str = "") -> Dict[str, Any]:
    now = now_iso()
    return {
        "id": uuid.uuid4().hex,
        "nombre": nombre,
        "tipo_de_importe": PERCENTAGE,
        "importe": 0,
        "total": 0,
        "estado": PENDIENTE,
        "created_at": now,
        "updated_at": now,
    }


def parse_percentages(text: str) -> List[float]:
    """Whitespace-separated numbers from ``text``; non-numbers and values <= 0 are dropped."""
    values = []
    for token in (text or "").split():
        try:
            n = float(token)
        except ValueError:
            continue
        if n > 0:
            values.append(n)
    return values


def quick_create_milestones(text: str, budget_total: float, start_index: int = 1) -> List[Dict[str, Any]]:
    """
    Build percentage milestones from input such as ``"30 40 30"``.

    Raises BillingError when the budget is zero or the percentages add up
    to more than 100.
    """
    if budget_total <= 0:
        raise BillingError("No se pueden crear hitos por porcentaje si el presupuesto es 0.")

    percentages = parse_percentages(text)
    total_pct = sum(percentages)
    if total_pct > 100:
        raise BillingError(f"La suma ({_fmt_number(total_pct)}%) supera el 100%.")

    milestones = []
    for offset, p in enumerate(percentages):
        m = new_milestone(f"Hito {start_index + offset} ({_fmt_number(p)}%)")
        m["importe"] = p
        m["total"] = milestone_total(PERCENTAGE, p, budget_total)
        milestones.append(m)

    logger.debug("Quick-created %d milestones (%s%%)", len(milestones), _fmt_number(total_pct))
    return milestones


def validate_plan(milestones: List[Dict[str, Any]], budget_total: float) -> List[str]:
    errors = []
    assigned = sum(_num(m.get("total")) for m in milestones)
    if assigned > budget_total + PLAN_TOLERANCE:
        errors.append(
            f"El total asignado ({assigned:.2f} €) supera el presupuesto ({budget_total:.2f} €)."
        )
    if any(not (m.get("nombre") or "").strip() or _num(m.get("importe")) < 0 for m in milestones):
        errors.append("Todos los hitos deben tener un título y un importe no negativo.")
    return errors


def invoice_milestone(milestone: Dict[str, Any], when: Optional[str] = None) -> Dict[str, Any]:
    """Issue the invoice for a pending milestone (pendiente -> facturado)."""
    if milestone.get("estado") != PENDIENTE:
        raise BillingError("Solo se pueden facturar hitos pendientes.")
    if not (milestone.get("nombre") or "").strip() or _num(milestone.get("total")) <= 0:
        raise BillingError("El hito debe tener título e importe total válidos.")

    now = now_iso()
    updated = dict(milestone)
    updated.update({"estado": FACTURADO, "fecha_facturacion": when or now, "updated_at": now})
    return updated


def mark_paid(milestone: Dict[str, Any]) -> Dict[str, Any]:
    """Record payment of an invoiced milestone (facturado -> cobrado)."""
    if milestone.get("estado") != FACTURADO:
        raise BillingError("Solo se pueden marcar como cobrados hitos facturados.")
    updated = dict(milestone)
    updated.update({"estado": COBRADO, "updated_at": now_iso()})
    return updated


def replace_milestone(billing: Dict[str, Any], milestone: Dict[str, Any]) -> Dict[str, Any]:
    updated = copy.deepcopy(billing)
    updated["hitos_facturacion"] = [
        milestone if m.get("id") == milestone.get("id") else m
        for m in updated.get("hitos_facturacion") or []
    ]
    return updated


def remove_milestone(billing: Dict[str, Any], milestone_id: str) -> Dict[str, Any]:
    updated = copy.deepcopy(billing)
    updated["hitos_facturacion"] = [
        m for m in updated.get("hitos_facturacion") or [] if m.get("id") != milestone_id
    ]
    return updated


def find_milestone(billing: Dict[str, Any], milestone_id: str) -> Optional[Dict[str, Any]]:
    for m in billing.get("hitos_facturacion") or []:
        if m.get("id") == milestone_id:
            return m
    return None


def has_unsaved_changes(original: Optional[Dict[str, Any]], current: Optional[Dict[str, Any]]) -> bool:
    """Structural comparison of two billing snapshots."""
    def _canon(obj):
        return json.dumps(obj, sort_keys=True, default=str)

    return _canon(original) != _canon(current)


# =============================================================================
# Financial summary
# =============================================================================

@dataclass
class FinancialSummary:
    total: float = 0.0
    paid: float = 0.0
    outstanding: float = 0.0
    pending_invoice: float = 0.0
    total_assigned: float = 0.0
    unassigned: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return self.__dict__.copy()


def billing_summary(budget_total: float, milestones: List[Dict[str, Any]]) -> FinancialSummary:
    """Bucket milestone totals by state; ``unassigned`` goes negative when over-assigned."""
    buckets = {PENDIENTE: 0.0, FACTURADO: 0.0, COBRADO: 0.0}
    for m in milestones:
        if m.get("estado") in buckets:
            buckets[m["estado"]] += _num(m.get("total"))

    assigned = buckets[COBRADO] + buckets[FACTURADO] + buckets[PENDIENTE]
    return FinancialSummary(
        total=budget_total,
        paid=buckets[COBRADO],
        outstanding=buckets[FACTURADO],
        pending_invoice=buckets[PENDIENTE],
        total_assigned=assigned,
        unassigned=budget_total - assigned,
    )


def progress_segments(summary: FinancialSummary) -> Dict[str, float]:
    """Stacked progress-bar widths in percent of the budget."""
    total = summary.total
    if total <= 0:
        return {"paid": 0.0, "outstanding": 0.0, "pending": 0.0, "unassigned": 0.0, "excess": 0.0}
    return {
        "paid": summary.paid / total * 100,
        "outstanding": summary.outstanding / total * 100,
        "pending": summary.pending_invoice / total * 100,
        "unassigned": summary.unassigned / total * 100 if summary.unassigned > 0 else 0.0,
        "excess": abs(summary.unassigned) / total * 100 if summary.unassigned < 0 else 0.0,
    }
