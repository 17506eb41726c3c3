"""
Budget (presupuesto) editing and totals.

A budget is a list of named sections, each holding priced concepts:

    subtotal       = sum of concept.cost
    discount       = subtotal * discountRate / 100
    taxable_amount = subtotal - discount
    tax            = taxable_amount * taxRate / 100   (IVA, default 21%)
    total          = taxable_amount + tax

Budgets are versioned on the project (``presupuestos``); at most one is
approved, referenced by ``budget_id_aprobado``. All functions return new
dicts and leave their inputs untouched.
"""

import copy
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from obras.core.errors import BudgetError
from obras.core.logging import get_logger
from obras.core.output import now_iso

logger = get_logger("obras.projects.budgets")

DEFAULT_TAX_RATE = 21.0
DEFAULT_DISCOUNT_RATE = 0.0

BUDGET_STATES = ("borrador", "enviado", "aprobado", "rechazado")


@dataclass
class BudgetTotals:
    subtotal: float = 0.0
    discount: float = 0.0
    taxable_amount: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    total_concepts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.__dict__.copy()


def _new_id() -> str:
    return uuid.uuid4().hex


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


# =============================================================================
# Totals
# =============================================================================

def concept_cost(quantity: Any, unit_price: Any) -> float:
    return _num(quantity) * _num(unit_price)


def section_total(section: Dict[str, Any]) -> float:
    return sum(_num(c.get("cost")) for c in section.get("concepts") or [])


def calculate_budget_totals(budget: Optional[Dict[str, Any]]) -> BudgetTotals:
    """
    Compute the totals of a budget.

    Budgets without sections (e.g. summaries returned by the backend) fall
    back to their stored ``total_con_iva``, then ``total``. ``None`` gives
    all zeros.
    """
    if not budget:
        return BudgetTotals()

    sections = budget.get("sections") or []
    if not sections:
        stored = budget.get("total_con_iva")
        if stored is None:
            stored = budget.get("total")
        total = _num(stored)
        has_both = budget.get("total_con_iva") is not None and budget.get("total") is not None
        net = _num(budget["total"]) if has_both else total
        return BudgetTotals(
            subtotal=net,
            taxable_amount=net,
            tax=total - net,
            total=total,
        )

    tax_rate = budget.get("taxRate")
    tax_rate = DEFAULT_TAX_RATE if tax_rate is None else _num(tax_rate)
    discount_rate = _num(budget.get("discountRate", DEFAULT_DISCOUNT_RATE))

    subtotal = sum(section_total(s) for s in sections)
    discount = subtotal * (discount_rate / 100)
    taxable = subtotal - discount
    tax = taxable * (tax_rate / 100)
    return BudgetTotals(
        subtotal=subtotal,
        discount=discount,
        taxable_amount=taxable,
        tax=tax,
        total=taxable + tax,
        total_concepts=sum(len(s.get("concepts") or []) for s in sections),
    )


# =============================================================================
# Sections and concepts
# =============================================================================

def new_section(name: str = "") -> Dict[str, Any]:
    return {"id": _new_id(), "name": name, "concepts": []}


def duplicate_section(section: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a section named ``"<name> (copia)"`` with fresh ids throughout."""
    dup = copy.deepcopy(section)
    dup["id"] = _new_id()
    dup["name"] = f"{section.get('name', '')} (copia)"
    for concept in dup.get("concepts") or []:
        concept["id"] = _new_id()
    return dup


def new_concept(
    referencia: str = "",
    description: str = "",
    quantity: float = 1,
    unit_price: float = 0,
) -> Dict[str, Any]:
    return {
        "id": _new_id(),
        "referencia": referencia,
        "description": description,
        "quantity": quantity,
        "unitPrice": unit_price,
        "cost": concept_cost(quantity, unit_price),
    }


def update_concept(concept: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Apply field updates; ``cost`` is recomputed when quantity or unitPrice change."""
    updated = {**concept, **updates}
    if "quantity" in updates or "unitPrice" in updates:
        updated["cost"] = concept_cost(updated.get("quantity"), updated.get("unitPrice"))
    return updated


def price_sections(sections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Copy of ``sections`` with every concept's ``cost`` derived from quantity and unitPrice."""
    priced = []
    for s in sections:
        concepts = []
        for c in s.get("concepts") or []:
            if "quantity" in c or "unitPrice" in c:
                c = {**c, "cost": concept_cost(c.get("quantity"), c.get("unitPrice"))}
            concepts.append(dict(c))
        priced.append({**s, "concepts": concepts})
    return priced


def parse_rate(value: Any, label: str, default: float) -> float:
    """Percentage rate from user input; BudgetError when not a number in [0, 100]."""
    if value is None or value == "":
        return default
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise BudgetError(f"{label} no válido: {value!r}")
    if not 0 <= rate <= 100:
        raise BudgetError(f"{label} debe estar entre 0 y 100")
    return rate


def validate_sections(sections: List[Dict[str, Any]]) -> List[str]:
    errors = []
    if any(not (s.get("name") or "").strip() for s in sections):
        errors.append("Todas las secciones deben tener un nombre")
    if any(
        not (c.get("description") or "").strip() or _num(c.get("cost")) < 0
        for s in sections
        for c in s.get("concepts") or []
    ):
        errors.append("Todos los conceptos deben tener descripción y un coste válido")
    return errors


# =============================================================================
# Versions on the project
# =============================================================================

def build_budget(
    project: Dict[str, Any],
    sections: List[Dict[str, Any]],
    tax_rate: Any = DEFAULT_TAX_RATE,
    discount_rate: Any = DEFAULT_DISCOUNT_RATE,
    nombre: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a draft budget version for ``project``.

    Concept costs are recomputed from quantity and unit price. Raises
    BudgetError on invalid sections or rates.
    """
    tax_rate = parse_rate(tax_rate, "IVA", DEFAULT_TAX_RATE)
    discount_rate = parse_rate(discount_rate, "Descuento", DEFAULT_DISCOUNT_RATE)
    sections = price_sections(sections)
    errors = validate_sections(sections)
    if errors:
        raise BudgetError("; ".join(errors))

    version = len(project.get("presupuestos") or []) + 1
    now = now_iso()
    budget = {
        "id": _new_id(),
        "project_id": project.get("id"),
        "nombre": nombre or f"Presupuesto v{version}",
        "estado": "borrador",
        "sections": sections,
        "taxRate": tax_rate,
        "discountRate": discount_rate,
        "created_at": now,
    }
    return _with_totals(budget, now)


def _with_totals(budget: Dict[str, Any], now: str) -> Dict[str, Any]:
    totals = calculate_budget_totals(budget)
    budget.update({
        "total": round(totals.taxable_amount, 2),
        "total_con_iva": round(totals.total, 2),
        "updated_at": now,
    })
    return budget


def find_budget(project: Dict[str, Any], budget_id: str) -> Dict[str, Any]:
    for b in project.get("presupuestos") or []:
        if b.get("id") == budget_id:
            return b
    raise BudgetError(f"Presupuesto {budget_id} no encontrado en el proyecto")


def find_section(budget: Dict[str, Any], section_id: str) -> Dict[str, Any]:
    for s in budget.get("sections") or []:
        if s.get("id") == section_id:
            return s
    raise BudgetError(f"Sección {section_id} no encontrada en el presupuesto")


def replace_budget_sections(
    project: Dict[str, Any],
    budget_id: str,
    sections: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Project copy with one budget version's sections replaced and its totals recomputed."""
    updated = copy.deepcopy(project)
    budget = find_budget(updated, budget_id)
    sections = price_sections(sections)
    errors = validate_sections(sections)
    if errors:
        raise BudgetError("; ".join(errors))
    budget["sections"] = sections
    _with_totals(budget, now_iso())
    return updated


def add_budget_version(project: Dict[str, Any], budget: Dict[str, Any]) -> Dict[str, Any]:
    updated = copy.deepcopy(project)
    updated.setdefault("presupuestos", [])
    updated["presupuestos"] = list(updated["presupuestos"] or []) + [copy.deepcopy(budget)]
    return updated


def approve_budget(project: Dict[str, Any], budget_id: str) -> Dict[str, Any]:
    """
    Mark one budget version as approved.

    Any other version that was ``aprobado`` goes back to ``enviado`` so a
    project never has two approved budgets.
    """
    updated = copy.deepcopy(project)
    versions = updated.get("presupuestos") or []
    if not any(b.get("id") == budget_id for b in versions):
        raise BudgetError(f"Presupuesto {budget_id} no encontrado en el proyecto")

    now = now_iso()
    for b in versions:
        if b.get("id") == budget_id:
            b["estado"] = "aprobado"
            b["updated_at"] = now
        elif b.get("estado") == "aprobado":
            b["estado"] = "enviado"
            b["updated_at"] = now

    updated["budget_id_aprobado"] = budget_id
    logger.info("Project %s: approved budget %s", project.get("id"), budget_id)
    return updated


def approved_budget(project: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The approved budget version, or None."""
    if not project or not project.get("budget_id_aprobado"):
        return None
    for b in project.get("presupuestos") or []:
        if b.get("id") == project["budget_id_aprobado"]:
            return b
    return None
