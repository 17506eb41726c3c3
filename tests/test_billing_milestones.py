"""Tests for billing milestone rules and the financial summary."""

import pytest

from obras.billing.milestones import (
    COBRADO, EURO, FACTURADO, PENDIENTE, PERCENTAGE, add_milestone, billing_summary, change_amount_type,
    edit_milestone, recalculate_milestones,
    find_milestone, has_unsaved_changes, invoice_milestone, mark_paid, milestone_percentage,
    milestone_total, new_blank_billing, new_milestone, parse_percentages, progress_segments,
    quick_create_milestones, remove_milestone, replace_milestone, set_milestone_amount,
    validate_plan,
)
from obras.core.errors import BillingError


def _milestone(**kw):
    m = new_milestone(kw.pop("nombre", "Hito"))
    m.update(kw)
    return m


class TestAmounts:
    def test_milestone_total(self):
        assert milestone_total(PERCENTAGE, 30, 1210) == pytest.approx(363)
        assert milestone_total(EURO, 250, 1210) == 250

    def test_percentage_clamped(self):
        m = set_milestone_amount(_milestone(tipo_de_importe=PERCENTAGE), 150, 1000)
        assert m["importe"] == 100
        assert m["total"] == pytest.approx(1000)
        assert set_milestone_amount(m, -5, 1000)["importe"] == 0

    def test_euro_not_negative(self):
        m = set_milestone_amount(_milestone(tipo_de_importe=EURO), -20, 1000)
        assert m["importe"] == 0
        assert m["total"] == 0

    def test_change_type_preserves_total(self):
        m = _milestone(tipo_de_importe=EURO, importe=250, total=250)
        pct = change_amount_type(m, PERCENTAGE, 1000)
        assert pct["importe"] == pytest.approx(25)
        assert pct["total"] == 250
        back = change_amount_type(pct, EURO, 1000)
        assert back["importe"] == 250

    def test_change_type_zero_budget(self):
        m = _milestone(tipo_de_importe=EURO, importe=100, total=100)
        assert change_amount_type(m, PERCENTAGE, 0)["importe"] == 0

    def test_change_type_rejects_unknown(self):
        with pytest.raises(BillingError):
            change_amount_type(_milestone(), "dolar", 100)

    def test_milestone_percentage(self):
        assert milestone_percentage({"total": 250}, 1000) == pytest.approx(25)
        assert milestone_percentage({"total": 250}, 0) is None


class TestPlan:
    def test_blank_billing_needs_approved_budget(self):
        with pytest.raises(BillingError):
            new_blank_billing({"id": "p2", "presupuestos": [{"id": "b2"}]})

    def test_blank_billing_snapshots_budget(self):
        project = {"id": "p1", "budget_id_aprobado": "b1", "presupuestos": [{"id": "b1", "total_con_iva": 1210}]}
        billing = new_blank_billing(project)
        assert billing["id_proyecto"] == "p1"
        assert billing["presupuesto"]["id"] == "b1"
        assert billing["hitos_facturacion"] == []

    def test_new_milestone_defaults(self):
        m = new_milestone("Entrada")
        assert m["estado"] == PENDIENTE
        assert m["tipo_de_importe"] == PERCENTAGE
        assert m["id"]

    def test_parse_percentages(self):
        assert parse_percentages("30 abc 40  0 -5 12.5") == [30, 40, 12.5]
        assert parse_percentages("") == []

    def test_quick_create(self):
        milestones = quick_create_milestones("30 40 30", 1000)
        assert [m["nombre"] for m in milestones] == ["Hito 1 (30%)", "Hito 2 (40%)", "Hito 3 (30%)"]
        assert [m["total"] for m in milestones] == pytest.approx([300, 400, 300])
        assert all(m["tipo_de_importe"] == PERCENTAGE for m in milestones)

    def test_quick_create_continues_numbering(self):
        milestones = quick_create_milestones("12.5", 800, start_index=4)
        assert milestones[0]["nombre"] == "Hito 4 (12.5%)"
        assert milestones[0]["total"] == pytest.approx(100)

    def test_quick_create_over_100(self):
        with pytest.raises(BillingError, match="supera el 100%"):
            quick_create_milestones("60 50", 1000)

    def test_quick_create_zero_budget(self):
        with pytest.raises(BillingError):
            quick_create_milestones("50", 0)

    def test_validate_plan(self):
        ok = [_milestone(nombre="A", importe=50, total=500), _milestone(nombre="B", importe=50, total=500)]
        assert validate_plan(ok, 1000) == []
        # within the rounding tolerance
        assert validate_plan([_milestone(nombre="A", total=1000.005)], 1000) == []
        over = validate_plan([_milestone(nombre="A", total=1200)], 1000)
        assert len(over) == 1 and "supera el presupuesto" in over[0]
        unnamed = validate_plan([_milestone(nombre=" ", total=10)], 1000)
        assert len(unnamed) == 1


class TestTransitions:
    def test_invoice_then_pay(self):
        m = _milestone(nombre="Entrada", total=300)
        invoiced = invoice_milestone(m, when="2025-04-01T00:00:00.000Z")
        assert invoiced["estado"] == FACTURADO
        assert invoiced["fecha_facturacion"] == "2025-04-01T00:00:00.000Z"
        assert m["estado"] == PENDIENTE
        assert mark_paid(invoiced)["estado"] == COBRADO

    def test_invoice_requires_pending(self):
        with pytest.raises(BillingError):
            invoice_milestone(_milestone(nombre="X", total=10, estado=FACTURADO))

    def test_invoice_requires_amount_and_name(self):
        with pytest.raises(BillingError):
            invoice_milestone(_milestone(nombre="X", total=0))
        with pytest.raises(BillingError):
            invoice_milestone(_milestone(nombre="", total=10))

    def test_pay_requires_invoiced(self):
        with pytest.raises(BillingError):
            mark_paid(_milestone(nombre="X", total=10))


class TestCollection:
    def test_replace_remove_find(self):
        a, b = _milestone(nombre="A"), _milestone(nombre="B")
        billing = {"hitos_facturacion": [a, b]}
        replaced = replace_milestone(billing, {**a, "nombre": "A2"})
        assert find_milestone(replaced, a["id"])["nombre"] == "A2"
        assert billing["hitos_facturacion"][0]["nombre"] == "A"
        removed = remove_milestone(billing, b["id"])
        assert [m["id"] for m in removed["hitos_facturacion"]] == [a["id"]]
        assert find_milestone(billing, "missing") is None

    def test_unsaved_changes(self):
        original = {"hitos_facturacion": [{"id": "1", "total": 10}], "codigo_postal": "28013"}
        assert not has_unsaved_changes(original, {"codigo_postal": "28013", "hitos_facturacion": [{"total": 10, "id": "1"}]})
        assert has_unsaved_changes(original, {**original, "codigo_postal": "28014"})
        assert not has_unsaved_changes(None, None)


class TestSummary:
    def test_buckets(self):
        milestones = [
            {"estado": COBRADO, "total": 363},
            {"estado": FACTURADO, "total": 484},
            {"estado": PENDIENTE, "total": 100},
        ]
        s = billing_summary(1210, milestones)
        assert s.paid == 363
        assert s.outstanding == 484
        assert s.pending_invoice == 100
        assert s.total_assigned == 947
        assert s.unassigned == pytest.approx(263)

    def test_over_assigned_goes_negative(self):
        s = billing_summary(100, [{"estado": PENDIENTE, "total": 150}])
        assert s.unassigned == -50
        segments = progress_segments(s)
        assert segments["unassigned"] == 0
        assert segments["excess"] == pytest.approx(50)

    def test_progress_segments(self):
        s = billing_summary(1000, [{"estado": COBRADO, "total": 250}])
        segments = progress_segments(s)
        assert segments["paid"] == pytest.approx(25)
        assert segments["unassigned"] == pytest.approx(75)

    def test_progress_zero_budget(self):
        assert set(progress_segments(billing_summary(0, [])).values()) == {0.0}


class TestRepricing:
    def test_percentage_total_derived_and_clamped(self):
        m = _milestone(tipo_de_importe=PERCENTAGE, importe=150, total=0)
        [repriced] = recalculate_milestones([m], 1210)
        assert repriced["importe"] == 100
        assert repriced["total"] == pytest.approx(1210)

    def test_euro_total_follows_importe(self):
        m = _milestone(tipo_de_importe=EURO, importe=250, total=999)
        assert recalculate_milestones([m], 1210)[0]["total"] == 250

    def test_consistent_milestone_untouched(self):
        m = _milestone(tipo_de_importe=PERCENTAGE, importe=30, total=363, updated_at="2025-03-01T00:00:00.000Z")
        assert recalculate_milestones([m], 1210) == [m]

    def test_unknown_type_rejected(self):
        with pytest.raises(BillingError):
            recalculate_milestones([_milestone(tipo_de_importe="gratis")], 1210)


class TestEditMilestone:
    def test_rename_and_amount(self):
        m = edit_milestone(_milestone(tipo_de_importe=PERCENTAGE), {"nombre": " Anticipo ", "importe": 20}, 1000)
        assert m["nombre"] == "Anticipo"
        assert m["total"] == pytest.approx(200)

    def test_switch_to_euro_keeps_total(self):
        m = _milestone(tipo_de_importe=PERCENTAGE, importe=30, total=300)
        edited = edit_milestone(m, {"tipo_de_importe": EURO}, 1000)
        assert edited["tipo_de_importe"] == EURO
        assert edited["importe"] == pytest.approx(300)
        assert edited["total"] == pytest.approx(300)

    def test_type_then_amount(self):
        m = edit_milestone(_milestone(), {"tipo_de_importe": EURO, "importe": 450}, 1000)
        assert (m["tipo_de_importe"], m["importe"], m["total"]) == (EURO, 450, 450)

    def test_invalid_type(self):
        with pytest.raises(BillingError):
            edit_milestone(_milestone(), {"tipo_de_importe": "gratis"}, 1000)

    def test_add_milestone_does_not_mutate(self):
        billing = {"hitos_facturacion": [_milestone(nombre="A")]}
        updated = add_milestone(billing, _milestone(nombre="B"))
        assert [m["nombre"] for m in updated["hitos_facturacion"]] == ["A", "B"]
        assert len(billing["hitos_facturacion"]) == 1
