"""Tests for financial records: computation, loading and table behaviour."""

from datetime import date

import pytest

from obras.finance.records import (
    FinancialRecord, compute_financial_record, filter_records, in_date_range,
    load_financial_data, office_options, paginate, search_records, select_rows_for_export,
    sort_records, sum_records,
)


def _record(pid, name, budget=0.0, office="", status="presupuesto", client="Cliente"):
    return FinancialRecord(
        project_id=pid, project_name=name, client_id="c", client_name=client,
        office=office, project_status=status, created_at=None,
        total_budget=budget, unassigned=budget,
    )


class TestCompute:
    def test_buckets_milestones(self, fake_api):
        record = compute_financial_record(
            fake_api.projects["p1"], fake_api.billings["p1"], fake_api.clients["c1"],
        )
        assert record.client_name == "Ana García López"
        assert record.total_budget == pytest.approx(1210)
        assert record.payments_received == 363
        assert record.facturado == 484
        assert record.pendiente_factura == 100
        assert record.unassigned == pytest.approx(263)

    def test_without_billing_or_client(self, fake_api):
        record = compute_financial_record(fake_api.projects["p3"], None, None)
        assert record.client_name == "Cliente desconocido"
        assert record.total_budget == 0
        assert record.unassigned == 0


class TestDateRange:
    def test_inclusive_day_bounds(self):
        created = "2025-03-10T23:30:00.000Z"
        assert in_date_range(created, "2025-03-10", "2025-03-10")
        assert in_date_range(created, date(2025, 3, 1), None)
        assert not in_date_range(created, "2025-03-11", None)
        assert not in_date_range(created, None, "2025-03-09")

    def test_unbounded_and_missing(self):
        assert in_date_range(None)
        assert not in_date_range(None, "2025-01-01")


class TestLoad:
    def test_loads_all_projects(self, fake_api):
        dataset = load_financial_data(fake_api)
        assert [r.project_id for r in dataset.records] == ["p1", "p2", "p3"]
        assert dataset.billings["p1"]["id"] == "f1"
        assert dataset.billings["p2"] is None

    def test_only_requests_billing_with_approved_budget(self, fake_api):
        load_financial_data(fake_api)
        billing_calls = [c[1] for c in fake_api.calls if c[1].startswith("/facturacion")]
        assert billing_calls == ["/facturacion/v1/proyecto/p1"]

    def test_date_filter(self, fake_api):
        dataset = load_financial_data(fake_api, "2025-01-01", "2025-04-30")
        assert [r.project_id for r in dataset.records] == ["p1"]

    def test_billing_failure_degrades_record(self, fake_api):
        fake_api.fail("GET", "/facturacion/v1/proyecto/p1", 500)
        dataset = load_financial_data(fake_api)
        p1 = dataset.records[0]
        assert dataset.billings["p1"] is None
        assert p1.total_budget == pytest.approx(1210)
        assert p1.payments_received == 0


class TestTable:
    def test_search(self):
        rows = [_record("1", "Calle Mayor", office="Norte"), _record("2", "Plaza Sol", client="Eva")]
        assert [r.project_id for r in search_records(rows, "mayor")] == ["1"]
        assert [r.project_id for r in search_records(rows, "EVA")] == ["2"]
        assert [r.project_id for r in search_records(rows, "norte")] == ["1"]
        assert len(search_records(rows, "  ")) == 2

    def test_filter(self):
        rows = [_record("1", "A", office="Norte", status="finalizado"), _record("2", "B", office="Sur")]
        assert [r.project_id for r in filter_records(rows, offices=["Sur"])] == ["2"]
        assert [r.project_id for r in filter_records(rows, statuses=["finalizado"])] == ["1"]
        assert filter_records(rows, offices=["Sur"], statuses=["finalizado"]) == []

    def test_sum(self):
        totals = sum_records([_record("1", "A", 100), _record("2", "B", 50)])
        assert totals["total_budget"] == 150
        assert totals["unassigned"] == 150
        assert sum_records([])["facturado"] == 0

    def test_office_options(self):
        rows = [_record("1", "A", office="Sur"), _record("2", "B"), _record("3", "C", office="Norte"),
                _record("4", "D", office="Sur")]
        assert office_options(rows) == ["Sur", "Norte"]

    def test_select_for_export(self):
        rows = [_record("1", "A"), _record("2", "B")]
        assert [r.project_id for r in select_rows_for_export(rows, ["2"])] == ["2"]
        assert len(select_rows_for_export(rows, [])) == 2
        # selection that matches nothing visible exports everything visible
        assert len(select_rows_for_export(rows, ["9"])) == 2

    def test_sort(self):
        rows = [_record("1", "b", 10), _record("2", "A", 30), _record("3", "c", 20)]
        assert [r.project_id for r in sort_records(rows, "total_budget", descending=True)] == ["2", "3", "1"]
        assert [r.project_id for r in sort_records(rows, "project_name")] == ["2", "1", "3"]
        assert sort_records(rows, None) == rows
        with pytest.raises(ValueError):
            sort_records(rows, "bogus")

    def test_paginate(self):
        items = list(range(25))
        page = paginate(items, page=3, page_size=10)
        assert page["items"] == [20, 21, 22, 23, 24]
        assert page["pages"] == 3
        assert paginate(items, page=99, page_size=10)["page"] == 3
        assert paginate(items, page=0)["page"] == 1
        assert paginate([], page=1)["pages"] == 1
