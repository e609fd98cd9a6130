"""End-to-end tests for the monthly report service on local storage"""
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from visit_reports.errors import FetchError, InvoiceConflictError
from visit_reports.models import Visit
from visit_reports.report_service import RevenueReportService, VisitFilter, paginate


class TestLoadMonth:

    def test_revenue_per_visit(self, storage):
        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert not report.degraded
        assert report.revenue_for("v1") == pytest.approx(132)   # 100 + 20 + 5 + 7
        for visit_id in ("v2", "v3", "v4"):
            assert report.revenue_for(visit_id) == pytest.approx(100)
        assert report.revenue_for("v5") == pytest.approx(30)     # no plan, materials only
        assert report.revenue_for("sr1") == 0
        assert report.revenue_for("sr2") == 0

    def test_summary(self, storage):
        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert report.summary['visit_count'] == 7
        assert report.summary['completed_count'] == 5
        assert report.summary['planned_count'] == 2
        assert report.summary['invoiced_count'] == 1
        assert report.summary['total_revenue'] == pytest.approx(462)

    def test_missing_company(self, storage):
        report = RevenueReportService(storage).load_month("nobody", 2025, 3)

        assert report.degraded
        assert report.visits == []
        assert report.summary['total_revenue'] == 0

    def test_visit_read_failure_is_degraded(self):
        store = MagicMock()
        store.fetch_completed_visits.side_effect = FetchError("sheet unavailable")

        report = RevenueReportService(store).load_month("comp-1", 2025, 3)

        assert report.degraded
        assert report.visits == []

    def test_pricing_failure_keeps_material_revenue(self, storage, monkeypatch):
        def broken(ids):
            raise FetchError("pricing unavailable")
        monkeypatch.setattr(storage, "fetch_customer_pricing", broken)

        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert report.degraded
        assert report.revenue_for("v1") == pytest.approx(32)
        assert report.revenue_for("v2") == 0

    def test_branch_pricing_failure_keeps_customer_pricing(self, storage, monkeypatch):
        def broken(ids):
            raise FetchError("branch pricing unavailable")
        monkeypatch.setattr(storage, "fetch_branch_pricing", broken)

        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert report.degraded
        assert len(report.issues) == 1
        assert report.revenue_for("v1") == pytest.approx(132)
        assert report.revenue_for("v2") == pytest.approx(100)

    def test_empty_branch_pricing_row_overrides_customer_plan(self, storage):
        storage.insert_rows("branch_pricing", [
            {"branch_id": "br-A1", "per_visit_price": None, "monthly_price": None}
        ])

        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert report.revenue_for("v1") == pytest.approx(32)   # materials only
        assert report.branch_plans["br-A1"].pricing_type == "none"

    def test_branch_plan_overrides_customer_plan(self, storage):
        storage.insert_rows("branch_pricing", [
            {"branch_id": "br-A1", "pricing_type": "per_visit", "per_visit_price": 250}
        ])

        report = RevenueReportService(storage).load_month("comp-1", 2025, 3)

        assert report.revenue_for("v1") == pytest.approx(282)


class TestRevenueRows:

    def test_customer_view(self, storage):
        service = RevenueReportService(storage)
        report = service.load_month("comp-1", 2025, 3)

        rows = service.revenue_rows(report, 'customer')

        assert [(r.customer_name, r.branch_name, r.visit_count) for r in rows] == [
            ("Bakery Co", "Main", 3),
            ("Acme Foods", "Kadikoy", 1),
            ("Depot", "Yard", 1),
        ]
        assert rows[0].pricing_type == "monthly"
        assert rows[2].pricing_type == "none"

    def test_operator_view(self, storage):
        service = RevenueReportService(storage)
        report = service.load_month("comp-1", 2025, 3)

        rows = service.revenue_rows(report, 'operator')

        assert [(r.operator_name, r.visit_count) for r in rows] == [
            ("Ayse Kaya", 2),
            ("Mehmet Demir", 3),
        ]
        assert rows[0].total == pytest.approx(232)
        assert rows[1].total == pytest.approx(230)


class TestToggleInvoiced:

    def test_toggle(self, storage):
        service = RevenueReportService(storage)

        assert service.toggle_invoiced("v1", False) is True
        report = service.load_month("comp-1", 2025, 3)
        assert next(v for v in report.visits if v.id == "v1").is_invoiced

    def test_stale_flag_conflicts(self, storage):
        service = RevenueReportService(storage)

        with pytest.raises(InvoiceConflictError):
            service.toggle_invoiced("v3", False)


class TestMaterialSummary:

    def test_material_summary(self, storage):
        result = RevenueReportService(storage).material_summary("cust-D", 2025, 3)

        assert [(line.name, line.quantity, line.total_price) for line in result.data] == [
            ("Gel bait", 3, 30)
        ]


def _visit(visit_id, **kwargs):
    defaults = dict(
        customer_id="c1",
        visit_date=datetime(2025, 3, 10, 9, 0),
        status="completed",
        customer_name="Acme Foods",
        branch_name="Kadikoy",
        operator_name="Ayse Kaya",
    )
    defaults.update(kwargs)
    return Visit(id=visit_id, **defaults)


class TestVisitFilter:

    def test_search_is_case_insensitive(self):
        visits = [_visit("v1"), _visit("v2", customer_name="Bakery Co")]

        assert [v.id for v in VisitFilter(search="bakery").apply(visits)] == ["v2"]
        assert [v.id for v in VisitFilter(search="AYSE").apply(visits)] == ["v1", "v2"]

    def test_report_number_filter_keeps_visits_without_number(self):
        visits = [
            _visit("v1", report_number="1001"),
            _visit("v2", report_number="2002"),
            _visit("v3"),
        ]

        assert [v.id for v in VisitFilter(report_number="100").apply(visits)] == ["v1", "v3"]

    def test_id_filters(self):
        visits = [
            _visit("v1", operator_id="op-1", branch_id="b1"),
            _visit("v2", operator_id="op-2", branch_id="b2", customer_id="c2"),
        ]

        assert [v.id for v in VisitFilter(operator_id="op-2").apply(visits)] == ["v2"]
        assert [v.id for v in VisitFilter(customer_id="c1").apply(visits)] == ["v1"]
        assert [v.id for v in VisitFilter(branch_id="b1").apply(visits)] == ["v1"]

    def test_date_range_is_inclusive(self):
        visits = [
            _visit("v1", visit_date=datetime(2025, 3, 1, 8, 0)),
            _visit("v2", visit_date=datetime(2025, 3, 15, 23, 0)),
            _visit("v3", visit_date=datetime(2025, 3, 16, 0, 0)),
        ]

        result = VisitFilter(start_date=date(2025, 3, 1), end_date=date(2025, 3, 15)).apply(visits)

        assert [v.id for v in result] == ["v1", "v2"]

    def test_empty_filter_matches_everything(self):
        visits = [_visit("v1"), _visit("v2", status="pending")]
        assert VisitFilter().apply(visits) == visits


class TestPaginate:

    def test_pages(self):
        items = list(range(23))

        page, total = paginate(items, 3, per_page=10)

        assert page == [20, 21, 22]
        assert total == 3

    def test_out_of_range_page_is_clamped(self):
        items = list(range(5))

        assert paginate(items, 9, per_page=2) == ([4], 3)
        assert paginate(items, 0, per_page=2) == ([0, 1], 3)

    def test_empty(self):
        assert paginate([], 1) == ([], 0)
