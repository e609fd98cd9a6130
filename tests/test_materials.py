"""Tests for material sales lookup"""
from unittest.mock import MagicMock

import pytest

from visit_reports.errors import FetchError
from visit_reports.materials import MaterialSalesLookup


class TestLookup:

    def test_empty_ids_skip_storage(self):
        store = MagicMock()

        result = MaterialSalesLookup(store).lookup([])

        assert result.data == {}
        assert not result.is_degraded
        store.fetch_material_sales.assert_not_called()

    def test_groups_lines_by_visit(self, storage):
        result = MaterialSalesLookup(storage).lookup(["v1", "v5", "v2"])

        assert not result.is_degraded
        assert set(result.data) == {"v1", "v5"}
        assert [m.name for m in result.data["v1"]] == ["Gel bait", "Glue trap", "Unknown product"]
        assert sum(m.total_price for m in result.data["v1"]) == pytest.approx(32)
        assert result.data["v5"][0].quantity == 3

    def test_duplicate_ids_queried_once(self):
        store = MagicMock()
        store.fetch_material_sales.return_value = []

        MaterialSalesLookup(store).lookup(["v1", "v1", "v2"])

        store.fetch_material_sales.assert_called_once_with(["v1", "v2"])

    def test_failure_is_degraded_not_raised(self):
        store = MagicMock()
        store.fetch_material_sales.side_effect = FetchError("timeout")

        result = MaterialSalesLookup(store).lookup(["v1"])

        assert result.data == {}
        assert result.is_degraded
        assert isinstance(result.cause, FetchError)


class TestSummarize:

    def test_totals_per_product(self, storage):
        result = MaterialSalesLookup(storage).summarize("cust-A", 2025, 3)

        assert [line.name for line in result.data] == ["Gel bait", "Glue trap", "Unknown product"]
        gel = result.data[0]
        assert gel.quantity == 2
        assert gel.total_price == 20
        assert gel.unit == "tube"

    def test_branch_filter(self, storage):
        result = MaterialSalesLookup(storage).summarize("cust-A", 2025, 3, branch_id="br-other")
        assert result.data == []

    def test_failure_is_degraded(self):
        store = MagicMock()
        store.fetch_customer_material_sales.side_effect = FetchError("timeout")

        result = MaterialSalesLookup(store).summarize("cust-A", 2025, 3)

        assert result.data == []
        assert result.is_degraded
