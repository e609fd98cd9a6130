"""Shared fixtures: a local JSON storage seeded with one month of visits."""
import os
import sys
from pathlib import Path

import pytest

# Force local backend for tests
os.environ["USE_LOCAL_STORAGE"] = "true"

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from visit_reports.visit_storage import VisitStorage

SEED = {
    "companies": [
        {"id": "comp-1", "name": "Bugfree Ltd", "currency": "TRY"},
        {"id": "comp-2", "name": "Other Co", "currency": "EUR"},
    ],
    "operators": [
        {"id": "op-1", "company_id": "comp-1", "full_name": "Ayse Kaya"},
        {"id": "op-2", "company_id": "comp-1", "full_name": "Mehmet Demir"},
        {"id": "op-9", "company_id": "comp-2", "full_name": "Somebody Else"},
    ],
    "customers": [
        {"id": "cust-A", "company_id": "comp-1", "company_name": "Acme Foods"},
        {"id": "cust-B", "company_id": "comp-1", "company_name": "Bakery Co"},
        {"id": "cust-D", "company_id": "comp-1", "company_name": "Depot"},
    ],
    "branches": [
        {"id": "br-A1", "customer_id": "cust-A", "branch_name": "Kadikoy"},
        {"id": "br-B1", "customer_id": "cust-B", "branch_name": "Main"},
        {"id": "br-D1", "customer_id": "cust-D", "branch_name": "Yard"},
    ],
    "customer_pricing": [
        {"id": "cp-A", "customer_id": "cust-A", "pricing_type": "per_visit",
         "per_visit_price": "100", "monthly_price": None},
        {"id": "cp-B", "customer_id": "cust-B", "pricing_type": "monthly",
         "per_visit_price": None, "monthly_price": 300},
    ],
    "visits": [
        {"id": "v1", "customer_id": "cust-A", "branch_id": "br-A1", "operator_id": "op-1",
         "visit_date": "2025-03-05T10:00:00Z", "status": "completed", "report_number": "1001",
         "is_invoiced": False},
        {"id": "v2", "customer_id": "cust-B", "branch_id": "br-B1", "operator_id": "op-1",
         "visit_date": "2025-03-10T09:00:00Z", "status": "completed", "report_number": "1002",
         "is_invoiced": False},
        {"id": "v3", "customer_id": "cust-B", "branch_id": "br-B1", "operator_id": "op-2",
         "visit_date": "2025-03-20T09:00:00Z", "status": "completed", "report_number": "1003",
         "is_invoiced": True},
        {"id": "v4", "customer_id": "cust-B", "branch_id": "br-B1", "operator_id": "op-2",
         "visit_date": "2025-03-25T09:00:00Z", "status": "completed", "report_number": "1004",
         "is_invoiced": False},
        {"id": "v5", "customer_id": "cust-D", "branch_id": "br-D1", "operator_id": "op-2",
         "visit_date": "2025-03-15T09:00:00Z", "status": "completed", "report_number": "1005",
         "is_invoiced": False},
        {"id": "v-other", "customer_id": "cust-A", "branch_id": "br-A1", "operator_id": "op-9",
         "visit_date": "2025-03-12T09:00:00Z", "status": "completed", "is_invoiced": False},
        {"id": "v-april", "customer_id": "cust-A", "branch_id": "br-A1", "operator_id": "op-1",
         "visit_date": "2025-04-02T09:00:00Z", "status": "completed", "is_invoiced": False},
    ],
    "service_requests": [
        {"id": "sr1", "company_id": "comp-1", "customer_id": "cust-A", "branch_id": "br-A1",
         "operator_id": "op-1", "scheduled_date": "2025-03-28T08:00:00", "status": "pending",
         "service_type": "Inspection"},
        {"id": "sr2", "company_id": "comp-1", "customer_id": "cust-B", "branch_id": "br-B1",
         "operator_id": "op-2", "scheduled_date": "2025-03-10T09:00:00Z", "status": "in_progress",
         "service_type": "Spraying"},
        {"id": "sr3", "company_id": "comp-2", "customer_id": "cust-A", "branch_id": "br-A1",
         "operator_id": "op-9", "scheduled_date": "2025-03-11T08:00:00", "status": "pending"},
    ],
    "paid_products": [
        {"id": "p1", "name": "Gel bait", "unit": "tube", "price": 10, "currency": "TRY"},
        {"id": "p2", "name": "Glue trap", "unit": "pcs", "price": 5, "currency": "TRY"},
    ],
    "paid_material_sales": [
        {"id": "s1", "visit_id": "v1", "customer_id": "cust-A", "branch_id": "br-A1",
         "sale_date": "2025-03-05"},
        {"id": "s2", "visit_id": "v5", "customer_id": "cust-D", "branch_id": "br-D1",
         "sale_date": "2025-03-15"},
        {"id": "s3", "visit_id": "v1", "customer_id": "cust-A", "branch_id": "br-A1",
         "sale_date": "2025-03-05"},
    ],
    "paid_material_sale_items": [
        {"id": "i1", "sale_id": "s1", "product_id": "p1", "quantity": 2, "unit_price": 10, "total_price": 20},
        {"id": "i2", "sale_id": "s1", "product_id": "p2", "quantity": 1, "unit_price": 5, "total_price": "5"},
        {"id": "i3", "sale_id": "s2", "product_id": "p1", "quantity": 3, "unit_price": 10, "total_price": 30},
        {"id": "i4", "sale_id": "s3", "product_id": "p-missing", "quantity": 1, "unit_price": 7, "total_price": 7},
    ],
}


@pytest.fixture
def storage(tmp_path):
    """Local storage seeded with March 2025 for company comp-1"""
    store = VisitStorage(data_dir=str(tmp_path))
    for table, rows in SEED.items():
        store.insert_rows(table, rows)
    return store
