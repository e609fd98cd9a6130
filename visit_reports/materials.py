"""Material sales lookup for visits and customers"""
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .errors import FetchError
from .models import FetchResult, MaterialLine, MaterialSummaryLine, month_range
from .visit_storage import VisitStorage


class MaterialSalesLookup:
    """
    Groups ad-hoc product sales by visit.

    Read failures never propagate: the lookup logs them and returns an
    empty degraded result so revenue pages can still render.
    """

    def __init__(self, storage: VisitStorage):
        self.storage = storage

    def lookup(self, visit_ids: Iterable[str]) -> FetchResult[Dict[str, List[MaterialLine]]]:
        """
        Map visit id -> sold lines, in query order.

        An empty id set returns an empty mapping without touching storage.
        """
        ids = [visit_id for visit_id in dict.fromkeys(visit_ids) if visit_id]
        if not ids:
            return FetchResult.ok({})

        try:
            sales = self.storage.fetch_material_sales(ids)
        except FetchError as e:
            logger.warning(f"Could not load material sales for {len(ids)} visits: {e}")
            return FetchResult.degraded({}, e)

        materials_by_visit: Dict[str, List[MaterialLine]] = {}
        for sale in sales:
            visit_id = sale.get('visit_id')
            if not visit_id:
                continue
            lines = [MaterialLine.from_item(item) for item in sale.get('items') or []]
            materials_by_visit.setdefault(str(visit_id), []).extend(lines)

        return FetchResult.ok(materials_by_visit)

    def summarize(self, customer_id: str, year: int, month: int,
                  branch_id: Optional[str] = None) -> FetchResult[List[MaterialSummaryLine]]:
        """Per-product quantity and price totals for a customer's month"""
        start, end = month_range(year, month)
        try:
            sales = self.storage.fetch_customer_material_sales(customer_id, branch_id, start.date(), end.date())
        except FetchError as e:
            logger.warning(f"Could not load material summary for customer {customer_id}: {e}")
            return FetchResult.degraded([], e)

        summary: Dict[str, MaterialSummaryLine] = {}
        for sale in sales:
            for item in sale.get('items') or []:
                line = MaterialLine.from_item(item)
                key = line.product_id or line.name
                if key not in summary:
                    summary[key] = MaterialSummaryLine(
                        product_id=line.product_id,
                        name=line.name,
                        quantity=0.0,
                        unit=line.unit,
                        total_price=0.0,
                        currency=line.currency,
                    )
                summary[key].quantity += line.quantity
                summary[key].total_price += line.total_price

        return FetchResult.ok(list(summary.values()))
