"""Monthly visit and revenue report assembly"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Literal, Optional, Sequence, Set, Tuple, TypeVar, Union

from loguru import logger

from config import ITEMS_PER_PAGE
from .aggregator import StatusFilter, VisitAggregator
from .calculator import RevenueCalculator, index_plans
from .errors import FetchError, InvoiceConflictError, NotFoundError
from .materials import MaterialSalesLookup
from .models import (
    CustomerRevenueRow,
    FetchResult,
    MaterialSummaryLine,
    MonthlyVisitReport,
    OperatorRevenueRow,
    PricingPlan,
    Visit,
)
from .visit_storage import VisitStorage

RevenueView = Literal['customer', 'operator']

T = TypeVar('T')


@dataclass
class VisitFilter:
    """Search box and filter panel of the visits screen"""
    search: str = ""
    operator_id: Optional[str] = None
    customer_id: Optional[str] = None
    branch_id: Optional[str] = None
    report_number: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def matches(self, visit: Visit) -> bool:
        query = self.search.strip().lower()
        if query:
            haystack = [
                visit.customer_name.lower(),
                visit.branch_name.lower(),
                visit.operator_name.lower(),
                (visit.report_number or '').lower(),
            ]
            if not any(query in text for text in haystack):
                return False

        if self.operator_id and visit.operator_id != self.operator_id:
            return False
        if self.customer_id and visit.customer_id != self.customer_id:
            return False
        if self.branch_id and visit.branch_id != self.branch_id:
            return False

        # Visits without a report number are not excluded by this filter
        if self.report_number and visit.report_number and self.report_number not in visit.report_number:
            return False

        visit_day = visit.visit_date.date()
        if self.start_date and visit_day < self.start_date:
            return False
        if self.end_date and visit_day > self.end_date:
            return False

        return True

    def apply(self, visits: List[Visit]) -> List[Visit]:
        return [visit for visit in visits if self.matches(visit)]


def paginate(items: Sequence[T], page: int = 1, per_page: int = ITEMS_PER_PAGE) -> Tuple[List[T], int]:
    """
    Slice one page out of a list.

    Pages are 1-based; out-of-range pages are clamped.

    Returns:
        (items on the page, total number of pages)
    """
    total_pages = math.ceil(len(items) / per_page) if items else 0
    page = min(max(page, 1), max(total_pages, 1))
    start = (page - 1) * per_page
    return list(items[start:start + per_page]), total_pages


class RevenueReportService:
    """
    Loads one company-month and attributes revenue to its visits.

    Flow: visit aggregator -> material sales of the completed visits ->
    pricing plans of the customers involved (one fetch) -> calculator.

    Read problems degrade the report (recorded in report.issues) instead
    of failing it. The invoiced toggle is the only write and propagates
    its errors.
    """

    def __init__(self, storage: VisitStorage):
        self.storage = storage
        self.aggregator = VisitAggregator(storage)
        self.materials = MaterialSalesLookup(storage)
        self.calculator = RevenueCalculator()

    def load_month(self, company_id: str, year: int, month: int,
                   status_filter: StatusFilter = 'all') -> MonthlyVisitReport:
        report = MonthlyVisitReport(company_id=company_id, year=year, month=month)

        try:
            collected = self.aggregator.collect(company_id, year, month, status_filter)
        except FetchError as e:
            logger.warning(f"Could not load visits for {year}-{month:02d}: {e}")
            collected = FetchResult.degraded([], e)

        if collected.is_degraded:
            report.issues.append(collected.cause)
        report.visits = collected.data

        completed = [v for v in report.visits if v.is_completed]

        materials = self.materials.lookup(v.id for v in completed)
        if materials.is_degraded:
            report.issues.append(materials.cause)
        report.materials = materials.data

        report.customer_plans, report.branch_plans = self._load_pricing(completed, report)

        report.revenues = self.calculator.calculate_breakdown(
            report.visits,
            report.customer_plans,
            report.materials,
            report.branch_plans
        )
        report.summary = self.calculator.calculate_summary(report.visits, report.revenues)

        return report

    def _load_pricing(self, visits: List[Visit],
                      report: MonthlyVisitReport) -> Tuple[Dict[str, PricingPlan], Dict[str, PricingPlan]]:
        """Customer and branch plans for the given visits; each table degrades on its own"""
        customer_ids = {v.customer_id for v in visits if v.customer_id}
        branch_ids = {v.branch_id for v in visits if v.branch_id}
        if not customer_ids and not branch_ids:
            return {}, {}

        customer_plans = self._fetch_plans(self.storage.fetch_customer_pricing, customer_ids,
                                           'customer_id', report)
        branch_plans = self._fetch_plans(self.storage.fetch_branch_pricing, branch_ids,
                                         'branch_id', report)
        return customer_plans, branch_plans

    def _fetch_plans(self, fetch: Callable[[Set[str]], List[dict]], ids: Set[str], attr: str,
                     report: MonthlyVisitReport) -> Dict[str, PricingPlan]:
        """One pricing table; a failed read leaves only that table empty"""
        try:
            rows = fetch(ids)
        except FetchError as e:
            logger.warning(f"Could not load pricing by {attr}, those plans left out: {e}")
            report.issues.append(e)
            return {}
        return index_plans([PricingPlan.from_row(row) for row in rows], attr)

    def revenue_rows(self, report: MonthlyVisitReport,
                     view: RevenueView = 'customer') -> List[Union[CustomerRevenueRow, OperatorRevenueRow]]:
        """Rollup rows for the revenue screen"""
        if view == 'operator':
            return self.calculator.operator_rollup(report.visits, report.revenues)
        return self.calculator.customer_rollup(
            report.visits,
            report.revenues,
            report.customer_plans,
            report.branch_plans
        )

    def toggle_invoiced(self, visit_id: str, current: bool) -> bool:
        """
        Flip the invoiced flag of a visit.

        The write only happens if the stored flag still equals `current`.

        Returns:
            The new flag value
        """
        new_value = not current
        try:
            self.storage.set_invoiced(visit_id, new_value, expected_current=current)
        except (FetchError, NotFoundError, InvoiceConflictError) as e:
            logger.error(f"Could not update invoiced flag of visit {visit_id}: {e}")
            raise
        return new_value

    def material_summary(self, customer_id: str, year: int, month: int,
                         branch_id: Optional[str] = None) -> FetchResult[List[MaterialSummaryLine]]:
        return self.materials.summarize(customer_id, year, month, branch_id)
