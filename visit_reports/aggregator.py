"""Collects completed visits and planned service requests into one list"""
from typing import List, Literal

from loguru import logger

from config import COMPLETED_STATUS, PLANNED_STATUSES
from .errors import NotFoundError
from .models import FetchResult, Visit, month_range
from .visit_storage import VisitStorage

StatusFilter = Literal['all', 'completed', 'planned']


class VisitAggregator:
    """
    Builds the unified visit list for a company and calendar month.

    Sources:
    - the visits table (visits closed by an operator)
    - the service_requests table (planned / in-progress work)

    Both are translated into Visit records, concatenated (visits first)
    and sorted newest first. The sort is stable, so visits sharing a
    timestamp keep that input order.
    """

    def __init__(self, storage: VisitStorage):
        self.storage = storage

    def collect(self, company_id: str, year: int, month: int,
                status_filter: StatusFilter = 'all') -> FetchResult[List[Visit]]:
        """
        Collect the month's visits.

        Returns a degraded empty result when the company does not exist.
        Storage failures raise FetchError.
        """
        start, end = month_range(year, month)

        try:
            self.storage.get_company(company_id)
        except NotFoundError as e:
            logger.warning(f"No visits for {year}-{month:02d}: {e}")
            return FetchResult.degraded([], e)

        visits: List[Visit] = []

        if status_filter != 'planned':
            for row in self.storage.fetch_completed_visits(company_id, start, end):
                visit = Visit.from_visit_row(row)
                if visit is None:
                    continue
                if status_filter == 'completed' and visit.status != COMPLETED_STATUS:
                    continue
                visits.append(visit)

        for row in self.storage.fetch_planned_visits(company_id, start, end):
            visit = Visit.from_service_request_row(row)
            if visit is None:
                continue
            if status_filter == 'completed' and visit.status != COMPLETED_STATUS:
                continue
            if status_filter == 'planned' and visit.status not in PLANNED_STATUSES:
                continue
            visits.append(visit)

        visits.sort(key=lambda v: v.visit_date, reverse=True)
        return FetchResult.ok(visits)
