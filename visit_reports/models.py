"""Data models for Visit Revenue Reports"""
import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Generic, List, Literal, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo

from config import (
    COMPLETED_STATUS,
    DEFAULT_CURRENCY,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_UNIT,
    PLANNED_STATUSES,
    PRICING_TYPES,
    TIMEZONE,
)

VisitStatus = Literal['pending', 'assigned', 'in_progress', 'completed', 'cancelled']
VisitSource = Literal['visit', 'service_request']
PricingType = Literal['per_visit', 'monthly', 'none']

T = TypeVar('T')


# ============ BOUNDARY PARSING ============

def parse_amount(value: Any) -> float:
    """
    Parse a monetary or quantity value coming from storage.

    Numbers and numeric strings are accepted. Anything else (None, empty
    strings, garbage, NaN, infinities) becomes 0.0 so sums never go NaN.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (ValueError, TypeError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_bool(value: Any) -> bool:
    """Parse booleans stored as text in sheets ('true', '1', 'yes')"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes')


def parse_timestamp(value: Any, tz: Optional[str] = None) -> Optional[datetime]:
    """
    Parse a stored timestamp into a naive datetime in the company's local time.

    Accepts ISO-8601 strings (with 'Z', an offset, or date-only), datetime
    and date objects. Values carrying an offset are converted to `tz`
    (default config.TIMEZONE); naive values are taken as local already.
    Returns None when the value cannot be parsed.
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(tz or TIMEZONE)).replace(tzinfo=None)
    return parsed


def month_range(year: int, month: int) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar month, in local time."""
    start = datetime(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day, 23, 59, 59, 999999)
    return start, end


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return str(value)


# ============ VISITS ============

@dataclass
class Visit:
    """A completed visit or a planned service request in one unified shape"""
    id: str
    customer_id: str
    visit_date: datetime
    status: VisitStatus
    source: VisitSource = 'visit'
    branch_id: Optional[str] = None
    operator_id: Optional[str] = None
    report_number: Optional[str] = None
    is_invoiced: bool = False
    customer_name: str = ""
    branch_name: str = ""
    operator_name: str = ""
    visit_type: str = ""
    notes: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED_STATUS

    @property
    def is_planned(self) -> bool:
        return self.status in PLANNED_STATUSES

    @property
    def billing_key(self) -> Tuple[str, Optional[str], int, int]:
        """Customer, branch and calendar month the visit is billed under"""
        return (self.customer_id, self.branch_id, self.visit_date.year, self.visit_date.month)

    @classmethod
    def from_visit_row(cls, row: Dict[str, Any]) -> Optional['Visit']:
        """Build from a row of the visits table. None when the date is unusable."""
        visit_date = parse_timestamp(row.get('visit_date'))
        if visit_date is None:
            return None
        return cls(
            id=_text(row.get('id')),
            customer_id=_text(row.get('customer_id')),
            branch_id=_optional_text(row.get('branch_id')),
            operator_id=_optional_text(row.get('operator_id')),
            visit_date=visit_date,
            status=_text(row.get('status')) or COMPLETED_STATUS,
            source='visit',
            report_number=_optional_text(row.get('report_number')),
            is_invoiced=parse_bool(row.get('is_invoiced')),
            customer_name=_text(row.get('customer_name')),
            branch_name=_text(row.get('branch_name')),
            operator_name=_text(row.get('operator_name')),
            visit_type=_text(row.get('visit_type')),
            notes=_text(row.get('notes')),
        )

    @classmethod
    def from_service_request_row(cls, row: Dict[str, Any]) -> Optional['Visit']:
        """Build from a row of the service_requests table (scheduled_date, service_type)."""
        visit_date = parse_timestamp(row.get('scheduled_date'))
        if visit_date is None:
            return None
        return cls(
            id=_text(row.get('id')),
            customer_id=_text(row.get('customer_id')),
            branch_id=_optional_text(row.get('branch_id')),
            operator_id=_optional_text(row.get('operator_id')),
            visit_date=visit_date,
            status=_text(row.get('status')) or 'pending',
            source='service_request',
            report_number=None,
            is_invoiced=False,
            customer_name=_text(row.get('customer_name')),
            branch_name=_text(row.get('branch_name')),
            operator_name=_text(row.get('operator_name')),
            visit_type=_text(row.get('service_type')),
            notes=_text(row.get('notes')),
        )


# ============ PRICING ============

@dataclass
class PricingPlan:
    """Billing configuration of a customer, or of a single branch"""
    customer_id: Optional[str]
    pricing_type: PricingType
    per_visit_price: float = 0.0
    monthly_price: float = 0.0
    branch_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PricingPlan':
        """
        Build from a customer_pricing or branch_pricing row.

        Rows without an explicit pricing_type are typed by whichever price
        is set (monthly first). Rows with neither price become a 'none'
        plan worth 0, so an empty branch row still overrides the customer.
        """
        per_visit_price = parse_amount(row.get('per_visit_price'))
        monthly_price = parse_amount(row.get('monthly_price'))

        pricing_type = _text(row.get('pricing_type')).strip().lower()
        if pricing_type not in PRICING_TYPES:
            if monthly_price:
                pricing_type = 'monthly'
            elif per_visit_price:
                pricing_type = 'per_visit'
            else:
                pricing_type = 'none'

        return cls(
            customer_id=_optional_text(row.get('customer_id')),
            branch_id=_optional_text(row.get('branch_id')),
            pricing_type=pricing_type,
            per_visit_price=per_visit_price,
            monthly_price=monthly_price,
        )


# ============ MATERIAL SALES ============

@dataclass
class MaterialLine:
    """One product line sold during a visit"""
    name: str
    quantity: float
    unit: str
    unit_price: float
    total_price: float
    currency: str = DEFAULT_CURRENCY
    product_id: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'MaterialLine':
        product = item.get('product') or {}
        return cls(
            product_id=_optional_text(item.get('product_id')),
            name=_text(product.get('name')) or DEFAULT_PRODUCT_NAME,
            quantity=parse_amount(item.get('quantity')),
            unit=_text(product.get('unit')) or DEFAULT_UNIT,
            unit_price=parse_amount(item.get('unit_price')),
            total_price=parse_amount(item.get('total_price')),
            currency=_text(product.get('currency')) or DEFAULT_CURRENCY,
        )


@dataclass
class MaterialSummaryLine:
    """Per-product totals for a customer over a month"""
    product_id: Optional[str]
    name: str
    quantity: float
    unit: str
    total_price: float
    currency: str = DEFAULT_CURRENCY


# ============ REVENUE ============

@dataclass
class VisitRevenue:
    """Revenue attributed to a single visit"""
    visit_id: str
    service_revenue: float = 0.0
    material_revenue: float = 0.0

    @property
    def total(self) -> float:
        return self.service_revenue + self.material_revenue


@dataclass
class CustomerRevenueRow:
    """Revenue rollup for one customer branch"""
    customer_id: str
    customer_name: str
    branch_id: Optional[str] = None
    branch_name: str = ""
    pricing_type: str = 'none'
    visit_count: int = 0
    service_revenue: float = 0.0
    material_revenue: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.customer_id}::{self.branch_id}" if self.branch_id else self.customer_id

    @property
    def total(self) -> float:
        return self.service_revenue + self.material_revenue


@dataclass
class OperatorRevenueRow:
    """Revenue rollup for one operator"""
    operator_id: str
    operator_name: str
    visit_count: int = 0
    service_revenue: float = 0.0
    material_revenue: float = 0.0

    @property
    def total(self) -> float:
        return self.service_revenue + self.material_revenue


# ============ RESULTS ============

@dataclass
class FetchResult(Generic[T]):
    """
    Outcome of a read path.

    A degraded result still carries usable (possibly empty or partial)
    data, plus the error that caused the degradation.
    """
    data: T
    cause: Optional[Exception] = None

    @property
    def is_degraded(self) -> bool:
        return self.cause is not None

    @classmethod
    def ok(cls, data: T) -> 'FetchResult[T]':
        return cls(data=data)

    @classmethod
    def degraded(cls, data: T, cause: Exception) -> 'FetchResult[T]':
        return cls(data=data, cause=cause)


@dataclass
class MonthlyVisitReport:
    """Everything the visits and revenue screens need for one company-month"""
    company_id: str
    year: int
    month: int
    visits: List[Visit] = field(default_factory=list)
    materials: Dict[str, List[MaterialLine]] = field(default_factory=dict)
    revenues: Dict[str, VisitRevenue] = field(default_factory=dict)
    customer_plans: Dict[str, PricingPlan] = field(default_factory=dict)
    branch_plans: Dict[str, PricingPlan] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)
    issues: List[Exception] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.issues)

    def revenue_for(self, visit_id: str) -> float:
        revenue = self.revenues.get(visit_id)
        return revenue.total if revenue else 0.0
