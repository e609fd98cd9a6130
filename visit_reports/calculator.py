"""Revenue calculation logic for Visit Revenue Reports"""
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .models import (
    CustomerRevenueRow,
    MaterialLine,
    OperatorRevenueRow,
    PricingPlan,
    Visit,
    VisitRevenue,
)

Plans = Union[Mapping[str, PricingPlan], Iterable[PricingPlan]]


def index_plans(plans: Optional[Plans], attr: str) -> Dict[str, PricingPlan]:
    """Key pricing plans by customer_id or branch_id. The first plan per key wins."""
    if plans is None:
        return {}
    if isinstance(plans, Mapping):
        return dict(plans)
    indexed: Dict[str, PricingPlan] = {}
    for plan in plans:
        key = getattr(plan, attr)
        if key and key not in indexed:
            indexed[key] = plan
    return indexed


class RevenueCalculator:
    """
    Calculates the revenue attributed to each visit.

    Business Logic:
    ===============

    Only COMPLETED visits earn anything. Pending, assigned, in-progress
    and cancelled visits are worth exactly 0, material sales included.

    Service revenue comes from the pricing plan of the visit:
    - A plan set on the visit's branch overrides the customer plan
    - PER VISIT: the flat per-visit price
    - MONTHLY: the monthly price split evenly over the completed visits
      of the same customer + branch in the same local calendar month
      (divisor never below 1)
    - NONE (plan row with neither price) or no plan: 0

    Material revenue is the sum of the line totals sold during the visit.

    The calculator keeps no state: the same visits, plans and material
    sales always produce the same amounts.
    """

    def resolve_plan(self, visit: Visit, customer_plans: Dict[str, PricingPlan],
                     branch_plans: Dict[str, PricingPlan]) -> Optional[PricingPlan]:
        """Pricing plan that applies to a visit, if any"""
        if visit.branch_id and visit.branch_id in branch_plans:
            return branch_plans[visit.branch_id]
        return customer_plans.get(visit.customer_id)

    def calculate_breakdown(
        self,
        visits: List[Visit],
        pricing: Optional[Plans],
        materials: Mapping[str, List[MaterialLine]],
        branch_pricing: Optional[Plans] = None,
    ) -> Dict[str, VisitRevenue]:
        """
        Calculate service and material revenue for every visit.

        Args:
            visits: The unified visit list (one billing batch)
            pricing: Customer pricing plans
            materials: Material lines keyed by visit id
            branch_pricing: Optional branch pricing plans

        Returns:
            Mapping of visit id to VisitRevenue
        """
        customer_plans = index_plans(pricing, 'customer_id')
        branch_plans = index_plans(branch_pricing, 'branch_id')

        # Completed visits per customer + branch + calendar month
        month_visits = Counter(v.billing_key for v in visits if v.is_completed)

        breakdown: Dict[str, VisitRevenue] = {}
        for visit in visits:
            if not visit.is_completed:
                breakdown[visit.id] = VisitRevenue(visit_id=visit.id)
                continue

            service_revenue = 0.0
            plan = self.resolve_plan(visit, customer_plans, branch_plans)
            if plan is not None:
                if plan.pricing_type == 'per_visit':
                    service_revenue = plan.per_visit_price
                elif plan.pricing_type == 'monthly':
                    service_revenue = plan.monthly_price / max(month_visits[visit.billing_key], 1)

            material_revenue = sum(line.total_price for line in materials.get(visit.id, []))

            breakdown[visit.id] = VisitRevenue(
                visit_id=visit.id,
                service_revenue=service_revenue,
                material_revenue=material_revenue
            )

        return breakdown

    def calculate(
        self,
        visits: List[Visit],
        pricing: Optional[Plans],
        materials: Mapping[str, List[MaterialLine]],
        branch_pricing: Optional[Plans] = None,
    ) -> Dict[str, float]:
        """Revenue amount per visit id"""
        breakdown = self.calculate_breakdown(visits, pricing, materials, branch_pricing)
        return {visit_id: revenue.total for visit_id, revenue in breakdown.items()}

    def calculate_summary(self, visits: List[Visit],
                          revenues: Mapping[str, Union[float, VisitRevenue]]) -> dict:
        """
        Calculate summary totals for a visit list.

        Args:
            visits: Visits shown on the page
            revenues: Output of calculate() or calculate_breakdown()

        Returns:
            Dictionary with summary totals
        """
        summary = {
            'visit_count': len(visits),
            'completed_count': sum(1 for v in visits if v.is_completed),
            'planned_count': sum(1 for v in visits if v.is_planned),
            'invoiced_count': sum(1 for v in visits if v.is_invoiced),
            'total_revenue': 0.0,
            'total_service': 0.0,
            'total_material': 0.0,
        }

        for visit in visits:
            revenue = revenues.get(visit.id)
            if revenue is None:
                continue
            if isinstance(revenue, VisitRevenue):
                summary['total_revenue'] += revenue.total
                summary['total_service'] += revenue.service_revenue
                summary['total_material'] += revenue.material_revenue
            else:
                summary['total_revenue'] += revenue

        return summary

    def customer_rollup(
        self,
        visits: List[Visit],
        breakdown: Mapping[str, VisitRevenue],
        pricing: Optional[Plans] = None,
        branch_pricing: Optional[Plans] = None,
    ) -> List[CustomerRevenueRow]:
        """Completed-visit revenue per customer branch, highest total first"""
        customer_plans = index_plans(pricing, 'customer_id')
        branch_plans = index_plans(branch_pricing, 'branch_id')

        rows: Dict[tuple, CustomerRevenueRow] = {}
        for visit in visits:
            if not visit.is_completed:
                continue

            key = (visit.customer_id, visit.branch_id)
            if key not in rows:
                plan = self.resolve_plan(visit, customer_plans, branch_plans)
                rows[key] = CustomerRevenueRow(
                    customer_id=visit.customer_id,
                    customer_name=visit.customer_name or '—',
                    branch_id=visit.branch_id,
                    branch_name=visit.branch_name,
                    pricing_type=plan.pricing_type if plan else 'none',
                )

            row = rows[key]
            row.visit_count += 1
            revenue = breakdown.get(visit.id)
            if revenue is not None:
                row.service_revenue += revenue.service_revenue
                row.material_revenue += revenue.material_revenue

        result = list(rows.values())
        result.sort(key=lambda r: r.total, reverse=True)
        return result

    def operator_rollup(self, visits: List[Visit],
                        breakdown: Mapping[str, VisitRevenue]) -> List[OperatorRevenueRow]:
        """Completed-visit revenue per operator, highest total first"""
        rows: Dict[str, OperatorRevenueRow] = {}
        for visit in visits:
            if not visit.is_completed or not visit.operator_id:
                continue

            if visit.operator_id not in rows:
                rows[visit.operator_id] = OperatorRevenueRow(
                    operator_id=visit.operator_id,
                    operator_name=visit.operator_name or '—',
                )

            row = rows[visit.operator_id]
            row.visit_count += 1
            revenue = breakdown.get(visit.id)
            if revenue is not None:
                row.service_revenue += revenue.service_revenue
                row.material_revenue += revenue.material_revenue

        result = list(rows.values())
        result.sort(key=lambda r: r.total, reverse=True)
        return result
