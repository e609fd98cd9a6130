"""
Visit Revenue Reports - Streamlit application
"""
from datetime import date, datetime
from io import BytesIO

import pandas as pd
import streamlit as st

from visit_reports.errors import FetchError, InvoiceConflictError, NotFoundError
from visit_reports.html_exporter import STATUS_LABELS, HTMLReportExporter
from visit_reports.report_generator import RevenueReportGenerator
from visit_reports.report_service import RevenueReportService, VisitFilter, paginate
from visit_reports.visit_storage import VisitStorage
from config import COMPANY_NAME, DEFAULT_COMPANY_ID, DEFAULT_CURRENCY, MONTH_NAMES, currency_symbol


# Initialize storage (cached across reruns)
@st.cache_resource
def _get_storage():
    return VisitStorage()

storage = _get_storage()
service = RevenueReportService(storage)


def _company_settings(company_id: str) -> tuple:
    """Display name and currency of the selected company"""
    try:
        company = storage.get_company(company_id)
    except (NotFoundError, FetchError):
        return COMPANY_NAME, DEFAULT_CURRENCY
    return company.get('name') or COMPANY_NAME, company.get('currency') or DEFAULT_CURRENCY


def month_selector():
    """Previous / next month navigation stored in session state"""
    if 'report_month' not in st.session_state:
        today = date.today()
        st.session_state.report_month = today.month
        st.session_state.report_year = today.year

    col1, col2, col3 = st.columns([1, 3, 1])
    with col1:
        if st.button("◀", key="prev_month"):
            if st.session_state.report_month == 1:
                st.session_state.report_month = 12
                st.session_state.report_year -= 1
            else:
                st.session_state.report_month -= 1
            st.session_state.visits_page = 1
            st.rerun()
    with col2:
        st.markdown(f"### {MONTH_NAMES[st.session_state.report_month - 1]} {st.session_state.report_year}")
    with col3:
        if st.button("▶", key="next_month"):
            if st.session_state.report_month == 12:
                st.session_state.report_month = 1
                st.session_state.report_year += 1
            else:
                st.session_state.report_month += 1
            st.session_state.visits_page = 1
            st.rerun()

    return st.session_state.report_year, st.session_state.report_month


def show_issues(report):
    if report.degraded:
        st.warning("⚠️ Some data could not be loaded. Figures may be incomplete.")
        for issue in report.issues:
            st.caption(f"• {issue}")


def render_visit(visit, report, symbol: str):
    """One visit card with invoiced toggle and sold materials"""
    with st.container():
        col1, col2, col3, col4 = st.columns([4, 2, 2, 1])

        with col1:
            st.markdown(f"**{visit.customer_name or '—'}**" + (f" / {visit.branch_name}" if visit.branch_name else ""))
            caption = f"📅 {visit.visit_date.strftime('%d.%m.%Y %H:%M')} | 👤 {visit.operator_name or '—'}"
            if visit.report_number:
                caption += f" | 📄 {visit.report_number}"
            st.caption(caption)

        with col2:
            st.markdown(STATUS_LABELS.get(visit.status, visit.status))

        with col3:
            if visit.is_completed:
                st.markdown(f"**{symbol}{report.revenue_for(visit.id):,.2f}**")
            else:
                st.markdown("-")

        with col4:
            if visit.source == 'visit' and visit.is_completed:
                label = "🧾 ✓" if visit.is_invoiced else "🧾"
                if st.button(label, key=f"invoiced_{visit.id}", help="Toggle invoiced"):
                    try:
                        service.toggle_invoiced(visit.id, visit.is_invoiced)
                        st.rerun()
                    except InvoiceConflictError:
                        st.warning("Someone else changed this visit. Reloading.")
                        st.rerun()
                    except (FetchError, NotFoundError) as e:
                        st.error(f"❌ Could not update visit: {e}")

        materials = report.materials.get(visit.id, [])
        if materials:
            with st.expander(f"📦 Materials ({len(materials)})"):
                st.dataframe(pd.DataFrame([{
                    'Product': m.name,
                    'Quantity': f"{m.quantity:g} {m.unit}",
                    'Unit Price': f"{currency_symbol(m.currency)}{m.unit_price:,.2f}",
                    'Total': f"{currency_symbol(m.currency)}{m.total_price:,.2f}"
                } for m in materials]), use_container_width=True, hide_index=True)

        st.markdown("---")


def page_visits(company_id: str):
    """Page listing the month's visits"""
    st.header("📋 Visits")

    company_name, currency = _company_settings(company_id)
    symbol = currency_symbol(currency)

    year, month = month_selector()

    status_filter = st.sidebar.radio(
        "Status",
        ['all', 'completed', 'planned'],
        format_func=lambda s: {'all': 'All', 'completed': 'Completed', 'planned': 'Planned'}[s]
    )

    report = service.load_month(company_id, year, month, status_filter)
    show_issues(report)

    # Summary stats
    summary = report.summary
    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        st.metric("Total", summary['visit_count'])
    with col2:
        st.metric("Completed", summary['completed_count'])
    with col3:
        st.metric("Planned", summary['planned_count'])
    with col4:
        st.metric("Invoiced", summary['invoiced_count'])
    with col5:
        st.metric("Revenue", f"{symbol}{summary['total_revenue']:,.2f}")

    # Filters
    with st.expander("🔍 Filters", expanded=False):
        search = st.text_input("Search (customer, branch, operator, report no)")

        operators = {v.operator_id: v.operator_name for v in report.visits if v.operator_id}
        customers = {v.customer_id: v.customer_name for v in report.visits if v.customer_id}

        fcol1, fcol2 = st.columns(2)
        with fcol1:
            operator_id = st.selectbox("Operator", [None] + list(operators),
                                       format_func=lambda o: "All" if o is None else operators[o] or o)
            customer_id = st.selectbox("Customer", [None] + list(customers),
                                       format_func=lambda c: "All" if c is None else customers[c] or c)
            branches = {v.branch_id: v.branch_name for v in report.visits
                        if v.branch_id and (customer_id is None or v.customer_id == customer_id)}
            branch_id = st.selectbox("Branch", [None] + list(branches),
                                     format_func=lambda b: "All" if b is None else branches[b] or b)
        with fcol2:
            report_number = st.text_input("Report No")
            start_date = st.date_input("From", value=None)
            end_date = st.date_input("To", value=None)

    visit_filter = VisitFilter(
        search=search,
        operator_id=operator_id,
        customer_id=customer_id,
        branch_id=branch_id,
        report_number=report_number,
        start_date=start_date,
        end_date=end_date
    )
    filtered = visit_filter.apply(report.visits)

    st.markdown(f"### Visits ({len(filtered)})")
    if not filtered:
        st.info("No visits match the selected filters.")
        return

    # Pagination: the page widget is read before slicing, the list is drawn above it
    if 'visits_page' not in st.session_state:
        st.session_state.visits_page = 1
    _, total_pages = paginate(filtered)

    list_area = st.container()
    if total_pages > 1:
        st.session_state.visits_page = min(max(int(st.session_state.visits_page), 1), total_pages)
        st.number_input(
            f"Page (of {total_pages})", min_value=1, max_value=total_pages,
            step=1, key="visits_page"
        )
    else:
        st.session_state.visits_page = 1

    page_visits_list, _ = paginate(filtered, st.session_state.visits_page)
    with list_area:
        for visit in page_visits_list:
            render_visit(visit, report, symbol)

    # Material summary for one customer
    if customer_id:
        st.markdown("### 📦 Material Summary")
        result = service.material_summary(customer_id, year, month, branch_id)
        if result.is_degraded:
            st.warning("⚠️ Material sales could not be loaded.")
        elif not result.data:
            st.info("No material sales this month.")
        else:
            st.dataframe(pd.DataFrame([{
                'Product': line.name,
                'Quantity': f"{line.quantity:g} {line.unit}",
                'Total': f"{currency_symbol(line.currency)}{line.total_price:,.2f}"
            } for line in result.data]), use_container_width=True, hide_index=True)


def page_revenue(company_id: str):
    """Monthly revenue by customer branch or operator"""
    st.header("📈 Revenue Reports")

    company_name, currency = _company_settings(company_id)
    symbol = currency_symbol(currency)

    year, month = month_selector()

    view = st.sidebar.radio(
        "Group by",
        ['customer', 'operator'],
        format_func=lambda v: "Customer / Branch" if v == 'customer' else "Operator"
    )

    report = service.load_month(company_id, year, month)
    show_issues(report)

    rows = service.revenue_rows(report, view)

    generator = RevenueReportGenerator(year, month, view=view, company_name=company_name, currency=currency)
    generator.add_rows(rows)
    totals = generator.get_summary_row()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Total Revenue", f"{symbol}{totals['Total']:,.2f}")
    with col2:
        st.metric("Service", f"{symbol}{totals['Service']:,.2f}")
    with col3:
        st.metric("Material", f"{symbol}{totals['Material']:,.2f}")
    with col4:
        st.metric("Completed Visits", totals['Visits'])

    if not rows:
        st.info("📭 No completed visits this month.")
        return

    st.dataframe(generator.to_dataframe(), use_container_width=True, hide_index=True)

    # Download buttons
    st.markdown("---")
    st.markdown("### 📥 Download Report")

    timestamp = datetime.now().strftime('%Y%m%d')
    col1, col2 = st.columns(2)

    with col1:
        buffer = BytesIO()
        generator.export_excel(buffer)
        st.download_button(
            label="📊 Download Excel Report",
            data=buffer.getvalue(),
            file_name=f"revenue_{year}_{month:02d}_{view}_{timestamp}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )

    with col2:
        html_content = HTMLReportExporter(report, company_name=company_name, currency=currency).generate_html()
        st.download_button(
            label="📄 Download HTML Visit List",
            data=html_content,
            file_name=f"visits_{year}_{month:02d}_{timestamp}.html",
            mime="text/html"
        )


def main():
    st.set_page_config(
        page_title=f"{COMPANY_NAME} - Visit Reports",
        page_icon="🐜",
        layout="wide"
    )

    st.sidebar.title(f"🐜 {COMPANY_NAME}")
    st.sidebar.caption(f"Storage: {storage.backend}")

    company_id = st.sidebar.text_input("Company ID", value=DEFAULT_COMPANY_ID).strip()

    st.sidebar.markdown("---")

    # Navigation
    page = st.sidebar.radio(
        "Navigation",
        ["📋 Visits", "📈 Revenue Reports"],
        label_visibility="collapsed"
    )

    st.sidebar.markdown("---")

    if not company_id:
        st.info("Enter a company ID in the sidebar to load its visits.")
        return

    # Page routing
    if page == "📋 Visits":
        page_visits(company_id)
    elif page == "📈 Revenue Reports":
        page_revenue(company_id)


if __name__ == '__main__':
    main()
