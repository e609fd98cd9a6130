"""HTML Report Exporter for Visit Revenue Reports"""
from datetime import datetime
from html import escape
from pathlib import Path

from config import COMPANY_NAME, DEFAULT_CURRENCY, MONTH_NAMES, currency_symbol
from .models import MonthlyVisitReport

STATUS_LABELS = {
    'pending': 'Pending',
    'assigned': 'Assigned',
    'in_progress': 'In progress',
    'completed': 'Completed',
    'cancelled': 'Cancelled'
}


class HTMLReportExporter:
    """
    Generates a printable HTML list of a month's visits with their revenue.
    """

    HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        * {{
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }}

        body {{
            font-family: Arial, sans-serif;
            font-size: 11px;
            background-color: #f5f5f5;
            padding: 20px;
        }}

        .report-container {{
            max-width: 1200px;
            margin: 0 auto;
            background-color: white;
            padding: 20px;
            box-shadow: 0 2px 5px rgba(0,0,0,0.1);
        }}

        .report-title {{
            text-align: center;
            font-size: 16px;
            font-weight: bold;
            margin-bottom: 20px;
            color: #333;
        }}

        .report-warning {{
            color: #c00;
            margin-bottom: 10px;
        }}

        table {{
            width: 100%;
            border-collapse: collapse;
            margin-top: 10px;
        }}

        th {{
            background-color: #d3d3d3;
            color: #333;
            font-weight: bold;
            padding: 10px 8px;
            text-align: center;
            border: 1px solid #999;
            font-size: 12px;
        }}

        td {{
            padding: 8px;
            border: 1px solid #ccc;
            vertical-align: middle;
        }}

        tr:nth-child(even) {{
            background-color: #fafafa;
        }}

        .col-date {{
            text-align: center;
            width: 110px;
        }}

        .col-text {{
            text-align: left;
        }}

        .col-center {{
            text-align: center;
        }}

        .col-money {{
            text-align: right;
            width: 90px;
        }}

        .summary-row {{
            background-color: #00ffff !important;
            font-weight: bold;
        }}

        .summary-row td {{
            border: 1px solid #999;
        }}

        @media print {{
            body {{
                background-color: white;
                padding: 0;
            }}

            .report-container {{
                box-shadow: none;
                padding: 10px;
            }}
        }}
    </style>
</head>
<body>
    <div class="report-container">
        <div class="report-title">{title}</div>
{warning}
        <table>
            <thead>
                <tr>
                    <th>Date</th>
                    <th>Customer</th>
                    <th>Branch</th>
                    <th>Operator</th>
                    <th>Status</th>
                    <th>Report No</th>
                    <th>Invoiced</th>
                    <th>Revenue</th>
                </tr>
            </thead>
            <tbody>
{rows}
            </tbody>
        </table>
    </div>
</body>
</html>"""

    ROW_TEMPLATE = """                <tr>
                    <td class="col-date">{date}</td>
                    <td class="col-text">{customer}</td>
                    <td class="col-text">{branch}</td>
                    <td class="col-text">{operator}</td>
                    <td class="col-center">{status}</td>
                    <td class="col-center">{report_number}</td>
                    <td class="col-center">{invoiced}</td>
                    <td class="col-money">{revenue}</td>
                </tr>"""

    SUMMARY_ROW_TEMPLATE = """                <tr class="summary-row">
                    <td class="col-date">{visit_count}</td>
                    <td class="col-text" colspan="3"></td>
                    <td class="col-center">{completed_count}</td>
                    <td class="col-center"></td>
                    <td class="col-center">{invoiced_count}</td>
                    <td class="col-money">{revenue}</td>
                </tr>"""

    def __init__(self, report: MonthlyVisitReport, company_name: str = COMPANY_NAME,
                 currency: str = DEFAULT_CURRENCY):
        self.report = report
        self.company_name = company_name
        self.symbol = currency_symbol(currency)

    def _format_money(self, value: float, show_zero: bool = False) -> str:
        """Format money value."""
        if value == 0 and not show_zero:
            return "-"
        if value < 0:
            return f"-{self.symbol}{abs(value):,.2f}"
        return f"{self.symbol}{value:,.2f}"

    def _format_date(self, d: datetime) -> str:
        """Format timestamp as DD.MM.YYYY HH:MM."""
        return d.strftime("%d.%m.%Y %H:%M")

    def generate_html(self) -> str:
        """Generate HTML report."""
        report = self.report
        title = (f"{self.company_name} - Visits "
                 f"{MONTH_NAMES[report.month - 1]} {report.year}")

        warning = ""
        if report.degraded:
            warning = ('        <div class="report-warning">'
                       'Some data could not be loaded; figures may be incomplete.</div>')

        # Build rows
        rows = []
        for visit in report.visits:
            rows.append(self.ROW_TEMPLATE.format(
                date=self._format_date(visit.visit_date),
                customer=escape(visit.customer_name),
                branch=escape(visit.branch_name or '-'),
                operator=escape(visit.operator_name or '-'),
                status=STATUS_LABELS.get(visit.status, escape(visit.status)),
                report_number=escape(visit.report_number or '-'),
                invoiced='✓' if visit.is_invoiced else '',
                revenue=self._format_money(report.revenue_for(visit.id)) if visit.is_completed else '-'
            ))

        # Summary row
        summary = report.summary
        rows.append(self.SUMMARY_ROW_TEMPLATE.format(
            visit_count=f"{summary.get('visit_count', 0)} Visits",
            completed_count=f"{summary.get('completed_count', 0)} Completed",
            invoiced_count=f"{summary.get('invoiced_count', 0)} Invoiced",
            revenue=self._format_money(summary.get('total_revenue', 0.0), show_zero=True)
        ))

        # Build final HTML
        return self.HTML_TEMPLATE.format(
            title=escape(title),
            warning=warning,
            rows="\n".join(rows)
        )

    def export_html(self, filepath: str) -> None:
        """Export report to HTML file."""
        html = self.generate_html()

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(html)
