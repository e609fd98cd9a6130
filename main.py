"""Main entry point for Visit Revenue Reports"""
import argparse
import sys
from datetime import date, datetime

from visit_reports.errors import FetchError, NotFoundError
from visit_reports.html_exporter import HTMLReportExporter
from visit_reports.report_generator import RevenueReportGenerator
from visit_reports.report_service import RevenueReportService
from visit_reports.visit_storage import VisitStorage
from config import COMPANY_NAME, DATA_DIR, DEFAULT_CURRENCY, currency_symbol


def main(argv=None):
    today = date.today()
    parser = argparse.ArgumentParser(description='Generate monthly visit revenue reports')
    parser.add_argument('company_id', help='Company identifier')
    parser.add_argument('--year', '-y', type=int, default=today.year, help='Report year. Default: current year')
    parser.add_argument('--month', '-m', type=int, default=today.month, help='Report month (1-12). Default: current month')
    parser.add_argument('--view', '-v', choices=['customer', 'operator'], default='customer',
                        help='Group revenue by customer branch or by operator')
    parser.add_argument('--output', '-o', default=None, help='Excel output file path')
    parser.add_argument('--html', default=None, help='Also write the visit list as HTML to this path')
    parser.add_argument('--data-dir', default=DATA_DIR, help=f'Local storage directory. Default: {DATA_DIR}')

    args = parser.parse_args(argv)

    if not 1 <= args.month <= 12:
        parser.error('month must be between 1 and 12')

    storage = VisitStorage(data_dir=args.data_dir)
    service = RevenueReportService(storage)

    # Company display name and currency
    company_name, currency = COMPANY_NAME, DEFAULT_CURRENCY
    try:
        company = storage.get_company(args.company_id)
        company_name = company.get('name') or COMPANY_NAME
        currency = company.get('currency') or DEFAULT_CURRENCY
    except (NotFoundError, FetchError) as e:
        print(f"Warning: {e}", file=sys.stderr)

    report = service.load_month(args.company_id, args.year, args.month)
    for issue in report.issues:
        print(f"Warning: {issue}", file=sys.stderr)

    print(f"Loaded {len(report.visits)} visits")

    # Generate Excel report
    generator = RevenueReportGenerator(args.year, args.month, view=args.view,
                                       company_name=company_name, currency=currency)
    generator.add_rows(service.revenue_rows(report, args.view))

    if args.output:
        output_path = args.output
    else:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        output_path = f"output/reports/revenue_{args.year}_{args.month:02d}_{args.view}_{timestamp}.xlsx"

    generator.export_excel(output_path)
    print(f"Report saved to: {output_path}")

    if args.html:
        HTMLReportExporter(report, company_name=company_name, currency=currency).export_html(args.html)
        print(f"HTML report saved to: {args.html}")

    # Print summary
    symbol = currency_symbol(currency)
    summary = report.summary
    print(f"\n=== Summary {generator.period_label} ===")
    print(f"Visits: {summary['visit_count']} "
          f"({summary['completed_count']} completed, {summary['planned_count']} planned)")
    print(f"Invoiced: {summary['invoiced_count']}")
    print(f"Service Revenue: {symbol}{summary['total_service']:,.2f}")
    print(f"Material Revenue: {symbol}{summary['total_material']:,.2f}")
    print(f"Total Revenue: {symbol}{summary['total_revenue']:,.2f}")

    return 1 if report.degraded else 0


if __name__ == '__main__':
    sys.exit(main())
