"""Excel revenue report generation for Visit Revenue Reports"""
from pathlib import Path
from typing import BinaryIO, List, Literal, Union

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import COMPANY_NAME, DEFAULT_CURRENCY, EXCEL_STYLES, MONTH_NAMES, currency_symbol
from .models import CustomerRevenueRow, OperatorRevenueRow

RevenueRow = Union[CustomerRevenueRow, OperatorRevenueRow]

CUSTOMER_COLUMNS = ['Customer', 'Branch', 'Pricing', 'Visits', 'Service', 'Material', 'Total']
OPERATOR_COLUMNS = ['Operator', 'Visits', 'Service', 'Material', 'Total']
MONEY_COLUMNS = ('Service', 'Material', 'Total')

PRICING_LABELS = {
    'per_visit': 'Per visit',
    'monthly': 'Monthly',
    'none': '-'
}


class RevenueReportGenerator:
    """
    Generates the monthly revenue report as an Excel workbook,
    by customer branch or by operator.
    """

    def __init__(self, year: int, month: int, view: Literal['customer', 'operator'] = 'customer',
                 company_name: str = COMPANY_NAME, currency: str = DEFAULT_CURRENCY):
        self.year = year
        self.month = month
        self.view = view
        self.company_name = company_name
        self.currency = currency
        self.rows: List[RevenueRow] = []

    @property
    def columns(self) -> List[str]:
        return OPERATOR_COLUMNS if self.view == 'operator' else CUSTOMER_COLUMNS

    @property
    def period_label(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    def add_rows(self, rows: List[RevenueRow]) -> None:
        """Add rollup rows."""
        self.rows.extend(rows)

    def clear(self) -> None:
        """Clear all rows."""
        self.rows = []

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert rows to a pandas DataFrame.
        """
        data = []
        for r in self.rows:
            if self.view == 'operator':
                record = {'Operator': r.operator_name}
            else:
                record = {
                    'Customer': r.customer_name,
                    'Branch': r.branch_name or '-',
                    'Pricing': PRICING_LABELS.get(r.pricing_type, r.pricing_type),
                }
            record.update({
                'Visits': r.visit_count,
                'Service': round(r.service_revenue, 2),
                'Material': round(r.material_revenue, 2),
                'Total': round(r.total, 2)
            })
            data.append(record)

        return pd.DataFrame(data, columns=self.columns)

    def get_summary_row(self) -> dict:
        """Get summary row data."""
        summary = {column: '' for column in self.columns}
        summary[self.columns[0]] = f"{len(self.rows)} Rows"
        summary['Visits'] = sum(r.visit_count for r in self.rows)
        summary['Service'] = round(sum(r.service_revenue for r in self.rows), 2)
        summary['Material'] = round(sum(r.material_revenue for r in self.rows), 2)
        summary['Total'] = round(sum(r.total for r in self.rows), 2)
        return summary

    def export_excel(self, target: Union[str, Path, BinaryIO]) -> None:
        """
        Export report to an Excel file.

        Args:
            target: File path, or a binary buffer (e.g. BytesIO for downloads)
        """
        wb = Workbook()
        ws = wb.active
        ws.title = "Revenue Report"

        # Styles
        header_fill = PatternFill(start_color=EXCEL_STYLES['header_bg_color'],
                                  end_color=EXCEL_STYLES['header_bg_color'],
                                  fill_type='solid')
        summary_fill = PatternFill(start_color=EXCEL_STYLES['summary_bg_color'],
                                   end_color=EXCEL_STYLES['summary_bg_color'],
                                   fill_type='solid')
        header_font = Font(name=EXCEL_STYLES['font_name'],
                           size=EXCEL_STYLES['font_size'],
                           bold=True)
        title_font = Font(name=EXCEL_STYLES['font_name'],
                          size=14,
                          bold=True)
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        money_format = f'"{currency_symbol(self.currency)}"#,##0.00'

        # Title section
        ws['A1'] = self.company_name
        ws['A1'].font = title_font

        ws['A2'] = f"Revenue by {'Operator' if self.view == 'operator' else 'Customer / Branch'}"
        ws['A2'].font = Font(size=12, bold=True)

        ws['A3'] = f"Period: {self.period_label}"

        # Data starts at row 5
        df = self.to_dataframe()
        start_row = 5
        money_columns = {idx for idx, name in enumerate(df.columns, 1) if name in MONEY_COLUMNS}

        # Headers
        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=start_row, column=col_idx, value=col_name)
            cell.fill = header_fill
            cell.font = header_font
            cell.border = border
            cell.alignment = Alignment(horizontal='center')

        # Data rows
        for row_offset, row in enumerate(df.itertuples(index=False), 1):
            for col_idx, value in enumerate(row, 1):
                cell = ws.cell(row=start_row + row_offset, column=col_idx, value=value)
                cell.border = border
                if col_idx in money_columns:
                    cell.alignment = Alignment(horizontal='right')
                    cell.number_format = money_format

        # Summary row
        summary_row = start_row + len(df) + 1
        summary_data = self.get_summary_row()
        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=summary_row, column=col_idx, value=summary_data[col_name])
            cell.fill = summary_fill
            cell.font = Font(bold=True)
            cell.border = border
            if col_idx in money_columns:
                cell.alignment = Alignment(horizontal='right')
                cell.number_format = money_format

        # Adjust column widths
        for idx, col_name in enumerate(df.columns, 1):
            width = 30 if col_name in ('Customer', 'Branch', 'Operator') else 14
            ws.column_dimensions[get_column_letter(idx)].width = width

        # Save
        if isinstance(target, (str, Path)):
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            target = str(target)
        wb.save(target)
