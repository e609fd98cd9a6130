"""Configuration settings for Visit Revenue Reports"""
import os

# Company Information
COMPANY_NAME = "Pest Control Services"

# Currency
DEFAULT_CURRENCY = 'TRY'
CURRENCY_SYMBOLS = {
    'TRY': '₺',
    'USD': '$',
    'EUR': '€',
    'GBP': '£'
}

# Visit statuses
VISIT_STATUSES = ['pending', 'assigned', 'in_progress', 'completed', 'cancelled']
PLANNED_STATUSES = ['pending', 'assigned', 'in_progress']
COMPLETED_STATUS = 'completed'

# Pricing types
PRICING_TYPES = ['per_visit', 'monthly']

# Material sale line defaults (product metadata missing)
DEFAULT_PRODUCT_NAME = "Unknown product"
DEFAULT_UNIT = "pcs"

# Visits list pagination
ITEMS_PER_PAGE = 10

# Storage
DATA_DIR = os.environ.get('VISIT_REPORTS_DATA_DIR', 'data')
SHEET_ID = os.environ.get('VISIT_REPORTS_SHEET_ID', '')

# Company local time zone; visit months are bucketed in this zone
TIMEZONE = os.environ.get('VISIT_REPORTS_TIMEZONE', 'Europe/Istanbul')

# Company shown by the Streamlit app on start
DEFAULT_COMPANY_ID = os.environ.get('VISIT_REPORTS_COMPANY_ID', '')

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]

# Excel styling
EXCEL_STYLES = {
    'header_bg_color': 'D3D3D3',  # Light gray
    'summary_bg_color': '00FFFF',  # Cyan
    'font_name': 'Arial',
    'font_size': 10
}


def currency_symbol(code: str) -> str:
    """Symbol for a currency code, falling back to the default currency."""
    return CURRENCY_SYMBOLS.get((code or '').upper(), CURRENCY_SYMBOLS[DEFAULT_CURRENCY])
