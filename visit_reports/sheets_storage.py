"""Google Sheets storage backend - one worksheet per table"""
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import gspread
import streamlit as st
from google.oauth2.service_account import Credentials
from loguru import logger

from config import SHEET_ID

# Google Sheets configuration
SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets',
    'https://www.googleapis.com/auth/drive'
]


def _cell_value(value: Any) -> Any:
    """Convert a Python value into something a sheet cell accepts"""
    if isinstance(value, bool):
        return str(value).lower()
    if value is None:
        return ''
    return value


class GoogleSheetsClient:
    """Client for reading and writing table rows in a Google Sheet"""

    def __init__(self, sheet_id: str = SHEET_ID):
        self.sheet_id = sheet_id
        self.client = None
        self.spreadsheet = None
        self._connect()

    def _get_credentials(self) -> Optional[Credentials]:
        """Get Google credentials from various sources"""

        # Option 1: Streamlit secrets (for deployed app)
        try:
            if hasattr(st, 'secrets') and 'gcp_service_account' in st.secrets:
                creds_dict = dict(st.secrets['gcp_service_account'])
                return Credentials.from_service_account_info(creds_dict, scopes=SCOPES)
        except Exception as e:
            # No secrets.toml at all
            logger.debug(f"Streamlit secrets unavailable: {e}")

        # Option 2: Environment variable with JSON content
        creds_json = os.environ.get('GOOGLE_CREDENTIALS_JSON')
        if creds_json:
            try:
                creds_dict = json.loads(creds_json)
                return Credentials.from_service_account_info(creds_dict, scopes=SCOPES)
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"GOOGLE_CREDENTIALS_JSON is not usable: {e}")

        # Option 3: Local file in secrets folder
        secrets_path = Path(__file__).parent.parent / "secrets" / "google_credentials.json"
        if secrets_path.exists():
            return Credentials.from_service_account_file(str(secrets_path), scopes=SCOPES)

        # Option 4: File path from environment variable
        creds_file = os.environ.get('GOOGLE_CREDENTIALS_FILE')
        if creds_file and Path(creds_file).exists():
            return Credentials.from_service_account_file(creds_file, scopes=SCOPES)

        return None

    def _connect(self):
        """Connect to Google Sheets"""
        if not self.sheet_id:
            raise ValueError("VISIT_REPORTS_SHEET_ID is not set")

        creds = self._get_credentials()
        if not creds:
            raise ValueError(
                "Google credentials not found. Please provide credentials via:\n"
                "1. Streamlit secrets (gcp_service_account)\n"
                "2. GOOGLE_CREDENTIALS_JSON environment variable\n"
                "3. secrets/google_credentials.json file\n"
                "4. GOOGLE_CREDENTIALS_FILE environment variable"
            )

        self.client = gspread.authorize(creds)
        self.spreadsheet = self.client.open_by_key(self.sheet_id)

    def get_worksheet(self, name: str):
        """Get or create a worksheet by name"""
        try:
            return self.spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            return self.spreadsheet.add_worksheet(title=name, rows=1000, cols=20)

    def get_records(self, table: str) -> List[Dict[str, Any]]:
        """All rows of a table, keyed by header. Empty cells come back as None."""
        worksheet = self.get_worksheet(table)
        records = worksheet.get_all_records()
        return [
            {key: (None if value == '' else value) for key, value in record.items()}
            for record in records
        ]

    def append_records(self, table: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Append rows, creating the header row from the first record if needed"""
        worksheet = self.get_worksheet(table)

        headers = worksheet.row_values(1)
        if not headers:
            headers = []
            for record in records:
                for key in record:
                    if key not in headers:
                        headers.append(key)
            worksheet.update('A1', [headers])

        rows = [[_cell_value(record.get(header)) for header in headers] for record in records]
        if rows:
            worksheet.append_rows(rows, value_input_option='USER_ENTERED')

        return records

    def update_record(self, table: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update a row by its id (first column). None when the id is unknown."""
        worksheet = self.get_worksheet(table)

        cell = worksheet.find(str(record_id), in_column=1)
        if not cell:
            return None

        row_num = cell.row
        headers = worksheet.row_values(1)
        current_row = worksheet.row_values(row_num)

        # Build updated row
        updated_data = {}
        for i, header in enumerate(headers):
            updated_data[header] = current_row[i] if i < len(current_row) else ''

        updated_data.update(updates)

        new_row = [_cell_value(updated_data.get(header)) for header in headers]
        worksheet.update(f'A{row_num}', [new_row])

        return updated_data


# Singleton instance - cached as Streamlit resource (survives reruns)
@st.cache_resource
def get_sheets_client() -> GoogleSheetsClient:
    """Get or create the Google Sheets client singleton (cached across reruns)."""
    return GoogleSheetsClient()
