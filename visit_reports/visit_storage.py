"""Visit data storage - Google Sheets backend with local JSON fallback"""
import json
import os
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from config import DATA_DIR
from .errors import FetchError, InvoiceConflictError, NotFoundError
from .models import parse_bool, parse_timestamp

TABLES = (
    'companies',
    'operators',
    'customers',
    'branches',
    'visits',
    'service_requests',
    'customer_pricing',
    'branch_pricing',
    'paid_material_sales',
    'paid_material_sale_items',
    'paid_products',
)


def _key(value: Any) -> Optional[str]:
    """Normalize an id cell; sheets may hand back numeric-looking ids as ints"""
    if value is None or value == '':
        return None
    return str(value)


def _key_set(ids: Iterable[Any]) -> set:
    return {key for key in (_key(i) for i in ids) if key is not None}


def _in_range(value: Any, start: datetime, end: datetime) -> bool:
    timestamp = parse_timestamp(value)
    return timestamp is not None and start <= timestamp <= end


def _use_google_sheets() -> bool:
    """Determine if we should use Google Sheets or local storage"""
    # Check for environment variable to force local storage
    if os.environ.get('USE_LOCAL_STORAGE', '').lower() == 'true':
        return False

    # Check Streamlit secrets
    try:
        import streamlit as st
        if hasattr(st, 'secrets') and 'gcp_service_account' in st.secrets:
            return True
    except Exception as e:
        logger.debug(f"Streamlit secrets unavailable: {e}")

    # Check environment variable
    if os.environ.get('GOOGLE_CREDENTIALS_JSON'):
        return True

    # Check local secrets file
    secrets_path = Path(__file__).parent.parent / "secrets" / "google_credentials.json"
    if secrets_path.exists():
        return True

    return False


class VisitStorage:
    """Read access to visits, pricing and material sales, plus the invoiced flag

    Automatically uses Google Sheets when credentials are available,
    falls back to local JSON files (one per table) for development.
    Backend failures surface as FetchError.
    """

    def __init__(self, data_dir: str = DATA_DIR):
        self.data_dir = Path(data_dir)

        self._use_sheets = _use_google_sheets()
        self._sheets_client = None

        if self._use_sheets:
            try:
                from .sheets_storage import get_sheets_client
                self._sheets_client = get_sheets_client()
                logger.info("Using Google Sheets storage")
            except Exception as e:
                logger.warning(f"Failed to connect to Google Sheets: {e}")
                logger.info("Falling back to local storage")
                self._use_sheets = False

        if not self._use_sheets:
            self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def backend(self) -> str:
        return 'sheets' if self._use_sheets else 'local'

    # ============ BACKEND ============

    def _table_file(self, table: str) -> Path:
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        return self.data_dir / f"{table}.json"

    def _read_table(self, table: str) -> List[Dict[str, Any]]:
        """All rows of a table"""
        path = self._table_file(table)
        try:
            if self._use_sheets:
                return self._sheets_client.get_records(table)
            return self._read_table_local(path)
        except Exception as e:
            raise FetchError(f"Failed to read {table}: {e}") from e

    def _read_table_local(self, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return []

    def _save_table_local(self, table: str, rows: List[Dict[str, Any]]):
        with open(self._table_file(table), 'w', encoding='utf-8') as f:
            json.dump(rows, f, indent=2, ensure_ascii=False, default=str)

    def _update_record(self, table: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            if self._use_sheets:
                return self._sheets_client.update_record(table, record_id, updates)

            rows = self._read_table_local(self._table_file(table))
            for row in rows:
                if _key(row.get('id')) == record_id:
                    row.update(updates)
                    self._save_table_local(table, rows)
                    return row
            return None
        except Exception as e:
            raise FetchError(f"Failed to update {table} row {record_id}: {e}") from e

    def insert_rows(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Append rows to a table, generating ids where missing"""
        self._table_file(table)
        new_rows = []
        for row in rows:
            row = dict(row)
            if not row.get('id'):
                row['id'] = str(uuid.uuid4())
            new_rows.append(row)

        try:
            if self._use_sheets:
                self._sheets_client.append_records(table, new_rows)
            else:
                existing = self._read_table_local(self._table_file(table))
                existing.extend(new_rows)
                self._save_table_local(table, existing)
        except Exception as e:
            raise FetchError(f"Failed to insert into {table}: {e}") from e

        return new_rows

    # ============ COMPANY ============

    def get_company(self, company_id: str) -> Dict[str, Any]:
        """Get a company record; raises NotFoundError when absent"""
        for company in self._read_table('companies'):
            if _key(company.get('id')) == str(company_id):
                return company
        raise NotFoundError('Company', company_id)

    def list_operators(self, company_id: str) -> List[Dict[str, Any]]:
        """Operators employed by a company"""
        return [
            op for op in self._read_table('operators')
            if _key(op.get('company_id')) == str(company_id)
        ]

    def _attach_names(self, rows: List[Dict[str, Any]], operators: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Copy rows adding customer_name, branch_name and operator_name"""
        customers = {_key(c.get('id')): c for c in self._read_table('customers')}
        branches = {_key(b.get('id')): b for b in self._read_table('branches')}

        enriched = []
        for row in rows:
            row = dict(row)
            customer = customers.get(_key(row.get('customer_id'))) or {}
            branch = branches.get(_key(row.get('branch_id'))) or {}
            operator = operators.get(_key(row.get('operator_id'))) or {}
            row['customer_name'] = customer.get('company_name') or ''
            row['branch_name'] = branch.get('branch_name') or ''
            row['operator_name'] = operator.get('full_name') or ''
            enriched.append(row)
        return enriched

    # ============ VISITS ============

    def fetch_completed_visits(self, company_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Rows of the visits table done by the company's operators within [start, end]"""
        operators = {_key(op.get('id')): op for op in self.list_operators(company_id)}
        rows = [
            row for row in self._read_table('visits')
            if _key(row.get('operator_id')) in operators
            and _in_range(row.get('visit_date'), start, end)
        ]
        return self._attach_names(rows, operators)

    def fetch_planned_visits(self, company_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Service requests of the company scheduled within [start, end]"""
        operators = {_key(op.get('id')): op for op in self.list_operators(company_id)}
        rows = [
            row for row in self._read_table('service_requests')
            if _key(row.get('company_id')) == str(company_id)
            and _in_range(row.get('scheduled_date'), start, end)
        ]
        return self._attach_names(rows, operators)

    def set_invoiced(self, visit_id: str, invoiced: bool, expected_current: Optional[bool] = None) -> Dict[str, Any]:
        """
        Set the invoiced flag of a completed visit.

        When expected_current is given the write only happens if the stored
        flag still has that value; otherwise InvoiceConflictError is raised.
        """
        visit_id = str(visit_id)
        for row in self._read_table('visits'):
            if _key(row.get('id')) == visit_id:
                current = parse_bool(row.get('is_invoiced'))
                break
        else:
            raise NotFoundError('Visit', visit_id)

        if expected_current is not None and current != expected_current:
            raise InvoiceConflictError(visit_id, expected_current, current)

        updated = self._update_record('visits', visit_id, {'is_invoiced': bool(invoiced)})
        if updated is None:
            # Row vanished between the read and the write
            raise NotFoundError('Visit', visit_id)
        return updated

    # ============ PRICING ============

    def fetch_customer_pricing(self, customer_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Pricing rows for the given customers"""
        ids = _key_set(customer_ids)
        if not ids:
            return []
        return [row for row in self._read_table('customer_pricing') if _key(row.get('customer_id')) in ids]

    def fetch_branch_pricing(self, branch_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Branch-level pricing rows for the given branches"""
        ids = _key_set(branch_ids)
        if not ids:
            return []
        return [row for row in self._read_table('branch_pricing') if _key(row.get('branch_id')) in ids]

    # ============ MATERIAL SALES ============

    def _attach_items(self, sales: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Copy sales adding their line items, each joined to its product"""
        if not sales:
            return []

        products = {_key(p.get('id')): p for p in self._read_table('paid_products')}
        items_by_sale: Dict[str, List[Dict[str, Any]]] = {}
        for item in self._read_table('paid_material_sale_items'):
            item = dict(item)
            item['product'] = products.get(_key(item.get('product_id')))
            items_by_sale.setdefault(_key(item.get('sale_id')), []).append(item)

        result = []
        for sale in sales:
            sale = dict(sale)
            sale['items'] = items_by_sale.get(_key(sale.get('id')), [])
            result.append(sale)
        return result

    def fetch_material_sales(self, visit_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Material sales recorded against the given visits, with items and products"""
        ids = _key_set(visit_ids)
        if not ids:
            return []
        sales = [s for s in self._read_table('paid_material_sales') if _key(s.get('visit_id')) in ids]
        return self._attach_items(sales)

    def fetch_customer_material_sales(
        self,
        customer_id: str,
        branch_id: Optional[str],
        start_date: date,
        end_date: date,
    ) -> List[Dict[str, Any]]:
        """Material sales of a customer (optionally one branch) with sale_date in range"""
        sales = []
        for sale in self._read_table('paid_material_sales'):
            if _key(sale.get('customer_id')) != str(customer_id):
                continue
            if branch_id and _key(sale.get('branch_id')) != str(branch_id):
                continue
            sale_date = parse_timestamp(sale.get('sale_date'))
            if sale_date is None or not start_date <= sale_date.date() <= end_date:
                continue
            sales.append(sale)
        return self._attach_items(sales)
