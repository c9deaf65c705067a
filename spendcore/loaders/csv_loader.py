"""Loader for normalized transaction rows (CSV or in-memory records)"""

import pandas as pd
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
from spendcore.constants import DEFAULT_CURRENCY
from spendcore.models import Transaction
from spendcore.utils.errors import IngestionError
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import transactions_ingested

logger = get_logger(__name__)

REQUIRED_COLUMNS = ['date', 'description', 'amount']

# Header spellings seen in normalized exports
COLUMN_ALIASES = {
    'txn_date': 'date',
    'transaction_date': 'date',
    'txndate': 'date',
    'details': 'description',
    'narrative': 'description',
    'ccy': 'currency',
    'txn_id': 'id',
    'transaction_id': 'id',
}


def parse_amount(value: Any) -> Decimal:
    """Parse a signed amount exactly; thousands separators are ignored"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Go through repr so 0.1 stays 0.1 rather than its binary expansion
        value = repr(value)
    text = str(value).strip().replace(",", "").replace(" ", "")
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise IngestionError(f"Invalid amount: {value!r}", value=str(value))
    if not amount.is_finite():
        raise IngestionError(f"Invalid amount: {value!r}", value=str(value))
    return amount


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip().lower() for col in df.columns}
    df = df.rename(columns=renamed)
    return df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns and v not in df.columns})


def rows_to_transactions(upload_id: str, rows: Union[pd.DataFrame, Iterable[Dict[str, Any]]]) -> List[Transaction]:
    """
    Build Transactions from normalized rows.

    Each row needs date, description and a signed amount; currency and id
    are optional. Rows without an id get a stable one derived from the
    upload and row position.

    Raises:
        IngestionError: Missing columns or an unparseable row
    """
    df = rows if isinstance(rows, pd.DataFrame) else pd.DataFrame(list(rows))

    if df.empty:
        return []

    df = _normalize_columns(df)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise IngestionError(f"Missing required columns: {missing}", missing=missing)

    transactions = []
    for position, record in enumerate(df.to_dict('records')):
        row_number = position + 1
        try:
            txn_date = pd.to_datetime(record['date']).date()
            description = "" if pd.isna(record['description']) else str(record['description']).strip()
            amount = parse_amount(record['amount'])
        except (ValueError, TypeError) as e:
            raise IngestionError(f"Row {row_number}: {e}", row=row_number)
        except IngestionError as e:
            raise IngestionError(f"Row {row_number}: {e.message}", row=row_number)

        currency = record.get('currency')
        if currency is None or pd.isna(currency) or not str(currency).strip():
            currency = DEFAULT_CURRENCY

        txn_id = record.get('id')
        if txn_id is None or pd.isna(txn_id) or not str(txn_id).strip():
            txn_id = f"{upload_id}:{row_number:05d}"

        transactions.append(Transaction(
            id=str(txn_id),
            upload_id=upload_id,
            txn_date=txn_date,
            description=description,
            amount=amount,
            currency=str(currency).strip().upper(),
        ))

    transactions_ingested.inc(len(transactions))
    return transactions


class TransactionCsvLoader:
    """
    Reads normalized statement rows from CSV files.

    Extraction from PDF/Excel happens upstream; this loader only consumes
    the resulting date/description/amount/currency rows.
    """

    def __init__(self, data_dir: Optional[str] = None):
        """
        Args:
            data_dir: Directory relative paths are resolved against (defaults to cwd)
        """
        self.data_dir = Path(data_dir) if data_dir else Path.cwd()
        if not self.data_dir.exists():
            raise IngestionError(f"Data directory not found: {self.data_dir}")

    def _load_csv(self, filename: Union[str, Path]) -> pd.DataFrame:
        """Load CSV with every column as text so amounts stay exact"""
        filepath = Path(filename)
        if not filepath.is_absolute():
            filepath = self.data_dir / filepath

        if not filepath.exists():
            raise IngestionError(f"File not found: {filepath}", path=str(filepath))

        try:
            df = pd.read_csv(filepath, dtype=str, keep_default_na=False, na_values=[""])
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise IngestionError(f"Could not parse {filepath.name}: {e}", path=str(filepath))

        logger.info(f"Loaded {len(df)} rows from {filepath.name}")
        return df

    def load(self, filename: Union[str, Path], upload_id: str, limit: Optional[int] = None) -> List[Transaction]:
        """
        Load one CSV as the transactions of an upload

        Args:
            filename: CSV path (absolute or relative to data_dir)
            upload_id: Upload the transactions belong to
            limit: Only read the first N rows

        Returns:
            Transactions in file order
        """
        df = self._load_csv(filename)
        if limit:
            df = df.head(limit)

        transactions = rows_to_transactions(upload_id, df)
        logger.info(f"Built {len(transactions)} transactions", upload_id=upload_id)
        return transactions
