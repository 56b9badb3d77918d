"""CSV/Excel parsers for bank statements and invoice ledgers."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from reconciliation.engine.models import (
    BankTransaction,
    Client,
    Invoice,
    InvoiceStatus,
)

logger = logging.getLogger(__name__)

# Common date formats to try
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
]

CURRENCY_MARKERS = ("MAD", "DHS", "DH", "€", "$")


def read_table(file_path: Path, **kwargs) -> pd.DataFrame:
    """Read file based on extension."""
    suffix = file_path.suffix.lower()

    if suffix == ".csv":
        return pd.read_csv(file_path, **kwargs)
    elif suffix in (".xlsx", ".xls"):
        return pd.read_excel(file_path, **kwargs)
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Use .csv, .xlsx, or .xls")


def parse_date(value) -> datetime:
    """Parse date from various formats."""
    if value is None or pd.isna(value):
        raise ValueError("Missing date")
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value

    str_value = str(value).strip()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(str_value, fmt)
        except ValueError:
            continue

    raise ValueError(f"Could not parse date: {value!r}")


def parse_amount(value) -> Decimal:
    """Parse amount handling French/Moroccan and English number formats."""
    if value is None or pd.isna(value):
        raise ValueError("Missing amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    str_value = str(value).strip().upper()
    for marker in CURRENCY_MARKERS:
        str_value = str_value.replace(marker, "")
    # Thousands separators written as spaces: 12 500,00
    str_value = str_value.replace("\u00a0", "").replace("\u202f", "").replace(" ", "")

    # 1.234,56
    if "," in str_value and "." in str_value:
        if str_value.rindex(",") > str_value.rindex("."):
            str_value = str_value.replace(".", "").replace(",", ".")
        else:
            str_value = str_value.replace(",", "")

    # 1234,56
    elif "," in str_value:
        str_value = str_value.replace(",", ".")

    return Decimal(str_value)


def _check_file(file_path) -> Path:
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    return file_path


def _optional_str(row: pd.Series, col: str) -> Optional[str]:
    if col not in row.index or pd.isna(row[col]):
        return None
    value = str(row[col]).strip()
    return value or None


class _TableParser:
    """Shared column handling for CSV/Excel sources."""

    DEFAULT_MAPPING: Dict[str, str] = {}
    REQUIRED: Tuple[str, ...] = ()

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None):
        """
        Initialize parser with optional custom column mapping.

        Args:
            column_mapping: Dict mapping our field names to column names.
                          Example: {"date": "Date opération", "amount": "Montant"}
        """
        self.column_mapping = dict(self.DEFAULT_MAPPING)
        self.column_mapping.update(column_mapping or {})

    def col(self, field: str) -> str:
        return self.column_mapping.get(field, field)

    def _validate_columns(self, df: pd.DataFrame) -> None:
        """
        Validate that required columns exist in the dataframe.

        Raises:
            ValueError: If required columns are missing.
        """
        missing = [
            f"{field} (expected column: '{self.col(field)}')"
            for field in self.REQUIRED
            if self.col(field) not in df.columns
        ]

        if missing:
            available = ", ".join(str(c) for c in df.columns.tolist())
            raise ValueError(
                f"Missing required columns: {', '.join(missing)}. "
                f"Available columns: {available}. "
                f"Use column_mapping parameter to map your columns."
            )

    def _load(self, file_path, **kwargs) -> pd.DataFrame:
        df = read_table(_check_file(file_path), **kwargs)
        self._validate_columns(df)
        return df


class CSVParser(_TableParser):
    """Parse CSV/Excel bank statement exports into BankTransaction objects."""

    DEFAULT_MAPPING = {
        "id": "id",
        "date": "date",
        "amount": "amount",
        "description": "description",
        "reference": "reference",
        "balance": "balance",
    }
    REQUIRED = ("date", "amount")

    def parse(self, file_path: str | Path, **kwargs) -> List[BankTransaction]:
        """
        Parse a CSV or Excel file into BankTransaction objects.

        Args:
            file_path: Path to the CSV/Excel file.
            **kwargs: Additional arguments passed to pandas read function.

        Returns:
            List of BankTransaction objects, all unmatched.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the format is unsupported or required columns are missing.
        """
        df = self._load(file_path, dtype=str, **kwargs)
        transactions: List[BankTransaction] = []

        for idx, row in df.iterrows():
            try:
                transactions.append(self._convert_row(row, idx))
            except (ValueError, InvalidOperation) as e:
                # Log warning but continue processing
                logger.warning("Skipping row %s: %s", idx, e)

        logger.info("Parsed %d transactions from %s", len(transactions), file_path)
        return transactions

    def _convert_row(self, row: pd.Series, idx: int) -> BankTransaction:
        """Convert a single row to a BankTransaction object."""
        balance = _optional_str(row, self.col("balance"))

        return BankTransaction(
            id=_optional_str(row, self.col("id")) or f"BT-{idx + 1:06d}",
            date=parse_date(row[self.col("date")]),
            amount=parse_amount(row[self.col("amount")]),
            description=_optional_str(row, self.col("description")) or "",
            reference=_optional_str(row, self.col("reference")),
            balance=parse_amount(balance) if balance else None,
            raw_data=row.to_dict(),
        )


class InvoiceLoader(_TableParser):
    """Load open invoices and their clients from a CSV/Excel ledger."""

    DEFAULT_MAPPING = {
        "id": "id",
        "invoice_number": "invoice_number",
        "client_id": "client_id",
        "client_name": "client_name",
        "total": "total",
        "paid_amount": "paid_amount",
        "status": "status",
        "date": "date",
        "due_date": "due_date",
        "company_id": "company_id",
    }
    REQUIRED = ("id", "invoice_number", "client_id", "total", "date")

    def parse(self, file_path: str | Path, **kwargs) -> Tuple[List[Invoice], List[Client]]:
        """
        Parse an invoice ledger.

        Returns:
            Tuple of (invoices in file order, distinct clients).

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the format is unsupported or required columns are missing.
        """
        df = self._load(file_path, dtype=str, **kwargs)
        invoices: List[Invoice] = []
        clients: Dict[str, Client] = {}

        for idx, row in df.iterrows():
            try:
                invoice = self._convert_row(row)
            except (ValueError, InvalidOperation) as e:
                logger.warning("Skipping invoice row %s: %s", idx, e)
                continue

            invoices.append(invoice)
            name = _optional_str(row, self.col("client_name"))
            if name and invoice.client_id not in clients:
                clients[invoice.client_id] = Client(id=invoice.client_id, name=name)

        logger.info("Loaded %d invoices for %d clients from %s",
                    len(invoices), len(clients), file_path)
        return invoices, list(clients.values())

    def _convert_row(self, row: pd.Series) -> Invoice:
        paid = _optional_str(row, self.col("paid_amount"))
        status = _optional_str(row, self.col("status"))
        due = _optional_str(row, self.col("due_date"))

        return Invoice(
            id=str(row[self.col("id")]).strip(),
            invoice_number=str(row[self.col("invoice_number")]).strip(),
            client_id=str(row[self.col("client_id")]).strip(),
            total=parse_amount(row[self.col("total")]),
            date=parse_date(row[self.col("date")]),
            paid_amount=parse_amount(paid) if paid else Decimal("0"),
            status=InvoiceStatus(status.lower()) if status else InvoiceStatus.SENT,
            due_date=parse_date(due) if due else None,
            company_id=_optional_str(row, self.col("company_id")) or "",
        )
