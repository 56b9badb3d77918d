"""QIF (Quicken Interchange Format) bank statement parser."""

import logging
from datetime import datetime
from decimal import InvalidOperation
from pathlib import Path
from typing import Dict, List

from reconciliation.engine.models import BankTransaction
from reconciliation.parsers.csv_parser import parse_amount

logger = logging.getLogger(__name__)

QIF_DATE_FORMATS = [
    "%d/%m/%Y",
    "%d/%m/%y",
    "%m/%d/%Y",
    "%m/%d'%y",
    "%Y-%m-%d",
]


class QIFParser:
    """
    Parse ``!Type:Bank`` QIF exports.

    Each record is a list of lines keyed by their first character and ends
    with ``^``:

        D  date
        T  amount (U is accepted as a fallback)
        P  payee
        M  memo
        N  check number or reference
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def parse(self, file_path: str | Path) -> List[BankTransaction]:
        """
        Parse a QIF file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file has the wrong suffix or holds no records.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"QIF file not found: {file_path}")

        if file_path.suffix.lower() != ".qif":
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        text = file_path.read_text(encoding=self.encoding)
        transactions: List[BankTransaction] = []

        for number, record in enumerate(self._records(text), start=1):
            try:
                transactions.append(self._convert_record(record, number))
            except (ValueError, InvalidOperation) as e:
                logger.warning("Skipping QIF record %d: %s", number, e)

        if not transactions:
            raise ValueError(f"No transactions found in QIF file: {file_path}")

        logger.info("Parsed %d transactions from %s", len(transactions), file_path)
        return transactions

    def _records(self, text: str):
        record: Dict[str, str] = {}
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("!"):
                continue
            if line == "^":
                if record:
                    yield record
                record = {}
                continue
            code, value = line[0], line[1:].strip()
            # Split lines (S/E/$) repeat; only the first value of a code is kept
            record.setdefault(code, value)
        if record:
            yield record

    def _convert_record(self, record: Dict[str, str], number: int) -> BankTransaction:
        if "D" not in record:
            raise ValueError("record has no date")
        amount = record.get("T") or record.get("U")
        if not amount:
            raise ValueError("record has no amount")

        payee = record.get("P", "")
        memo = record.get("M", "")

        return BankTransaction(
            id=f"QIF-{number:06d}",
            date=self._parse_date(record["D"]),
            amount=parse_amount(amount),
            description=" - ".join(part for part in (payee, memo) if part),
            reference=record.get("N") or None,
            raw_data=dict(record),
        )

    def _parse_date(self, value: str) -> datetime:
        # Quicken writes 1/ 5'24 with padding spaces
        value = value.replace(" ", "")
        for fmt in QIF_DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        raise ValueError(f"Could not parse date: {value!r}")
