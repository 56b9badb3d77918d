"""SWIFT MT940 bank statement parser."""

import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional

from reconciliation.engine.models import BankTransaction

logger = logging.getLogger(__name__)

MT940_SUFFIXES = (".mt940", ".sta")

TAG_RE = re.compile(r"^:(?P<tag>\d{2}[A-Z]?):(?P<value>.*)$")

# :61: value date, optional entry date, debit/credit mark, optional funds
# code, amount with comma decimals, transaction type, references
STATEMENT_LINE_RE = re.compile(
    r"^(?P<date>\d{6})(?P<entry_date>\d{4})?"
    r"(?P<mark>R?[DC])(?P<funds_code>[A-Z])?"
    r"(?P<amount>\d+,\d*)"
    r"(?P<type>[NFS][A-Z0-9]{3})"
    r"(?P<customer_ref>[^/]*?)(?://(?P<bank_ref>.*))?$"
)


class MT940Parser:
    """
    Parse SWIFT MT940 customer statements.

    Each ``:61:`` statement line becomes one transaction. The ``:86:`` line
    that follows it becomes the description. Account (``:25:``) and statement
    number (``:20:``) are kept in ``raw_data``. A customer reference of
    ``NONREF`` counts as no reference, in which case the bank reference is
    used.
    """

    def __init__(self, encoding: str = "latin-1"):
        self.encoding = encoding

    def parse(self, file_path: str | Path) -> List[BankTransaction]:
        """
        Parse an MT940 file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file has the wrong suffix or holds no statement lines.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"MT940 file not found: {file_path}")

        if file_path.suffix.lower() not in MT940_SUFFIXES:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        text = file_path.read_text(encoding=self.encoding)
        transactions: List[BankTransaction] = []
        account = ""
        statement = ""
        pending: Optional[str] = None

        for tag, lines in self._fields(text):
            if tag == "86" and pending is not None:
                self._append(transactions, pending, " ".join(lines), account, statement)
                pending = None
                continue
            # any other field closes a statement line that had no details
            if pending is not None:
                self._append(transactions, pending, "", account, statement)
                pending = None

            if tag == "61":
                pending = lines[0]
            elif tag == "25":
                account = lines[0]
            elif tag == "20":
                statement = lines[0]

        if pending is not None:
            self._append(transactions, pending, "", account, statement)

        if not transactions:
            raise ValueError(f"No transactions found in MT940 file: {file_path}")

        logger.info("Parsed %d transactions from %s", len(transactions), file_path)
        return transactions

    def _fields(self, text: str):
        """Yield (tag, lines) pairs; continuation lines stay with their tag."""
        tag: Optional[str] = None
        lines: List[str] = []
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line == "-" or line.startswith("{") or line.startswith("-}"):
                continue
            match = TAG_RE.match(line)
            if match:
                if tag is not None:
                    yield tag, lines
                tag, lines = match.group("tag"), [match.group("value").strip()]
            elif tag is not None:
                lines.append(line)
        if tag is not None:
            yield tag, lines

    def _append(
        self,
        transactions: List[BankTransaction],
        line: str,
        details: str,
        account: str,
        statement: str,
    ) -> None:
        number = len(transactions) + 1
        try:
            transactions.append(self._convert_line(line, details, number, account, statement))
        except (ValueError, InvalidOperation) as e:
            logger.warning("Skipping MT940 statement line %r: %s", line, e)

    def _convert_line(
        self,
        line: str,
        details: str,
        number: int,
        account: str,
        statement: str,
    ) -> BankTransaction:
        match = STATEMENT_LINE_RE.match(line)
        if match is None:
            raise ValueError("unrecognised :61: line")

        amount = Decimal(match.group("amount").replace(",", "."))
        # D is a debit, RC reverses a credit
        if match.group("mark") in ("D", "RC"):
            amount = -amount

        customer_ref = match.group("customer_ref").strip()
        bank_ref = (match.group("bank_ref") or "").strip()
        if customer_ref.upper() == "NONREF":
            customer_ref = ""

        return BankTransaction(
            id=f"MT940-{number:06d}",
            date=datetime.strptime(match.group("date"), "%y%m%d"),
            amount=amount,
            description=details,
            reference=customer_ref or bank_ref or None,
            raw_data=self._raw(match, account, statement),
        )

    def _raw(self, match: re.Match, account: str, statement: str) -> Dict[str, str]:
        return {
            "account_id": account,
            "statement": statement,
            "type": match.group("type"),
            "bank_reference": match.group("bank_ref") or "",
        }
