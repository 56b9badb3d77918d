"""Pick a statement parser from the file extension."""

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from reconciliation.engine.models import BankTransaction
from reconciliation.parsers.csv_parser import CSVParser
from reconciliation.parsers.mt940_parser import MT940_SUFFIXES, MT940Parser
from reconciliation.parsers.ofx_parser import OFXParser
from reconciliation.parsers.qif_parser import QIFParser

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls", ".ofx", ".qfx", ".qif") + MT940_SUFFIXES


def load_statement(
    file_path: str | Path,
    column_mapping: Optional[Dict[str, str]] = None,
) -> List[BankTransaction]:
    """
    Parse one bank statement in any supported format.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the format is unsupported or the file is invalid.
    """
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()

    if suffix in (".ofx", ".qfx"):
        return OFXParser().parse(file_path)
    if suffix == ".qif":
        return QIFParser().parse(file_path)
    if suffix in MT940_SUFFIXES:
        return MT940Parser().parse(file_path)
    if suffix in (".csv", ".xlsx", ".xls"):
        return CSVParser(column_mapping=column_mapping).parse(file_path)

    raise ValueError(
        f"Unsupported file format: {suffix}. Use one of {', '.join(SUPPORTED_SUFFIXES)}"
    )


def load_statements(
    file_paths: Iterable[str | Path],
    column_mapping: Optional[Dict[str, str]] = None,
) -> List[BankTransaction]:
    transactions: List[BankTransaction] = []
    for path in file_paths:
        transactions.extend(load_statement(path, column_mapping))
    return transactions
