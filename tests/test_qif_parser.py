"""Tests for the QIF parser and format dispatch."""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from reconciliation.parsers.loader import load_statement, load_statements
from reconciliation.parsers.qif_parser import QIFParser

FIXTURES_DIR = Path(__file__).parent / "fixtures"

QIF_CONTENT = """!Type:Bank
D10/03/2024
T12,000.00
PATLAS DISTRIBUTION
MVirement facture
NFAC-2024-0001
^
D15/03/2024
T-45.00
PFrais tenue de compte
^
D20/03/2024
U6000.00
PCASABLANCA CONSEIL
^
"""


@pytest.fixture
def qif_file(tmp_path) -> Path:
    path = tmp_path / "releve.qif"
    path.write_text(QIF_CONTENT)
    return path


class TestQIFParser:

    def test_parse_records(self, qif_file):
        transactions = QIFParser().parse(qif_file)

        assert len(transactions) == 3
        assert [t.id for t in transactions] == ["QIF-000001", "QIF-000002", "QIF-000003"]

    def test_fields(self, qif_file):
        first = QIFParser().parse(qif_file)[0]

        assert first.date == datetime(2024, 3, 10)
        assert first.amount == Decimal("12000.00")
        assert first.description == "ATLAS DISTRIBUTION - Virement facture"
        assert first.reference == "FAC-2024-0001"

    def test_u_amount_fallback(self, qif_file):
        assert QIFParser().parse(qif_file)[2].amount == Decimal("6000.00")

    def test_record_without_date_is_skipped(self, tmp_path):
        path = tmp_path / "partial.qif"
        path.write_text("!Type:Bank\nT10.00\n^\nD01/03/2024\nT20.00\n^\n")

        transactions = QIFParser().parse(path)

        assert [t.amount for t in transactions] == [Decimal("20.00")]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.qif"
        path.write_text("!Type:Bank\n")

        with pytest.raises(ValueError, match="No transactions"):
            QIFParser().parse(path)

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            QIFParser().parse("/nonexistent/releve.qif")


class TestLoadStatement:

    def test_dispatch_by_suffix(self, qif_file, tmp_path):
        csv_file = tmp_path / "releve.csv"
        csv_file.write_text("date,amount\n2024-03-10,100.00\n")

        assert len(load_statement(qif_file)) == 3
        assert len(load_statement(csv_file)) == 1
        assert len(load_statement(FIXTURES_DIR / "statement.ofx")) == 3

    def test_load_statements_combines(self, qif_file):
        transactions = load_statements([qif_file, FIXTURES_DIR / "statement.ofx"])
        assert len(transactions) == 6

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "releve.pdf"
        path.write_text("%PDF-1.4")

        with pytest.raises(ValueError, match="Unsupported file format"):
            load_statement(path)
