"""Tests for the CSV/Excel statement parser and invoice loader."""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

from reconciliation.engine.models import InvoiceStatus, TransactionStatus
from reconciliation.parsers.csv_parser import CSVParser, InvoiceLoader, parse_amount


@pytest.fixture
def statement_csv(tmp_path) -> Path:
    """Create a sample bank statement CSV file."""
    csv_content = """date,amount,description,reference
2024-03-10,12000.00,VIR ATLAS DISTRIBUTION,FAC-2024-0001
2024-03-15,-45.00,Frais tenue de compte,
2024-03-20,6000.00,VIR CASABLANCA CONSEIL,REF884512
"""
    csv_file = tmp_path / "releve.csv"
    csv_file.write_text(csv_content)
    return csv_file


@pytest.fixture
def french_csv(tmp_path) -> Path:
    """Create a CSV in the layout of a Moroccan bank export."""
    csv_content = """Date opération;Libellé;Montant;Référence
10/03/2024;VIR ATLAS;"12 000,00 MAD";FAC-2024-0001
15/03/2024;FRAIS;"-45,00";
20/03/2024;VIR CASA;"1.234,56 DH";REF1
"""
    csv_file = tmp_path / "releve_fr.csv"
    csv_file.write_text(csv_content, encoding="utf-8")
    return csv_file


@pytest.fixture
def invoices_csv(tmp_path) -> Path:
    csv_content = """id,invoice_number,client_id,client_name,total,paid_amount,status,date,company_id
301,FAC-2024-0001,201,Atlas Distribution SARL,12000.00,0,sent,2024-03-01,101
302,FAC-2024-0002,202,Casablanca Conseil,8400.00,2400.00,partial,2024-03-05,101
303,FAC-2024-0003,201,Atlas Distribution SARL,4800.00,,overdue,2024-02-10,101
304,FAC-2024-0004,203,Riad Events,3600.00,,,2024-03-12,101
"""
    csv_file = tmp_path / "factures.csv"
    csv_file.write_text(csv_content)
    return csv_file


class TestCSVParser:
    """Test bank statement CSV parsing."""

    def test_parse_standard_csv(self, statement_csv):
        transactions = CSVParser().parse(statement_csv)

        assert len(transactions) == 3
        assert transactions[0].amount == Decimal("12000.00")
        assert transactions[0].date == datetime(2024, 3, 10)
        assert transactions[0].reference == "FAC-2024-0001"
        assert transactions[0].status == TransactionStatus.UNMATCHED

    def test_default_ids(self, statement_csv):
        transactions = CSVParser().parse(statement_csv)
        assert [t.id for t in transactions] == ["BT-000001", "BT-000002", "BT-000003"]

    def test_empty_reference(self, statement_csv):
        transactions = CSVParser().parse(statement_csv)
        assert transactions[1].reference is None

    def test_parse_with_column_mapping(self, french_csv):
        parser = CSVParser(column_mapping={
            "date": "Date opération",
            "amount": "Montant",
            "description": "Libellé",
            "reference": "Référence",
        })
        transactions = parser.parse(french_csv, sep=";")

        assert len(transactions) == 3
        assert transactions[0].amount == Decimal("12000.00")
        assert transactions[0].date == datetime(2024, 3, 10)
        assert transactions[1].amount == Decimal("-45.00")
        assert transactions[2].amount == Decimal("1234.56")

    def test_bad_rows_are_skipped(self, tmp_path):
        csv_file = tmp_path / "bad_rows.csv"
        csv_file.write_text("date,amount\n2024-03-10,100.00\nnot a date,50\n2024-03-11,abc\n")

        transactions = CSVParser().parse(csv_file)

        assert len(transactions) == 1

    def test_parse_excel(self, tmp_path):
        xlsx_file = tmp_path / "releve.xlsx"
        pd.DataFrame({
            "date": ["2024-03-10", "2024-03-11"],
            "amount": ["100.50", "-20"],
            "description": ["A", "B"],
        }).to_excel(xlsx_file, index=False)

        transactions = CSVParser().parse(xlsx_file)

        assert [t.amount for t in transactions] == [Decimal("100.50"), Decimal("-20")]

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            CSVParser().parse("/nonexistent/file.csv")

    def test_missing_required_columns(self, tmp_path):
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("name,value\ntest,123\n")

        with pytest.raises(ValueError, match="Missing required columns"):
            CSVParser().parse(csv_file)

    def test_unsupported_format(self, tmp_path):
        txt_file = tmp_path / "data.txt"
        txt_file.write_text("some data")

        with pytest.raises(ValueError, match="Unsupported file format"):
            CSVParser().parse(txt_file)

    def test_date_formats(self, tmp_path):
        for i, date_str in enumerate(["2024-03-15", "15/03/2024", "15.03.2024", "15-03-2024"]):
            csv_file = tmp_path / f"dates_{i}.csv"
            csv_file.write_text(f"date,amount\n{date_str},100.00\n")
            txns = CSVParser().parse(csv_file)
            assert txns[0].date == datetime(2024, 3, 15)


@pytest.mark.parametrize("raw,expected", [
    ("1000.00", Decimal("1000.00")),
    ("1 000,50", Decimal("1000.50")),
    ("1.234,56", Decimal("1234.56")),
    ("1,234.56", Decimal("1234.56")),
    ("-45,00 MAD", Decimal("-45.00")),
    ("250 DH", Decimal("250")),
    (12.5, Decimal("12.5")),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


class TestInvoiceLoader:
    """Test invoice ledger loading."""

    def test_loads_invoices_in_order(self, invoices_csv):
        invoices, _ = InvoiceLoader().parse(invoices_csv)

        assert [inv.id for inv in invoices] == ["301", "302", "303", "304"]
        assert invoices[0].invoice_number == "FAC-2024-0001"
        assert invoices[0].company_id == "101"

    def test_amounts_and_status(self, invoices_csv):
        invoices, _ = InvoiceLoader().parse(invoices_csv)
        partial = invoices[1]

        assert partial.total == Decimal("8400.00")
        assert partial.paid_amount == Decimal("2400.00")
        assert partial.outstanding == Decimal("6000.00")
        assert partial.status == InvoiceStatus.PARTIAL

    def test_defaults_for_missing_values(self, invoices_csv):
        invoices, _ = InvoiceLoader().parse(invoices_csv)

        assert invoices[2].paid_amount == Decimal("0")
        assert invoices[3].status == InvoiceStatus.SENT

    def test_distinct_clients(self, invoices_csv):
        _, clients = InvoiceLoader().parse(invoices_csv)

        assert sorted(c.id for c in clients) == ["201", "202", "203"]
        assert {c.id: c.name for c in clients}["201"] == "Atlas Distribution SARL"

    def test_unknown_status_skips_row(self, tmp_path):
        csv_file = tmp_path / "factures.csv"
        csv_file.write_text(
            "id,invoice_number,client_id,total,status,date\n"
            "1,FAC-1,201,100,sent,2024-03-01\n"
            "2,FAC-2,201,100,bogus,2024-03-01\n"
        )
        invoices, _ = InvoiceLoader().parse(csv_file)
        assert [inv.id for inv in invoices] == ["1"]

    def test_missing_required_columns(self, tmp_path):
        csv_file = tmp_path / "factures.csv"
        csv_file.write_text("id,total\n1,100\n")

        with pytest.raises(ValueError, match="invoice_number"):
            InvoiceLoader().parse(csv_file)

    def test_invoice_date_is_required(self, tmp_path):
        csv_file = tmp_path / "factures.csv"
        csv_file.write_text("id,invoice_number,client_id,total\n1,FAC-1,201,100\n")

        with pytest.raises(ValueError, match="date"):
            InvoiceLoader().parse(csv_file)
