"""Tests for the command line interface."""

from pathlib import Path

import pandas as pd
import pytest
from click.testing import CliRunner
from openpyxl import load_workbook

from reconciliation.main import main

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def invoices_csv(tmp_path) -> Path:
    path = tmp_path / "factures.csv"
    path.write_text(
        "id,invoice_number,client_id,client_name,total,paid_amount,status,date,company_id\n"
        "301,FAC-2024-0001,201,Atlas Distribution SARL,12000.00,0,sent,2024-03-01,101\n"
        "302,FAC-2024-0002,202,Casablanca Conseil,8400.00,2400.00,partial,2024-03-05,101\n"
    )
    return path


def test_reconcile_with_confirm(tmp_path, invoices_csv):
    output = tmp_path / "report.xlsx"
    csv_dir = tmp_path / "csv"

    result = CliRunner().invoke(main, [
        "--bank", str(FIXTURES_DIR / "statement.ofx"),
        "--invoices", str(invoices_csv),
        "--output", str(output),
        "--csv-dir", str(csv_dir),
        "--confirm",
    ])

    assert result.exit_code == 0, result.output
    assert "RECONCILIATION SUMMARY" in result.output
    assert output.exists()

    payments = pd.read_csv(csv_dir / "payments.csv", dtype=str)
    assert sorted(payments["invoice_id"].tolist()) == ["301", "302"]

    wb = load_workbook(output)
    assert wb["Payments"]["B2"].value is not None


def test_confirm_pays_shared_invoice_once(tmp_path, invoices_csv):
    statement = tmp_path / "releve.csv"
    statement.write_text(
        "date,amount,reference\n"
        "2024-03-10,12000.00,VIR-A\n"
        "2024-03-11,12000.00,VIR-B\n"
    )
    csv_dir = tmp_path / "csv"

    result = CliRunner().invoke(main, [
        "-b", str(statement),
        "-i", str(invoices_csv),
        "-o", str(tmp_path / "report.xlsx"),
        "--csv-dir", str(csv_dir),
        "--confirm",
    ])

    assert result.exit_code == 0, result.output
    assert "1 transaction(s) left for review" in result.output

    payments = pd.read_csv(csv_dir / "payments.csv", dtype=str)
    assert payments["invoice_id"].tolist() == ["301"]
    assert payments["amount"].tolist() == ["12000.00"]


def test_reconcile_mt940_statement(tmp_path, invoices_csv):
    csv_dir = tmp_path / "csv"

    result = CliRunner().invoke(main, [
        "-b", str(FIXTURES_DIR / "statement.sta"),
        "-i", str(invoices_csv),
        "-o", str(tmp_path / "report.xlsx"),
        "--csv-dir", str(csv_dir),
        "--confirm",
    ])

    assert result.exit_code == 0, result.output
    payments = pd.read_csv(csv_dir / "payments.csv", dtype=str)
    assert sorted(payments["invoice_id"].tolist()) == ["301", "302"]


def test_reconcile_without_auto_match(tmp_path, invoices_csv):
    output = tmp_path / "report.xlsx"

    result = CliRunner().invoke(main, [
        "-b", str(FIXTURES_DIR / "statement.ofx"),
        "-i", str(invoices_csv),
        "-o", str(output),
        "--no-auto-match",
    ])

    assert result.exit_code == 0, result.output
    ws = load_workbook(output)["Unmatched"]
    # Unmatched rows carry their best suggestion
    suggested = {ws[f"E{row}"].value for row in range(2, 5)}
    assert "FAC-2024-0001" in suggested


def test_invalid_tolerance(tmp_path, invoices_csv):
    result = CliRunner().invoke(main, [
        "-b", str(FIXTURES_DIR / "statement.ofx"),
        "-i", str(invoices_csv),
        "-o", str(tmp_path / "report.xlsx"),
        "--prefilter-tolerance", "2",
    ])

    assert result.exit_code == 2
    assert "Tolerance must be between 0 and 1" in result.output


def test_unsupported_statement_exits_with_error(tmp_path, invoices_csv):
    bad = tmp_path / "releve.pdf"
    bad.write_text("%PDF-1.4")

    result = CliRunner().invoke(main, [
        "-b", str(bad),
        "-i", str(invoices_csv),
        "-o", str(tmp_path / "report.xlsx"),
    ])

    assert result.exit_code == 1
    assert "Unsupported file format" in result.output
