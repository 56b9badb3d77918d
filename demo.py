"""
Demo script for the invoice bank reconciliation engine.

Builds a small set of invoices and bank transactions in memory, runs the
matcher, confirms a few matches and writes an Excel report.

Usage:
    python demo.py
"""

import logging
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

# Ensure the project root is in the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from reconciliation.engine.models import BankTransaction, Client, Invoice, InvoiceStatus
from reconciliation.engine.repository import InvoiceRepository, TransactionStore
from reconciliation.engine.tracker import ReconciliationTracker
from reconciliation.reports.excel_report import ExcelReportGenerator


def build_invoices():
    clients = [
        Client(id="201", name="Atlas Distribution SARL", ice="001525874000088"),
        Client(id="202", name="Casablanca Conseil", ice="002147896000045"),
        Client(id="203", name="Riad Marrakech Events"),
    ]
    invoices = [
        Invoice(id="301", invoice_number="FAC-2024-0001", client_id="201",
                total=Decimal("12000.00"), date=datetime(2024, 3, 1),
                status=InvoiceStatus.SENT, company_id="101"),
        Invoice(id="302", invoice_number="FAC-2024-0002", client_id="202",
                total=Decimal("8400.00"), paid_amount=Decimal("2400.00"),
                date=datetime(2024, 3, 5), status=InvoiceStatus.PARTIAL, company_id="101"),
        Invoice(id="303", invoice_number="FAC-2024-0003", client_id="203",
                total=Decimal("4800.00"), date=datetime(2024, 2, 10),
                status=InvoiceStatus.OVERDUE, company_id="101"),
        Invoice(id="304", invoice_number="FAC-2024-0004", client_id="201",
                total=Decimal("3600.00"), date=datetime(2024, 3, 12),
                status=InvoiceStatus.SENT, company_id="101"),
        Invoice(id="305", invoice_number="FAC-2024-0005", client_id="202",
                total=Decimal("9000.00"), date=datetime(2024, 1, 20),
                status=InvoiceStatus.PAID, paid_amount=Decimal("9000.00"), company_id="101"),
    ]
    return invoices, clients


def build_transactions():
    return [
        BankTransaction(id="bt-1", date=datetime(2024, 3, 10),
                        description="VIR ATLAS DISTRIBUTION", amount=Decimal("12000.00"),
                        reference="FAC-2024-0001"),
        BankTransaction(id="bt-2", date=datetime(2024, 3, 15),
                        description="VIR CASABLANCA CONSEIL", amount=Decimal("6000.00"),
                        reference="REF884512"),
        BankTransaction(id="bt-3", date=datetime(2024, 3, 18),
                        description="VERSEMENT ESPECES RIAD", amount=Decimal("4790.00")),
        BankTransaction(id="bt-4", date=datetime(2024, 3, 20),
                        description="FRAIS TENUE DE COMPTE", amount=Decimal("-45.00")),
        BankTransaction(id="bt-5", date=datetime(2024, 3, 21),
                        description="VIR INCONNU", amount=Decimal("25000.00"),
                        reference="REF101010"),
    ]


def main():
    """Run the reconciliation demo."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    invoices, clients = build_invoices()
    tracker = ReconciliationTracker(
        store=TransactionStore(),
        invoices=InvoiceRepository(invoices, clients),
    )
    tracker.load(build_transactions())

    print("=" * 60)
    print("  INVOICE BANK RECONCILIATION - DEMO")
    print("=" * 60)

    print("\n  [1/4] Suggested matches")
    for txn in tracker.transactions():
        suggestions = tracker.get_candidates(txn.id)
        print(f"        {txn.id}: {txn.amount:>10} MAD | {txn.description[:30]}")
        for c in suggestions:
            print(f"            -> {c.invoice_number} {c.client_name:<25} {c.confidence:>3}%")

    print("\n  [2/4] Confirming bt-1 and ignoring bank fees")
    tracker.confirm_match("bt-1", ["301"])
    tracker.ignore("bt-4")

    print("\n  [3/4] Auto-matching the rest")
    for txn in tracker.auto_match_all():
        print(f"        {txn.id} -> invoice {txn.matched_payments[0]} ({txn.match_confidence}%)")

    output_file = project_root / "examples" / "reconciliation_report.xlsx"
    print(f"\n  [4/4] Generating Excel report: {output_file.name}")
    summary = tracker.summary()
    output_path = ExcelReportGenerator().generate(
        tracker.transactions(), summary, tracker.payments, output_file,
    )

    print("\n" + "=" * 60)
    print("  RECONCILIATION SUMMARY")
    print("=" * 60)
    print(f"  Transactions:         {summary.total_transactions}")
    print(f"  Match Rate:           {summary.match_rate:.1f}%")
    print(f"  Matched:              {summary.matched_transactions}")
    print(f"  Unmatched:            {summary.unmatched_transactions}")
    print(f"  Ignored:              {summary.ignored_transactions}")
    print(f"  Payments Created:     {len(tracker.payments)}")
    print("=" * 60)
    print(f"\n  Report saved to: {output_path.absolute()}\n")


if __name__ == "__main__":
    main()
