"""Flat CSV exports of transactions and payments."""

from pathlib import Path
from typing import List

import pandas as pd

from reconciliation.engine.models import BankTransaction, Payment

TRANSACTION_COLUMNS = [
    "id", "date", "description", "amount", "reference",
    "status", "matched_invoices", "match_confidence",
]
PAYMENT_COLUMNS = [
    "id", "invoice_id", "amount", "method", "date",
    "reference", "notes", "company_id", "transaction_id",
]


def _write(df: pd.DataFrame, output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    return output_path


def export_transactions_csv(transactions: List[BankTransaction], output_path: str | Path) -> Path:
    rows = [
        {
            "id": txn.id,
            "date": txn.date.strftime("%Y-%m-%d"),
            "description": txn.description,
            "amount": f"{txn.amount:.2f}",
            "reference": txn.reference or "",
            "status": txn.status.value,
            "matched_invoices": ";".join(txn.matched_payments),
            "match_confidence": "" if txn.match_confidence is None else txn.match_confidence,
        }
        for txn in transactions
    ]
    return _write(pd.DataFrame(rows, columns=TRANSACTION_COLUMNS), output_path)


def export_payments_csv(payments: List[Payment], output_path: str | Path) -> Path:
    rows = [
        {
            "id": p.id,
            "invoice_id": p.invoice_id,
            "amount": f"{p.amount:.2f}",
            "method": p.method.value,
            "date": p.date.strftime("%Y-%m-%d"),
            "reference": p.reference,
            "notes": p.notes,
            "company_id": p.company_id,
            "transaction_id": p.transaction_id or "",
        }
        for p in payments
    ]
    return _write(pd.DataFrame(rows, columns=PAYMENT_COLUMNS), output_path)
