"""In-memory stores for invoices and bank transactions."""

import logging
from typing import Dict, Iterable, List, Optional

from reconciliation.engine.models import (
    BankTransaction,
    Client,
    Invoice,
    InvoiceStatus,
    Payment,
    TransactionFilter,
)

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown"


class InvoiceRepository:
    """Invoices and clients the matcher can look up."""

    def __init__(
        self,
        invoices: Optional[Iterable[Invoice]] = None,
        clients: Optional[Iterable[Client]] = None,
    ):
        self._invoices: Dict[str, Invoice] = {}
        for invoice in invoices or []:
            self._invoices[invoice.id] = invoice
        self._clients: Dict[str, Client] = {c.id: c for c in clients or []}

    def __len__(self) -> int:
        return len(self._invoices)

    def all(self) -> List[Invoice]:
        return list(self._invoices.values())

    def find(self, invoice_id: str) -> Optional[Invoice]:
        return self._invoices.get(invoice_id)

    def find_open(self) -> List[Invoice]:
        """Invoices that can still be paid, in insertion order."""
        return [inv for inv in self._invoices.values() if inv.is_open]

    def find_open_by_client(self, client_id: str) -> List[Invoice]:
        return [inv for inv in self.find_open() if inv.client_id == client_id]

    def client_name(self, client_id: str) -> str:
        client = self._clients.get(client_id)
        return client.name if client else UNKNOWN_CLIENT

    def apply_payment(self, payment: Payment) -> Optional[Invoice]:
        """
        Reduce an invoice balance by a payment.

        The invoice becomes ``paid`` once nothing is outstanding, ``partial``
        otherwise. Payments for unknown invoices are logged and ignored.
        """
        invoice = self._invoices.get(payment.invoice_id)
        if invoice is None:
            logger.warning("Payment %s references unknown invoice %s",
                           payment.id, payment.invoice_id)
            return None

        invoice.paid_amount += payment.amount
        if invoice.outstanding <= 0:
            invoice.status = InvoiceStatus.PAID
        else:
            invoice.status = InvoiceStatus.PARTIAL

        logger.info("Invoice %s: applied %s, outstanding %s (%s)",
                    invoice.invoice_number, payment.amount,
                    invoice.outstanding, invoice.status.value)
        return invoice


class TransactionStore:
    """Bank transactions keyed by id, kept in import order."""

    def __init__(self, transactions: Optional[Iterable[BankTransaction]] = None):
        self._transactions: Dict[str, BankTransaction] = {}
        self.add_many(transactions or [])

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._transactions

    def get(self, transaction_id: str) -> Optional[BankTransaction]:
        return self._transactions.get(transaction_id)

    def set(self, transaction: BankTransaction) -> None:
        """Insert a transaction or replace the one with the same id."""
        self._transactions[transaction.id] = transaction

    def add_many(self, transactions: Iterable[BankTransaction]) -> int:
        count = 0
        for txn in transactions:
            if txn.id in self._transactions:
                logger.debug("Replacing transaction %s", txn.id)
            self.set(txn)
            count += 1
        return count

    def all(self) -> List[BankTransaction]:
        return list(self._transactions.values())

    def filter(self, criteria: Optional[TransactionFilter] = None) -> List[BankTransaction]:
        if criteria is None:
            return self.all()
        return [txn for txn in self._transactions.values() if criteria.accepts(txn)]
