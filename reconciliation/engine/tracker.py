"""Reconciliation state of imported bank transactions."""

import logging
from typing import Iterable, List, Optional

from reconciliation.engine.matcher import MatchingEngine
from reconciliation.engine.models import (
    BankTransaction,
    Invoice,
    MatchCandidate,
    Payment,
    ReconciliationSummary,
    TransactionFilter,
    TransactionStatus,
)
from reconciliation.engine.payments import PaymentMaterializer
from reconciliation.engine.repository import InvoiceRepository, TransactionStore

logger = logging.getLogger(__name__)


class ReconciliationTracker:
    """
    Owns the status and invoice links of each bank transaction.

    State transitions:
        unmatched --ignore--> ignored
        unmatched --confirm_match(1 invoice)--> matched
        unmatched --confirm_match(n invoices)--> partially_matched
        matched/partially_matched --confirm_match--> re-evaluated
        unmatched --auto_match_all--> matched (confidence fixed)

    Ignoring drops any invoice links; payments already recorded stay.
    Ignored transactions are never matched again.
    """

    def __init__(
        self,
        store: TransactionStore,
        invoices: InvoiceRepository,
        engine: Optional[MatchingEngine] = None,
        materializer: Optional[PaymentMaterializer] = None,
    ):
        self.store = store
        self.invoices = invoices
        self.engine = engine or MatchingEngine()
        self.materializer = materializer or PaymentMaterializer()
        self._payments: List[Payment] = []

    @property
    def payments(self) -> List[Payment]:
        """Payments materialized so far, in creation order."""
        return list(self._payments)

    def load(self, transactions: Iterable[BankTransaction]) -> int:
        count = self.store.add_many(transactions)
        logger.info("Loaded %d bank transactions", count)
        return count

    def transactions(self, criteria: Optional[TransactionFilter] = None) -> List[BankTransaction]:
        return self.store.filter(criteria)

    def summary(self, criteria: Optional[TransactionFilter] = None) -> ReconciliationSummary:
        return ReconciliationSummary.from_transactions(self.store.filter(criteria))

    def get_candidates(self, transaction_id: str) -> List[MatchCandidate]:
        """Ranked invoice suggestions for a transaction; empty if it is unknown."""
        txn = self.store.get(transaction_id)
        if txn is None:
            return []
        return self.engine.get_candidates(
            txn, self.invoices.find_open(), client_name=self.invoices.client_name,
        )

    def ignore(self, transaction_id: str) -> Optional[BankTransaction]:
        txn = self.store.get(transaction_id)
        if txn is None:
            logger.warning("Cannot ignore unknown transaction %s", transaction_id)
            return None

        txn.status = TransactionStatus.IGNORED
        txn.matched_payments = []
        txn.match_confidence = None
        self.store.set(txn)
        logger.info("Transaction %s ignored", transaction_id)
        return txn

    def confirm_match(self, transaction_id: str, invoice_ids: List[str]) -> List[Payment]:
        """
        Link a transaction to the selected invoices and pay them.

        An empty selection leaves the transaction exactly as it was.

        Returns:
            Payments created for the invoices that could be found.
        """
        txn = self.store.get(transaction_id)
        if txn is None:
            logger.warning("Cannot match unknown transaction %s", transaction_id)
            return []
        if txn.status == TransactionStatus.IGNORED:
            logger.warning("Transaction %s is ignored; match not applied", transaction_id)
            return []
        if not invoice_ids:
            logger.info("No invoice selected for transaction %s", transaction_id)
            return []

        selected: List[Invoice] = []
        for invoice_id in invoice_ids:
            invoice = self.invoices.find(invoice_id)
            if invoice is None:
                logger.warning("Skipping unknown invoice %s for transaction %s",
                               invoice_id, transaction_id)
                continue
            selected.append(invoice)

        payments = self.materializer.materialize(txn, selected)
        for payment in payments:
            self.invoices.apply_payment(payment)
        self._payments.extend(payments)

        txn.matched_payments = list(invoice_ids)
        if len(invoice_ids) == 1:
            txn.status = TransactionStatus.MATCHED
        else:
            txn.status = TransactionStatus.PARTIALLY_MATCHED
        self.store.set(txn)

        logger.info("Transaction %s %s with %d invoice(s), %d payment(s) created",
                    transaction_id, txn.status.value, len(invoice_ids), len(payments))
        return payments

    def auto_match_all(self) -> List[BankTransaction]:
        """
        Match every unmatched transaction to its first candidate invoice.

        Only statuses change; no payment is created until the match is
        confirmed. Invoices are not used up here, so two lines with the same
        amount can both link to one invoice.

        Returns:
            The transactions that were matched.
        """
        open_invoices = self.invoices.find_open()
        changed: List[BankTransaction] = []

        for txn in self.store.all():
            if txn.status != TransactionStatus.UNMATCHED:
                continue

            invoice = self.engine.find_auto_match(txn, open_invoices)
            if invoice is None:
                continue

            txn.status = TransactionStatus.MATCHED
            txn.matched_payments = [invoice.id]
            txn.match_confidence = self.engine.auto_match_confidence
            self.store.set(txn)
            changed.append(txn)
            logger.debug("Auto-matched %s to invoice %s", txn.id, invoice.invoice_number)

        logger.info("Auto-match: %d of %d transactions matched",
                    len(changed), len(self.store))
        return changed
