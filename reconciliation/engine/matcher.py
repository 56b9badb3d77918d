"""Scoring of bank transactions against open invoices."""

import logging
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from reconciliation.engine.models import BankTransaction, Invoice, MatchCandidate

logger = logging.getLogger(__name__)

# Amounts closer than one centime are the same amount
EXACT_AMOUNT_EPSILON = Decimal("0.01")

EXACT_AMOUNT_POINTS = 60
NEAR_AMOUNT_POINTS = 40
REFERENCE_POINTS = 30
DATE_ORDER_POINTS = 10
MAX_SCORE = 100


class MatchingEngine:
    """
    Suggests invoices for a bank transaction.

    Scoring Strategy (additive, capped at 100):
    1. Exact amount: transaction amount equals the invoice balance (+60)
    2. Near amount: difference is within 5% of the invoice total (+40)
    3. Reference: transaction reference contains the invoice number (+30)
    4. Date order: transaction is dated on or after the invoice (+10)

    Candidates are invoices whose outstanding balance is within 1% of the
    transaction amount. Ties keep the order of the invoice list.
    """

    def __init__(
        self,
        prefilter_tolerance: float = 0.01,
        near_amount_tolerance: float = 0.05,
        max_candidates: int = 5,
        auto_match_confidence: int = 90,
    ):
        """
        Initialize the matching engine.

        Args:
            prefilter_tolerance: Relative distance between balance and transaction
                amount for an invoice to be a candidate (0.01 = 1%).
            near_amount_tolerance: Share of the invoice total under which an
                amount difference still earns the near-amount points.
            max_candidates: Maximum number of suggestions returned.
            auto_match_confidence: Confidence recorded by bulk auto-matching.
        """
        self.prefilter_tolerance = Decimal(str(prefilter_tolerance))
        self.near_amount_tolerance = Decimal(str(near_amount_tolerance))
        self.max_candidates = max_candidates
        self.auto_match_confidence = auto_match_confidence

    def score(self, transaction: BankTransaction, invoice: Invoice) -> int:
        """Confidence in [0, 100] that the transaction pays the invoice."""
        score = 0
        amount_diff = abs(transaction.amount - invoice.outstanding)

        if amount_diff < EXACT_AMOUNT_EPSILON:
            score += EXACT_AMOUNT_POINTS
        elif amount_diff < invoice.total * self.near_amount_tolerance:
            score += NEAR_AMOUNT_POINTS

        if transaction.reference and invoice.invoice_number in transaction.reference:
            score += REFERENCE_POINTS

        if transaction.date.date() >= invoice.date.date():
            score += DATE_ORDER_POINTS

        return max(0, min(score, MAX_SCORE))

    def is_candidate(self, transaction: BankTransaction, invoice: Invoice) -> bool:
        """Coarse filter: open invoice with a balance close to the amount."""
        if not invoice.is_open:
            return False
        tolerance = abs(transaction.amount) * self.prefilter_tolerance
        return abs(invoice.outstanding - transaction.amount) <= tolerance

    def get_candidates(
        self,
        transaction: BankTransaction,
        invoices: Iterable[Invoice],
        client_name: Optional[Callable[[str], str]] = None,
    ) -> List[MatchCandidate]:
        """
        Rank open invoices for a transaction.

        Args:
            transaction: Bank transaction to match.
            invoices: Open invoices, in the order used to break ties.
            client_name: Resolves a client id to a display name.

        Returns:
            Up to ``max_candidates`` candidates, highest confidence first.
        """
        candidates: List[MatchCandidate] = []

        for invoice in invoices:
            if not self.is_candidate(transaction, invoice):
                continue

            confidence = self.score(transaction, invoice)
            logger.debug(
                "Transaction %s vs invoice %s: confidence %d",
                transaction.id, invoice.invoice_number, confidence,
            )
            candidates.append(MatchCandidate(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                client_name=client_name(invoice.client_id) if client_name else invoice.client_id,
                amount=invoice.outstanding,
                date=invoice.date,
                confidence=confidence,
            ))

        # sorted() is stable, so equal scores stay in invoice order
        candidates = sorted(candidates, key=lambda c: c.confidence, reverse=True)
        return candidates[:self.max_candidates]

    def find_auto_match(
        self,
        transaction: BankTransaction,
        invoices: Iterable[Invoice],
    ) -> Optional[Invoice]:
        """First candidate invoice in list order not already linked to the transaction."""
        for invoice in invoices:
            if invoice.id in transaction.matched_payments:
                continue
            if self.is_candidate(transaction, invoice):
                return invoice
        return None
