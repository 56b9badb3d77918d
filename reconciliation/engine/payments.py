"""Turns confirmed matches into invoice payments."""

import logging
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from reconciliation.engine.models import (
    AllocationPolicy,
    BankTransaction,
    Invoice,
    Payment,
    PaymentMethod,
)

logger = logging.getLogger(__name__)


class PaymentMaterializer:
    """
    Creates one bank payment per invoice of a confirmed match.

    With ``AllocationPolicy.FULL_BALANCE`` every invoice is paid its whole
    outstanding balance, whatever the transaction amount. With
    ``AllocationPolicy.CAPPED`` the invoices consume the transaction amount
    in selection order and the payments never add up to more than it.
    Invoices with nothing left to pay get no payment under either policy.
    """

    def __init__(
        self,
        on_payment: Optional[Callable[[Payment], None]] = None,
        policy: AllocationPolicy = AllocationPolicy.FULL_BALANCE,
    ):
        self.on_payment = on_payment
        self.policy = policy

    def materialize(
        self,
        transaction: BankTransaction,
        invoices: Iterable[Invoice],
    ) -> List[Payment]:
        payments: List[Payment] = []
        remaining = transaction.amount

        for invoice in invoices:
            amount = invoice.outstanding
            if amount <= Decimal("0"):
                logger.info("Invoice %s already settled; no payment from transaction %s",
                            invoice.invoice_number, transaction.id)
                continue
            if self.policy == AllocationPolicy.CAPPED:
                amount = min(amount, remaining)
                if amount <= Decimal("0"):
                    logger.info("Transaction %s exhausted before invoice %s",
                                transaction.id, invoice.invoice_number)
                    continue
                remaining -= amount

            payment = Payment(
                invoice_id=invoice.id,
                amount=amount,
                date=transaction.date,
                reference=transaction.reference or transaction.id,
                method=PaymentMethod.BANK,
                notes=f"Auto-matched from bank transaction {transaction.id}",
                company_id=invoice.company_id,
                transaction_id=transaction.id,
            )
            payments.append(payment)

            if self.on_payment:
                self.on_payment(payment)

        if self.policy == AllocationPolicy.FULL_BALANCE:
            allocated = sum((p.amount for p in payments), Decimal("0"))
            if allocated > transaction.amount:
                logger.warning(
                    "Transaction %s: payments total %s exceeds bank amount %s",
                    transaction.id, allocated, transaction.amount,
                )

        return payments
