"""Data models for the invoice reconciliation engine."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import uuid4


class TransactionStatus(Enum):
    """Reconciliation status of a bank transaction."""
    UNMATCHED = "unmatched"
    MATCHED = "matched"
    PARTIALLY_MATCHED = "partially_matched"
    IGNORED = "ignored"


class InvoiceStatus(Enum):
    """Lifecycle status of a customer invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Invoices that can still receive a payment
OPEN_INVOICE_STATUSES = frozenset({
    InvoiceStatus.SENT,
    InvoiceStatus.OVERDUE,
    InvoiceStatus.PARTIAL,
})


class PaymentMethod(Enum):
    """How a payment was received."""
    CASH = "cash"
    BANK = "bank"
    CHECK = "check"
    OTHER = "other"


class AllocationPolicy(Enum):
    """How a confirmed match is turned into payment amounts."""
    FULL_BALANCE = "full_balance"  # Each invoice is paid in full
    CAPPED = "capped"              # Payments never exceed the bank amount


@dataclass
class BankTransaction:
    """A single line of an imported bank statement."""
    id: str
    date: datetime
    description: str
    amount: Decimal
    reference: Optional[str] = None
    status: TransactionStatus = TransactionStatus.UNMATCHED
    matched_payments: List[str] = field(default_factory=list)
    match_confidence: Optional[int] = None
    balance: Optional[Decimal] = None
    raw_data: dict = field(default_factory=dict)

    @property
    def is_reconciled(self) -> bool:
        """Check if the transaction is linked to at least one invoice."""
        return self.status in (
            TransactionStatus.MATCHED,
            TransactionStatus.PARTIALLY_MATCHED,
        )

    def __repr__(self) -> str:
        return (
            f"BankTransaction(id={self.id!r}, date={self.date.strftime('%Y-%m-%d')}, "
            f"amount={self.amount}, status={self.status.value})"
        )


@dataclass
class Invoice:
    """The part of a customer invoice needed for reconciliation."""
    id: str
    invoice_number: str
    client_id: str
    total: Decimal
    date: datetime
    paid_amount: Decimal = Decimal("0")
    status: InvoiceStatus = InvoiceStatus.SENT
    due_date: Optional[datetime] = None
    company_id: str = ""

    @property
    def outstanding(self) -> Decimal:
        """Amount still due on the invoice."""
        return self.total - self.paid_amount

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_INVOICE_STATUSES


@dataclass
class Client:
    """Invoice recipient."""
    id: str
    name: str
    ice: Optional[str] = None  # Identifiant Commun de l'Entreprise


@dataclass
class MatchCandidate:
    """An invoice suggested for a bank transaction, with its score."""
    invoice_id: str
    invoice_number: str
    client_name: str
    amount: Decimal
    date: datetime
    confidence: int


@dataclass
class Payment:
    """Payment recorded against an invoice from a confirmed match."""
    invoice_id: str
    amount: Decimal
    date: datetime
    reference: str
    method: PaymentMethod = PaymentMethod.BANK
    notes: str = ""
    company_id: str = ""
    transaction_id: Optional[str] = None
    id: str = field(default_factory=lambda: f"PAY-{uuid4().hex[:12]}")


@dataclass
class TransactionFilter:
    """Criteria for listing transactions. Empty fields match everything."""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    status: Optional[TransactionStatus] = None
    search: str = ""

    def accepts(self, txn: BankTransaction) -> bool:
        day = txn.date.date()
        if self.date_from and day < self.date_from.date():
            return False
        if self.date_to and day > self.date_to.date():
            return False
        if self.status is not None and txn.status != self.status:
            return False
        if self.search:
            needle = self.search.lower()
            in_description = needle in (txn.description or "").lower()
            in_reference = needle in (txn.reference or "").lower()
            if not (in_description or in_reference):
                return False
        return True


@dataclass
class ReconciliationSummary:
    """Summary statistics over a set of bank transactions."""
    total_transactions: int = 0
    matched_transactions: int = 0
    unmatched_transactions: int = 0
    ignored_transactions: int = 0
    total_amount: Decimal = Decimal("0")
    matched_amount: Decimal = Decimal("0")
    unmatched_amount: Decimal = Decimal("0")

    @property
    def match_rate(self) -> float:
        """Calculate match rate as percentage."""
        if self.total_transactions == 0:
            return 0.0
        return (self.matched_transactions / self.total_transactions) * 100

    @classmethod
    def from_transactions(cls, transactions: List[BankTransaction]) -> "ReconciliationSummary":
        summary = cls(total_transactions=len(transactions))
        for txn in transactions:
            summary.total_amount += txn.amount
            if txn.is_reconciled:
                summary.matched_transactions += 1
                summary.matched_amount += txn.amount
            elif txn.status == TransactionStatus.UNMATCHED:
                summary.unmatched_transactions += 1
                summary.unmatched_amount += txn.amount
            else:
                summary.ignored_transactions += 1
        return summary
