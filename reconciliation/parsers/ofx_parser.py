"""OFX/QFX bank statement parser built on ofxparse."""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, List
from uuid import uuid4

from ofxparse import OfxParser as OfxLib

from reconciliation.engine.models import BankTransaction

logger = logging.getLogger(__name__)

OFX_SUFFIXES = (".ofx", ".qfx")


class OFXParser:
    """
    Turn the statement lines of an OFX/QFX download into bank transactions.

    Field mapping:
        FITID            -> id (a random id when the bank omits it)
        MEMO, else NAME  -> description
        CHECKNUM         -> reference, which the matcher searches for an
                            invoice number; Moroccan banks often put the
                            client's "FAC-..." reference there
        TRNAMT           -> amount, credits positive

    The account number, bank id, OFX transaction type, payee and the
    statement's closing balance are kept in ``raw_data`` so the report can
    show where a line came from. Every transaction starts ``unmatched``.
    """

    def parse(self, file_path: str | Path) -> List[BankTransaction]:
        """
        Parse every account statement found in an OFX/QFX file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the suffix is wrong, ofxparse rejects the file,
                or the file holds no account.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"OFX file not found: {file_path}")

        if file_path.suffix.lower() not in OFX_SUFFIXES:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        try:
            with open(file_path, "rb") as f:
                ofx = OfxLib.parse(f)
        except Exception as e:
            raise ValueError(f"Failed to parse OFX file: {e}") from e

        transactions: List[BankTransaction] = []
        for account in self._accounts(ofx):
            statement = getattr(account, "statement", None)
            if statement is None:
                logger.debug("Account %s has no statement",
                             getattr(account, "account_id", "?"))
                continue
            context = self._account_context(account, statement)
            transactions.extend(
                self._to_bank_transaction(line, context) for line in statement.transactions
            )

        logger.info("Parsed %d transactions from %s", len(transactions), file_path)
        return transactions

    def parse_multiple(self, file_paths: List[str | Path]) -> List[BankTransaction]:
        """Parse several downloads, e.g. one per bank account, in the given order."""
        transactions: List[BankTransaction] = []
        for path in file_paths:
            transactions.extend(self.parse(path))
        return transactions

    def _accounts(self, ofx) -> list:
        # multi-account downloads fill ``accounts``; older files only ``account``
        accounts = getattr(ofx, "accounts", None)
        if accounts:
            return accounts
        account = getattr(ofx, "account", None)
        if account is not None:
            return [account]
        raise ValueError("No accounts found in OFX file")

    def _account_context(self, account, statement) -> Dict[str, str]:
        balance = getattr(statement, "balance", None)
        return {
            "account_id": getattr(account, "account_id", ""),
            "bank_id": getattr(account, "routing_number", ""),
            "statement_balance": str(balance) if balance is not None else "",
        }

    def _to_bank_transaction(self, line, context: Dict[str, str]) -> BankTransaction:
        value_date = line.date
        if isinstance(value_date, str):
            value_date = datetime.strptime(value_date[:8], "%Y%m%d")

        memo = getattr(line, "memo", "") or ""
        payee = getattr(line, "payee", "") or ""

        return BankTransaction(
            id=getattr(line, "id", None) or str(uuid4()),
            date=value_date,
            amount=Decimal(str(line.amount)),
            description=memo or payee,
            reference=getattr(line, "checknum", None) or None,
            raw_data={
                **context,
                "type": getattr(line, "type", ""),
                "payee": payee,
            },
        )
