# src/app/services/ledger_service.py
"""
Token ledger service.
Every balance change goes through here and is journaled in token_transactions.
"""
from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import BalanceNotFoundError, InsufficientBalanceError, InvalidInputError
from src.app.domain.models import (
    CreditResult,
    DebitResult,
    TokenTransaction,
    TransactionReason,
)
from src.app.infra.db.base import LedgerRepository

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInputError(f"Token amount must be a positive integer, got {amount!r}")


def _check_reason(reason: TransactionReason | str) -> TransactionReason:
    try:
        return TransactionReason(reason)
    except ValueError as error:
        raise InvalidInputError(f"Unknown transaction reason: {reason}") from error


class LedgerService:
    """
    Responsibilities:
    - Read balances
    - Debit atomically (never below zero)
    - Credit idempotently on the external transaction id
    - Audit a user's journal for balance_after continuity
    """

    def __init__(self, repository: LedgerRepository):
        self._repo = repository

    def get_balance(self, user_id: str) -> int:
        balance = self._repo.get_balance(user_id)
        if balance is None:
            # The sign-up trigger should always have created the row
            logger.error("ledger.balance_missing user=%s", user_id)
            raise BalanceNotFoundError(user_id)
        return balance

    def debit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason | str,
        related_recipe_id: Optional[str] = None,
    ) -> DebitResult:
        """
        Raises:
            InsufficientBalanceError: balance < amount; nothing is written
            BalanceNotFoundError: the user has no balance row
            RepositoryError: the write could not be performed
        """
        _check_amount(amount)
        reason = _check_reason(reason)

        transaction = self._repo.apply_debit(user_id, amount, reason, related_recipe_id)
        if transaction is None:
            available = self.get_balance(user_id)
            logger.info(
                "ledger.debit_rejected user=%s amount=%d available=%d", user_id, amount, available
            )
            raise InsufficientBalanceError(required=amount, available=available)

        logger.info(
            "ledger.debit user=%s amount=%d reason=%s balance_after=%d",
            user_id,
            amount,
            reason.value,
            transaction.balance_after,
        )
        return DebitResult(new_balance=transaction.balance_after, transaction=transaction)

    def credit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason | str,
        external_transaction_id: Optional[str] = None,
    ) -> CreditResult:
        _check_amount(amount)
        reason = _check_reason(reason)

        if external_transaction_id:
            existing = self._repo.find_transaction_by_external_id(external_transaction_id)
            if existing is not None:
                return self._already_processed(user_id, external_transaction_id)

        transaction = self._repo.apply_credit(user_id, amount, reason, external_transaction_id)
        if transaction is None:
            # Lost the race against a concurrent replay of the same transaction
            return self._already_processed(user_id, external_transaction_id)

        logger.info(
            "ledger.credit user=%s amount=%d reason=%s balance_after=%d transaction_id=%s",
            user_id,
            amount,
            reason.value,
            transaction.balance_after,
            external_transaction_id,
        )
        return CreditResult(new_balance=transaction.balance_after, transaction=transaction)

    def _already_processed(self, user_id: str, external_transaction_id: Optional[str]) -> CreditResult:
        logger.info("ledger.credit_replay user=%s transaction_id=%s", user_id, external_transaction_id)
        return CreditResult(new_balance=self._repo.get_balance(user_id) or 0, already_processed=True)

    def verify_history(self, user_id: str) -> list[TokenTransaction]:
        """
        Transactions whose balance_after does not follow from the previous entry.

        An empty list means the journal is consistent.
        """
        broken: list[TokenTransaction] = []
        previous: Optional[TokenTransaction] = None
        for transaction in self._repo.list_transactions(user_id):
            if previous is not None and transaction.balance_after != previous.balance_after + transaction.amount:
                broken.append(transaction)
            previous = transaction

        if broken:
            logger.error("ledger.history_broken user=%s entries=%d", user_id, len(broken))
        return broken
