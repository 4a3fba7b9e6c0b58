from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from supabase import Client

from src.app.domain.errors import RepositoryError
from src.app.domain.models import TokenTransaction, TransactionReason, TransactionType
from src.app.infra.db.base import LedgerRepository
from src.app.infra.db.supabase_common import (
    NETWORK_ERRORS,
    create_supabase_client,
    is_unique_violation,
    parse_datetime,
    safe_int,
    safe_str,
)

logger = logging.getLogger(__name__)


def _row_to_transaction(row: dict) -> TokenTransaction:
    return TokenTransaction(
        id=safe_str(row.get("id")),
        user_id=str(row["user_id"]),
        amount=int(row["amount"]),
        type=TransactionType(str(row["type"])),
        reason=TransactionReason(str(row["reason"])),
        balance_after=safe_int(row.get("balance_after")),
        transaction_id=safe_str(row.get("transaction_id")),
        related_recipe_id=safe_str(row.get("related_recipe_id")),
        created_at=parse_datetime(row.get("created_at")),
    )


def _first_row(data: object) -> Optional[dict]:
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


class SupabaseLedgerRepository(LedgerRepository):
    BALANCES_TABLE = "user_tokens"
    TRANSACTIONS_TABLE = "token_transactions"

    def __init__(self, client: Client | None = None):
        self._client = client or create_supabase_client()

    def get_balance(self, user_id: str) -> Optional[int]:
        try:
            result = (
                self._client.table(self.BALANCES_TABLE)
                .select("balance")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except NETWORK_ERRORS as error:
            logger.error("ledger.balance_failed user=%s error=%s", user_id, error)
            raise RepositoryError("get_balance", str(error)) from error

        row = _first_row(result.data)
        return int(row["balance"]) if row else None

    def apply_debit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason,
        related_recipe_id: Optional[str] = None,
    ) -> Optional[TokenTransaction]:
        params = {
            "p_user_id": user_id,
            "p_amount": amount,
            "p_reason": reason.value,
            "p_related_recipe_id": related_recipe_id,
        }
        try:
            result = self._client.rpc("debit_tokens", params).execute()
        except NETWORK_ERRORS as error:
            logger.error("ledger.debit_failed user=%s amount=%d error=%s", user_id, amount, error)
            raise RepositoryError("debit", str(error)) from error

        row = _first_row(result.data)
        return _row_to_transaction(row) if row else None

    def apply_credit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason,
        transaction_id: Optional[str] = None,
    ) -> Optional[TokenTransaction]:
        params = {
            "p_user_id": user_id,
            "p_amount": amount,
            "p_reason": reason.value,
            "p_transaction_id": transaction_id,
        }
        try:
            result = self._client.rpc("credit_tokens", params).execute()
        except NETWORK_ERRORS as error:
            if is_unique_violation(error):
                logger.info("ledger.credit_duplicate transaction_id=%s", transaction_id)
                return None
            logger.error("ledger.credit_failed user=%s amount=%d error=%s", user_id, amount, error)
            raise RepositoryError("credit", str(error)) from error

        row = _first_row(result.data)
        return _row_to_transaction(row) if row else None

    def find_transaction_by_external_id(self, transaction_id: str) -> Optional[TokenTransaction]:
        try:
            result = (
                self._client.table(self.TRANSACTIONS_TABLE)
                .select("*")
                .eq("transaction_id", transaction_id)
                .limit(1)
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("find_transaction", str(error)) from error

        row = _first_row(result.data)
        return _row_to_transaction(row) if row else None

    def count_debits_since(
        self,
        user_id: str,
        reasons: Iterable[TransactionReason],
        since: datetime,
    ) -> int:
        try:
            result = (
                self._client.table(self.TRANSACTIONS_TABLE)
                .select("id", count="exact")
                .eq("user_id", user_id)
                .eq("type", TransactionType.DEBIT.value)
                .in_("reason", [r.value for r in reasons])
                .gte("created_at", since.isoformat())
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("count_debits", str(error)) from error

        if result.count is not None:
            return int(result.count)
        return len(result.data or [])

    def list_transactions(self, user_id: str) -> list[TokenTransaction]:
        try:
            result = (
                self._client.table(self.TRANSACTIONS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at")
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("list_transactions", str(error)) from error

        return [_row_to_transaction(row) for row in result.data or []]
