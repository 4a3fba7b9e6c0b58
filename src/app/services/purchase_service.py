# src/app/services/purchase_service.py
"""
In-app purchase crediting.
Maps store products to token amounts and credits the ledger once per store transaction.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.app.domain.errors import InvalidInputError, InvalidReceiptError, UnknownProductError
from src.app.domain.models import PurchaseResult, TransactionReason
from src.app.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

PRODUCT_TOKENS: dict[str, int] = {
    "tokens_10": 10,
    "tokens_25": 25,
    "tokens_50": 50,
    "tokens_120": 120,
}


class ReceiptVerifier(ABC):
    @abstractmethod
    def verify(self, transaction_id: str, product_id: str, original_transaction_id: Optional[str] = None) -> bool:
        pass


class TrustingReceiptVerifier(ReceiptVerifier):
    """
    Accepts every receipt.

    Client SDKs already verify store signatures; server-side verification
    with the store API is not wired in yet.
    """

    def __init__(self, app_env: str = "local"):
        self.app_env = app_env

    def verify(self, transaction_id: str, product_id: str, original_transaction_id: Optional[str] = None) -> bool:
        if self.app_env in ("local", "development", "dev"):
            logger.info("purchase.verify_skipped env=%s transaction_id=%s", self.app_env, transaction_id)
        else:
            logger.info("purchase.verify_trusted env=%s transaction_id=%s", self.app_env, transaction_id)
        return True


class PurchaseService:
    def __init__(
        self,
        ledger: LedgerService,
        verifier: ReceiptVerifier,
        products: Optional[dict[str, int]] = None,
    ):
        self._ledger = ledger
        self._verifier = verifier
        self.products = products or PRODUCT_TOKENS

    def tokens_for(self, product_id: str) -> int:
        tokens = self.products.get(product_id)
        if tokens is None:
            raise UnknownProductError(product_id)
        return tokens

    def validate_and_credit(
        self,
        user_id: str,
        transaction_id: str,
        product_id: str,
        original_transaction_id: Optional[str] = None,
    ) -> PurchaseResult:
        """
        Raises:
            InvalidInputError: missing transaction or product id
            UnknownProductError: product_id is not sold
            InvalidReceiptError: the store rejected the receipt
        """
        if not transaction_id or not product_id:
            raise InvalidInputError("Missing transactionId or productId")

        tokens = self.tokens_for(product_id)

        if not self._verifier.verify(transaction_id, product_id, original_transaction_id):
            logger.warning("purchase.receipt_rejected user=%s transaction_id=%s", user_id, transaction_id)
            raise InvalidReceiptError("Receipt validation failed")

        result = self._ledger.credit(user_id, tokens, TransactionReason.PURCHASE, transaction_id)
        if result.already_processed:
            return PurchaseResult(success=True, balance=result.new_balance, already_processed=True)

        logger.info(
            "purchase.credited user=%s product=%s tokens=%d balance=%d",
            user_id,
            product_id,
            tokens,
            result.new_balance,
        )
        return PurchaseResult(success=True, balance=result.new_balance, tokens_added=tokens)
