from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class PurchaseValidationRequest(BaseModel):
    transactionId: str
    productId: str
    originalTransactionId: Optional[str] = None
    # Android purchase token, accepted but not verified
    purchaseToken: Optional[str] = None


class PurchaseValidationResponse(BaseModel):
    success: bool
    balance: Optional[int] = None
    tokensAdded: Optional[int] = None
    alreadyProcessed: Optional[bool] = None
    error: Optional[str] = None


class BalanceResponse(BaseModel):
    balance: int
