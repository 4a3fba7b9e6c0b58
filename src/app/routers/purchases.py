from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.app.deps import CurrentUser, get_current_user, get_ledger_service, get_purchase_service
from src.app.domain.errors import (
    BalanceNotFoundError,
    InvalidInputError,
    InvalidReceiptError,
    RepositoryError,
    UnknownProductError,
)
from src.app.schemas.purchases import BalanceResponse, PurchaseValidationRequest, PurchaseValidationResponse
from src.app.services.ledger_service import LedgerService
from src.app.services.purchase_service import PurchaseService

log = logging.getLogger(__name__)
router = APIRouter(tags=["tokens"])


def _error(status_code: int, message: str) -> JSONResponse:
    body = PurchaseValidationResponse(success=False, error=message).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post("/purchases/validate", response_model=PurchaseValidationResponse)
async def validate_purchase(
    payload: PurchaseValidationRequest,
    user: CurrentUser = Depends(get_current_user),
    purchases: PurchaseService = Depends(get_purchase_service),
):
    try:
        result = await run_in_threadpool(
            purchases.validate_and_credit,
            user.id,
            payload.transactionId,
            payload.productId,
            payload.originalTransactionId,
        )
    except (InvalidInputError, UnknownProductError, InvalidReceiptError) as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except RepositoryError as e:
        log.error("purchase.credit_failed user=%s transaction_id=%s error=%s", user.id, payload.transactionId, e)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to credit tokens")

    return PurchaseValidationResponse(
        success=True,
        balance=result.balance,
        tokensAdded=result.tokens_added if not result.already_processed else None,
        alreadyProcessed=True if result.already_processed else None,
    )


@router.get("/tokens/balance", response_model=BalanceResponse)
async def get_balance(
    user: CurrentUser = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
) -> BalanceResponse:
    try:
        balance = await run_in_threadpool(ledger.get_balance, user.id)
    except BalanceNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No token balance for this user")
    except RepositoryError as e:
        log.error("tokens.balance_failed user=%s error=%s", user.id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Balance unavailable")
    return BalanceResponse(balance=balance)
