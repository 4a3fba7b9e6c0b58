# src/app/routers/imports.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.app.deps import (
    CurrentUser,
    get_bearer_token,
    get_client_platform,
    get_current_user,
    get_import_journal,
    get_import_orchestrator,
)
from src.app.domain.errors import ImportNotFoundError, RepositoryError
from src.app.domain.models import ClientPlatform, ImportOutcome
from src.app.schemas.imports import (
    ImportResponse,
    ImportStatusResponse,
    MediaImportRequest,
    UrlImportRequest,
    VideoImportRequest,
)
from src.app.services.import_journal import ImportJournal
from src.app.services.import_orchestrator import ImportOrchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/imports", tags=["imports"])

_STATUS_BY_CODE = {
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "insufficient_balance": status.HTTP_402_PAYMENT_REQUIRED,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "extraction_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "persistence_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "internal_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(outcome: ImportOutcome) -> int:
    if outcome.success:
        return status.HTTP_200_OK
    return _STATUS_BY_CODE.get(outcome.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR)


def _respond(outcome: ImportOutcome) -> JSONResponse:
    body = ImportResponse.from_outcome(outcome).model_dump(mode="json", exclude_none=True)
    return JSONResponse(status_code=http_status_for(outcome), content=body)


@router.post("/url", response_model=ImportResponse)
async def import_url(
    payload: UrlImportRequest,
    token: str | None = Depends(get_bearer_token),
    platform: ClientPlatform = Depends(get_client_platform),
    orchestrator: ImportOrchestrator = Depends(get_import_orchestrator),
):
    outcome = await run_in_threadpool(
        orchestrator.import_url,
        token,
        payload.url,
        payload.language,
        payload.translate,
        payload.importId,
        platform,
    )
    return _respond(outcome)


@router.post("/video", response_model=ImportResponse)
async def import_video(
    payload: VideoImportRequest,
    token: str | None = Depends(get_bearer_token),
    platform: ClientPlatform = Depends(get_client_platform),
    orchestrator: ImportOrchestrator = Depends(get_import_orchestrator),
):
    outcome = await run_in_threadpool(
        orchestrator.import_video,
        token,
        payload.url,
        payload.language,
        payload.translate,
        payload.startTimestamp,
        payload.endTimestamp,
        payload.importId,
        platform,
    )
    return _respond(outcome)


@router.post("/media", response_model=ImportResponse)
async def import_media(
    payload: MediaImportRequest,
    token: str | None = Depends(get_bearer_token),
    platform: ClientPlatform = Depends(get_client_platform),
    orchestrator: ImportOrchestrator = Depends(get_import_orchestrator),
):
    outcome = await run_in_threadpool(
        orchestrator.import_media,
        token,
        payload.storagePaths,
        payload.mediaType,
        payload.language,
        payload.translate,
        payload.importId,
        platform,
    )
    return _respond(outcome)


@router.get("/{import_id}", response_model=ImportStatusResponse)
async def get_import_status(
    import_id: str,
    user: CurrentUser = Depends(get_current_user),
    journal: ImportJournal = Depends(get_import_journal),
) -> ImportStatusResponse:
    try:
        entry = await run_in_threadpool(journal.get_status, import_id, user.id)
    except ImportNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import not found")
    except RepositoryError as e:
        log.error("import.status_failed id=%s error=%s", import_id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Import status unavailable")
    return ImportStatusResponse.from_entry(entry)
