# src/app/deps.py (singletons + request-scoped service wiring)

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import settings
from src.app.domain.errors import StorageError, UnauthenticatedError
from src.app.domain.models import ClientPlatform
from src.app.infra.auth.base import IdentityVerifier
from src.app.infra.auth.supabase_verifier import SupabaseIdentityVerifier
from src.app.infra.db.supabase_import_log_repo import SupabaseImportLogRepository
from src.app.infra.db.supabase_ledger_repo import SupabaseLedgerRepository
from src.app.infra.db.supabase_recipe_repo import SupabaseCatalogRepository, SupabaseRecipeRepository
from src.app.infra.storage.base import StorageProvider
from src.app.infra.storage.r2_provider import R2StorageProvider
from src.app.services.import_journal import ImportJournal
from src.app.services.import_orchestrator import ImportOrchestrator
from src.app.services.ledger_service import LedgerService
from src.app.services.purchase_service import PurchaseService, TrustingReceiptVerifier
from src.app.services.rate_limiter import RateLimiter
from src.app.services.recipe_writer import RecipeWriter
from src.services.extraction import ExtractionGateway, RecipeExtractor
from src.services.gemini_client import GeminiClient
from src.services.image_rehost import ImageRehoster
from src.services.transcripts import TranscriptClient
from src.services.vision import VisionReader

logger = logging.getLogger(__name__)

_client: Client | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


@lru_cache(maxsize=1)
def _storage() -> R2StorageProvider:
    return R2StorageProvider(
        account_id=settings.R2_ACCOUNT_ID,
        access_key_id=settings.R2_ACCESS_KEY_ID,
        secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        bucket_name=settings.R2_BUCKET_NAME,
        public_url=settings.R2_PUBLIC_URL,
    )


def get_storage() -> StorageProvider:
    try:
        return _storage()
    except StorageError as e:
        logger.error("Failed to initialize storage: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage service unavailable",
        )


@lru_cache(maxsize=1)
def _gemini() -> GeminiClient:
    return GeminiClient(api_key=settings.GEMINI_API_KEY, model_name=settings.GEMINI_MODEL)


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


def get_bearer_token(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> str | None:
    if cred is None or cred.scheme.lower() != "bearer":
        return None
    return cred.credentials


def get_identity_verifier(supa: Client = Depends(get_supabase)) -> IdentityVerifier:
    return SupabaseIdentityVerifier(supa)


def get_client_platform(x_client_platform: str | None = Header(default=None)) -> ClientPlatform:
    return ClientPlatform.from_header(x_client_platform)


async def get_current_user(
    token: str | None = Depends(get_bearer_token),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> CurrentUser:
    """
    Recebe Authorization: Bearer <access_token> do Supabase
    e retorna dados minimos do usuario.
    """
    try:
        identity = verifier.verify(token)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    return CurrentUser(id=identity.id, email=identity.email, name=identity.name)


def get_ledger_service(supa: Client = Depends(get_supabase)) -> LedgerService:
    return LedgerService(SupabaseLedgerRepository(supa))


def get_import_journal(supa: Client = Depends(get_supabase)) -> ImportJournal:
    return ImportJournal(SupabaseImportLogRepository(supa))


def get_purchase_service(ledger: LedgerService = Depends(get_ledger_service)) -> PurchaseService:
    return PurchaseService(ledger, TrustingReceiptVerifier(settings.APP_ENV))


def get_import_orchestrator(
    supa: Client = Depends(get_supabase),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    storage: StorageProvider = Depends(get_storage),
) -> ImportOrchestrator:
    policy = settings.import_policy()
    ai = _gemini()
    ledger_repo = SupabaseLedgerRepository(supa)
    gateway = ExtractionGateway(
        extractor=RecipeExtractor(ai),
        transcripts=TranscriptClient(settings.TRANSCRIPT_API_URL, settings.TRANSCRIPT_API_KEY),
        vision=VisionReader(ai, settings.GEMINI_VISION_MODEL),
        storage=storage,
        policy=policy,
    )
    return ImportOrchestrator(
        verifier=verifier,
        rate_limiter=RateLimiter(ledger_repo, policy.rate_limit, policy.rate_window_hours),
        ledger=LedgerService(ledger_repo),
        gateway=gateway,
        writer=RecipeWriter(SupabaseRecipeRepository(supa)),
        journal=ImportJournal(SupabaseImportLogRepository(supa), policy.max_error_chars, policy.max_source_chars),
        catalog=SupabaseCatalogRepository(supa),
        storage=storage,
        rehoster=ImageRehoster(storage),
        policy=policy,
    )
