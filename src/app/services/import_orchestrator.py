# src/app/services/import_orchestrator.py
"""
Import state machine shared by URL, video and media imports.

Received -> AuthValidated -> RateChecked -> BalanceChecked -> Extracting
-> Persisting -> TokensDebited -> LoggedSuccess, with LoggedFailure reachable
from every step after admission. Rejections (auth, input, rate limit, balance)
return before an import_logs row exists.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID, uuid4

from src.app.domain.errors import (
    BalanceNotFoundError,
    InsufficientBalanceError,
    InvalidInputError,
    PersistenceError,
    RecipeImportError,
    RepositoryError,
    TokenDebitError,
    UnauthenticatedError,
)
from src.app.domain.models import (
    ClientPlatform,
    ImportKind,
    ImportOutcome,
    ImportPolicy,
    ImportStats,
)
from src.app.infra.auth.base import Identity, IdentityVerifier
from src.app.infra.db.base import CatalogRepository
from src.app.infra.storage.base import StorageProvider, owner_prefix
from src.app.services.import_journal import ImportHandle, ImportJournal
from src.app.services.ledger_service import LedgerService
from src.app.services.rate_limiter import RateLimiter
from src.app.services.recipe_writer import RecipeWriter
from src.services.errors import NoReadableTextError, ServiceError
from src.services.extraction import (
    IMAGE_MEDIA,
    PDF_MEDIA,
    ExtractionContext,
    ExtractionGateway,
    ExtractionResult,
)
from src.services.fetcher import is_http_url
from src.services.ids import require_video
from src.services.image_rehost import ImageRehoster
from src.services.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "de")

EXTRACTION_FAILED = "extraction_failed"
NOT_A_RECIPE = "not_a_recipe"
INTERNAL_ERROR = "internal_error"
UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class _PreparedImport:
    """A validated request: what to journal and how to extract."""
    kind: ImportKind
    source: str
    extract: Callable[[ExtractionContext], ExtractionResult]
    temp_paths: list[str] = field(default_factory=list)


def _rejection(error: RecipeImportError, **extra) -> ImportOutcome:
    return ImportOutcome(success=False, error=str(error), error_code=error.code, **extra)


def _check_common(language: str, import_id: Optional[str]) -> None:
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidInputError(f"Unsupported language: {language}. Use one of {', '.join(SUPPORTED_LANGUAGES)}")
    if import_id is not None:
        try:
            UUID(import_id)
        except ValueError as error:
            raise InvalidInputError(f"importId must be a UUID: {import_id}") from error


class ImportOrchestrator:
    def __init__(
        self,
        verifier: IdentityVerifier,
        rate_limiter: RateLimiter,
        ledger: LedgerService,
        gateway: ExtractionGateway,
        writer: RecipeWriter,
        journal: ImportJournal,
        catalog: CatalogRepository,
        storage: StorageProvider,
        rehoster: ImageRehoster,
        policy: ImportPolicy,
    ):
        self._verifier = verifier
        self._rate_limiter = rate_limiter
        self._ledger = ledger
        self._gateway = gateway
        self._writer = writer
        self._journal = journal
        self._catalog = catalog
        self._storage = storage
        self._rehoster = rehoster
        self._policy = policy

    # Entry points

    def import_url(
        self,
        token: Optional[str],
        url: str,
        language: str = "en",
        translate: bool = True,
        import_id: Optional[str] = None,
        platform: ClientPlatform = ClientPlatform.UNKNOWN,
    ) -> ImportOutcome:
        def prepare(identity: Identity) -> _PreparedImport:
            _check_common(language, import_id)
            if not url or not is_http_url(url.strip()):
                raise InvalidInputError("A valid http(s) URL is required")
            target = url.strip()
            return _PreparedImport(
                kind=ImportKind.URL,
                source=target,
                extract=lambda ctx: self._gateway.extract_from_url(target, ctx),
            )

        return self._run(token, ImportKind.URL, url, prepare, language, translate, import_id, platform)

    def import_video(
        self,
        token: Optional[str],
        url: str,
        language: str = "en",
        translate: bool = True,
        start_timestamp: Optional[str] = None,
        end_timestamp: Optional[str] = None,
        import_id: Optional[str] = None,
        platform: ClientPlatform = ClientPlatform.UNKNOWN,
    ) -> ImportOutcome:
        def prepare(identity: Identity) -> _PreparedImport:
            _check_common(language, import_id)
            if not url or not is_http_url(url.strip()):
                raise InvalidInputError("A valid video URL is required")
            ref = require_video(url.strip())
            start_ms = parse_timestamp(start_timestamp)
            end_ms = parse_timestamp(end_timestamp)
            return _PreparedImport(
                kind=ImportKind.VIDEO,
                source=ref.normalized_url,
                extract=lambda ctx: self._gateway.extract_from_video(ref.normalized_url, ctx, start_ms, end_ms),
            )

        return self._run(token, ImportKind.VIDEO, url, prepare, language, translate, import_id, platform)

    def import_media(
        self,
        token: Optional[str],
        storage_paths: list[str],
        media_type: str,
        language: str = "en",
        translate: bool = True,
        import_id: Optional[str] = None,
        platform: ClientPlatform = ClientPlatform.UNKNOWN,
    ) -> ImportOutcome:
        kind = ImportKind.PDF if media_type == PDF_MEDIA else ImportKind.IMAGE
        paths = [p.strip() for p in storage_paths or [] if p and p.strip()]
        source = ", ".join(paths)

        def prepare(identity: Identity) -> _PreparedImport:
            _check_common(language, import_id)
            if media_type not in (IMAGE_MEDIA, PDF_MEDIA):
                raise InvalidInputError(f"mediaType must be '{IMAGE_MEDIA}' or '{PDF_MEDIA}'")
            self._gateway.check_media_request(paths, media_type)
            prefix = owner_prefix(identity.id)
            for path in paths:
                if not path.startswith(prefix) or ".." in path.split("/"):
                    raise InvalidInputError(f"File does not belong to the caller: {path}")
            return _PreparedImport(
                kind=kind,
                source=source,
                extract=lambda ctx: self._gateway.extract_from_media(paths, media_type, ctx),
                temp_paths=paths,
            )

        return self._run(token, kind, source, prepare, language, translate, import_id, platform)

    # Pipeline

    def _run(
        self,
        token: Optional[str],
        kind: ImportKind,
        raw_source: str,
        prepare: Callable[[Identity], _PreparedImport],
        language: str,
        translate: bool,
        import_id: Optional[str],
        platform: ClientPlatform,
    ) -> ImportOutcome:
        try:
            identity = self._verifier.verify(token)
        except UnauthenticatedError as error:
            self._journal.log_unattributed_failure(kind, raw_source, str(error), error.code)
            return _rejection(error)

        try:
            prepared = prepare(identity)
        except InvalidInputError as error:
            logger.info("import.invalid user=%s type=%s reason=%s", identity.id, kind.value, error)
            return _rejection(error)
        except ServiceError as error:
            logger.info("import.invalid user=%s type=%s reason=%s", identity.id, kind.value, error)
            return ImportOutcome(success=False, error=str(error), error_code=InvalidInputError.code)

        rate = self._rate_limiter.check(identity.id)
        if not rate.allowed:
            return ImportOutcome(
                success=False,
                error=f"Rate limit exceeded. You can import up to {rate.limit} recipes per day.",
                error_code="rate_limited",
                rate_limit_remaining=0,
                rate_limit_reset=rate.reset_at,
            )

        cost = self._policy.cost_for(prepared.kind)
        import_id = import_id or str(uuid4())

        try:
            balance = self._ledger.get_balance(identity.id)
        except (BalanceNotFoundError, RepositoryError) as error:
            return self._fail_unstarted(import_id, identity, prepared, platform, error)

        if balance < cost:
            logger.info("import.insufficient user=%s required=%d available=%d", identity.id, cost, balance)
            return _rejection(
                InsufficientBalanceError(required=cost, available=balance),
                tokens_required=cost,
                tokens_available=balance,
            )

        try:
            handle = self._journal.start(import_id, identity.id, prepared.kind, prepared.source, platform)
        except InvalidInputError as error:
            return _rejection(error)
        except RepositoryError as error:
            logger.error("import.journal_unavailable user=%s error=%s", identity.id, error)
            return ImportOutcome(success=False, error="Import could not be started", error_code=INTERNAL_ERROR)

        return self._admitted(handle, identity, prepared, cost, language, translate)

    def _fail_unstarted(
        self,
        import_id: str,
        identity: Identity,
        prepared: _PreparedImport,
        platform: ClientPlatform,
        error: RecipeImportError,
    ) -> ImportOutcome:
        logger.error("import.balance_unavailable user=%s error=%s", identity.id, error)
        try:
            handle = self._journal.start(import_id, identity.id, prepared.kind, prepared.source, platform)
            self._journal.fail(handle, str(error), "balance_unavailable")
        except RecipeImportError as journal_error:
            logger.error("import.journal_unavailable user=%s error=%s", identity.id, journal_error)
        return ImportOutcome(
            success=False,
            import_id=import_id,
            error="Token balance could not be read",
            error_code=INTERNAL_ERROR,
        )

    def _admitted(
        self,
        handle: ImportHandle,
        identity: Identity,
        prepared: _PreparedImport,
        cost: int,
        language: str,
        translate: bool,
    ) -> ImportOutcome:
        try:
            context = ExtractionContext(
                ingredients=self._catalog.list_ingredients(),
                measurement_types=self._catalog.list_measurement_types(),
                language=language,
                translate=translate,
            )
        except RepositoryError as error:
            self._journal.fail(handle, str(error), "catalog_unavailable")
            return ImportOutcome(success=False, import_id=handle.id, error=str(error), error_code=INTERNAL_ERROR)

        try:
            result = prepared.extract(context)
        except NoReadableTextError as error:
            self._journal.fail(handle, str(error), error.code, error.usage, error.models_used)
            return ImportOutcome(success=False, import_id=handle.id, error=str(error), error_code=EXTRACTION_FAILED)
        except ServiceError as error:
            self._journal.fail(handle, str(error), error.code)
            return ImportOutcome(success=False, import_id=handle.id, error=str(error), error_code=EXTRACTION_FAILED)
        except Exception as error:
            logger.exception("import.extraction_crashed id=%s user=%s", handle.id, identity.id)
            self._journal.fail(handle, f"Unexpected error: {error}", UNEXPECTED_ERROR)
            return ImportOutcome(
                success=False,
                import_id=handle.id,
                error="Recipe extraction failed unexpectedly",
                error_code=EXTRACTION_FAILED,
            )

        if not result.is_valid_recipe or result.recipe is None:
            message = result.error_message or "No recipe found in the provided content"
            self._journal.fail(handle, message, NOT_A_RECIPE, result.usage, result.models_used)
            return ImportOutcome(success=False, import_id=handle.id, error=message, error_code=EXTRACTION_FAILED)

        image_url = result.image_url
        if prepared.kind is ImportKind.URL:
            image_url = self._rehoster.rehost(result.image_url)

        try:
            inserted = self._writer.insert_recipe(
                result,
                identity.id,
                context.ingredients,
                context.measurement_types,
                language,
                image_url,
            )
        except PersistenceError as error:
            self._journal.fail(handle, str(error), error.code, result.usage, result.models_used)
            return ImportOutcome(success=False, import_id=handle.id, error=str(error), error_code=error.code)
        except Exception as error:
            logger.exception("import.persist_crashed id=%s user=%s", handle.id, identity.id)
            self._journal.fail(handle, f"Unexpected error: {error}", UNEXPECTED_ERROR, result.usage, result.models_used)
            return ImportOutcome(
                success=False,
                import_id=handle.id,
                error="Recipe could not be saved",
                error_code=PersistenceError.code,
            )

        self._cleanup(prepared.temp_paths)

        debit_error: Optional[TokenDebitError] = None
        tokens_remaining: Optional[int] = None
        try:
            debit = self._ledger.debit(
                identity.id,
                cost,
                self._policy.reason_for(prepared.kind),
                related_recipe_id=inserted.recipe_id,
            )
            tokens_remaining = debit.new_balance
        except (InsufficientBalanceError, BalanceNotFoundError, RepositoryError, InvalidInputError) as error:
            # The recipe stays; the missing debit is flagged on the log row
            logger.error("import.debit_failed id=%s user=%s error=%s", handle.id, identity.id, error)
            debit_error = TokenDebitError(f"Recipe saved but tokens were not deducted: {error}")
            if isinstance(error, InsufficientBalanceError):
                tokens_remaining = error.available

        recipe_name = result.recipe.name
        self._journal.succeed(
            handle,
            recipe_id=inserted.recipe_id,
            recipe_name=recipe_name,
            tokens_used=0 if debit_error else cost,
            usage=result.usage,
            models_used=result.models_used,
            error_code=debit_error.code if debit_error else None,
            error_message=str(debit_error) if debit_error else None,
        )

        return ImportOutcome(
            success=True,
            import_id=handle.id,
            recipe_id=inserted.recipe_id,
            recipe_name=recipe_name,
            error=str(debit_error) if debit_error else None,
            error_code=debit_error.code if debit_error else None,
            tokens_deducted=0 if debit_error else cost,
            tokens_remaining=tokens_remaining,
            stats=ImportStats(
                steps_count=len([s for s in result.steps if s.instruction.strip()]),
                ingredients_count=len(result.ingredients),
                new_ingredients_count=inserted.new_ingredients_count,
                usage=result.usage,
            ),
        )

    def _cleanup(self, paths: list[str]) -> None:
        if not paths:
            return
        failed = self._storage.delete_objects(paths)
        if failed:
            logger.warning("import.cleanup_failed paths=%s", ", ".join(failed))
