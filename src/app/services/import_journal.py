# src/app/services/import_journal.py
"""
Import journal: one import_logs row per admitted import.
Rows start pending and are closed exactly once as success or failed;
each close also emits an audit line on the "import" logger.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from src.app.domain.errors import ImportNotFoundError, InvalidInputError, RepositoryError
from src.app.domain.models import (
    AIUsage,
    ClientPlatform,
    ImportKind,
    ImportLogEntry,
    ImportStatus,
)
from src.app.infra.db.base import ImportLogRepository

logger = logging.getLogger("import")

CONSOLE_SOURCE_CHARS = 100


def _truncate(value: Optional[str], limit: int) -> Optional[str]:
    if value is None or len(value) <= limit:
        return value
    return value[:limit]


@dataclass
class ImportHandle:
    """An import in flight; terminal state is written exactly once."""
    entry: ImportLogEntry
    started_at: float = field(default_factory=time.monotonic)

    @property
    def id(self) -> str:
        return self.entry.id

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


def _audit_line(entry: ImportLogEntry) -> str:
    parts = [
        f"user={entry.user_id}",
        f"type={entry.import_type.value}",
        f"status={entry.status.value}",
        f'source="{_truncate(entry.source, CONSOLE_SOURCE_CHARS)}"',
    ]
    if entry.recipe_id:
        parts.append(f"recipe_id={entry.recipe_id}")
    if entry.tokens_used:
        parts.append(f"tokens={entry.tokens_used}")
    if entry.input_tokens or entry.output_tokens:
        parts.append(f"ai_tokens={entry.input_tokens}/{entry.output_tokens}")
    if entry.duration_ms is not None:
        parts.append(f"duration={entry.duration_ms}ms")
    if entry.error_code:
        parts.append(f"error_code={entry.error_code}")
    if entry.error_message:
        parts.append(f'error="{entry.error_message}"')
    return "import.log " + " ".join(parts)


class ImportJournal:
    """
    Writes the import_logs audit trail.

    Rows are created pending once an import is admitted and closed as success or
    failed. Failures that cannot be attributed to a user only produce a log line.
    """

    def __init__(
        self,
        repository: ImportLogRepository,
        max_error_chars: int = 1000,
        max_source_chars: int = 500,
    ):
        self._repo = repository
        self.max_error_chars = max_error_chars
        self.max_source_chars = max_source_chars

    def start(
        self,
        import_id: str,
        user_id: str,
        kind: ImportKind,
        source: str,
        platform: ClientPlatform = ClientPlatform.UNKNOWN,
    ) -> ImportHandle:
        entry = ImportLogEntry(
            id=import_id,
            user_id=user_id,
            import_type=kind,
            source=_truncate(source, self.max_source_chars) or "",
            platform=platform,
        )
        if not self._repo.create(entry):
            raise InvalidInputError(f"Import id already used: {import_id}")

        logger.info("import.start id=%s user=%s type=%s", import_id, user_id, kind.value)
        return ImportHandle(entry=entry)

    def succeed(
        self,
        handle: ImportHandle,
        recipe_id: str,
        recipe_name: str,
        tokens_used: int,
        usage: AIUsage,
        models_used: list[str],
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> ImportLogEntry:
        entry = handle.entry
        entry.status = ImportStatus.SUCCESS
        entry.recipe_id = recipe_id
        entry.recipe_name = recipe_name
        entry.tokens_used = tokens_used
        entry.input_tokens = usage.input_tokens
        entry.output_tokens = usage.output_tokens
        entry.models_used = list(models_used)
        entry.error_code = error_code
        entry.error_message = _truncate(error_message, self.max_error_chars)
        return self._close(handle)

    def fail(
        self,
        handle: ImportHandle,
        error_message: str,
        error_code: str,
        usage: Optional[AIUsage] = None,
        models_used: Optional[list[str]] = None,
    ) -> ImportLogEntry:
        entry = handle.entry
        entry.status = ImportStatus.FAILED
        entry.tokens_used = 0
        entry.error_message = _truncate(error_message, self.max_error_chars)
        entry.error_code = error_code
        if usage is not None:
            entry.input_tokens = usage.input_tokens
            entry.output_tokens = usage.output_tokens
        if models_used:
            entry.models_used = list(models_used)
        return self._close(handle)

    def _close(self, handle: ImportHandle) -> ImportLogEntry:
        entry = handle.entry
        entry.duration_ms = handle.elapsed_ms()
        try:
            if not self._repo.complete(entry):
                logger.warning("import.already_closed id=%s", entry.id)
        except RepositoryError as error:
            # The outcome is already decided; the audit line below still records it
            logger.error("import.close_failed id=%s error=%s", entry.id, error)

        line = _audit_line(entry)
        if entry.status is ImportStatus.FAILED:
            logger.error(line)
        else:
            logger.info(line)
        return entry

    def log_unattributed_failure(self, kind: ImportKind, source: str, error_message: str, error_code: str) -> None:
        """Audit line for failures before an identity is known (no row can be written)."""
        entry = ImportLogEntry(
            id="-",
            user_id="unknown",
            import_type=kind,
            source=source or "",
            status=ImportStatus.FAILED,
            error_message=_truncate(error_message, self.max_error_chars),
            error_code=error_code,
        )
        logger.error(_audit_line(entry))

    def get_status(self, import_id: str, user_id: str) -> ImportLogEntry:
        entry = self._repo.get(import_id, user_id)
        if entry is None:
            raise ImportNotFoundError(import_id)
        return entry
