from __future__ import annotations

import logging
from typing import Optional

from supabase import Client

from src.app.domain.errors import RepositoryError
from src.app.domain.models import ClientPlatform, ImportKind, ImportLogEntry, ImportStatus
from src.app.infra.db.base import ImportLogRepository
from src.app.infra.db.supabase_common import (
    NETWORK_ERRORS,
    create_supabase_client,
    is_unique_violation,
    parse_datetime,
    safe_int,
    safe_str,
)

logger = logging.getLogger(__name__)


def _row_to_entry(row: dict) -> ImportLogEntry:
    return ImportLogEntry(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        import_type=ImportKind(str(row["import_type"])),
        source=str(row.get("source") or ""),
        status=ImportStatus(str(row["status"])),
        platform=ClientPlatform.from_header(row.get("platform")),
        recipe_id=safe_str(row.get("recipe_id")),
        recipe_name=safe_str(row.get("recipe_name")),
        tokens_used=safe_int(row.get("tokens_used")),
        models_used=list(row.get("models_used") or []),
        input_tokens=safe_int(row.get("input_tokens")),
        output_tokens=safe_int(row.get("output_tokens")),
        error_message=safe_str(row.get("error_message")),
        error_code=safe_str(row.get("error_code")),
        duration_ms=safe_int(row.get("duration_ms")) if row.get("duration_ms") is not None else None,
        created_at=parse_datetime(row.get("created_at")),
    )


class SupabaseImportLogRepository(ImportLogRepository):
    TABLE_NAME = "import_logs"

    def __init__(self, client: Client | None = None):
        self._client = client or create_supabase_client()

    def create(self, entry: ImportLogEntry) -> bool:
        data = {
            "id": entry.id,
            "user_id": entry.user_id,
            "import_type": entry.import_type.value,
            "source": entry.source,
            "status": ImportStatus.PENDING.value,
            "platform": entry.platform.value,
            "tokens_used": 0,
        }
        try:
            self._client.table(self.TABLE_NAME).insert(data).execute()
        except NETWORK_ERRORS as error:
            if is_unique_violation(error):
                return False
            logger.error("import_log.create_failed id=%s error=%s", entry.id, error)
            raise RepositoryError("create_import_log", str(error)) from error
        return True

    def complete(self, entry: ImportLogEntry) -> bool:
        data = {
            "status": entry.status.value,
            "recipe_id": entry.recipe_id,
            "recipe_name": entry.recipe_name,
            "tokens_used": entry.tokens_used,
            "models_used": entry.models_used,
            "input_tokens": entry.input_tokens,
            "output_tokens": entry.output_tokens,
            "error_message": entry.error_message,
            "error_code": entry.error_code,
            "duration_ms": entry.duration_ms,
        }
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .update(data)
                .eq("id", entry.id)
                .eq("status", ImportStatus.PENDING.value)
                .execute()
            )
        except NETWORK_ERRORS as error:
            logger.error("import_log.complete_failed id=%s error=%s", entry.id, error)
            raise RepositoryError("complete_import_log", str(error)) from error
        return bool(result.data)

    def get(self, import_id: str, user_id: str) -> Optional[ImportLogEntry]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("id", import_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("get_import_log", str(error)) from error

        rows = result.data or []
        return _row_to_entry(rows[0]) if rows else None
