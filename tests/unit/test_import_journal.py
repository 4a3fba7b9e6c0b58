from __future__ import annotations

import copy
import logging
from typing import Optional

import pytest

from src.app.domain.errors import ImportNotFoundError, InvalidInputError, RepositoryError
from src.app.domain.models import AIUsage, ClientPlatform, ImportKind, ImportLogEntry, ImportStatus
from src.app.infra.db.base import ImportLogRepository
from src.app.services.import_journal import ImportJournal


class ImportLogRepositoryStub(ImportLogRepository):
    def __init__(self) -> None:
        self.rows: dict[str, ImportLogEntry] = {}
        self.fail_complete = False

    def create(self, entry: ImportLogEntry) -> bool:
        if entry.id in self.rows:
            return False
        self.rows[entry.id] = copy.deepcopy(entry)
        return True

    def complete(self, entry: ImportLogEntry) -> bool:
        if self.fail_complete:
            raise RepositoryError("complete_import", "connection reset")
        row = self.rows.get(entry.id)
        if row is None or row.status is not ImportStatus.PENDING:
            return False
        self.rows[entry.id] = copy.deepcopy(entry)
        return True

    def get(self, import_id: str, user_id: str) -> Optional[ImportLogEntry]:
        row = self.rows.get(import_id)
        return row if row is not None and row.user_id == user_id else None


class TestImportJournalStart:
    def test_creates_pending_row(self) -> None:
        repo = ImportLogRepositoryStub()

        handle = ImportJournal(repo).start("imp-1", "u1", ImportKind.URL, "https://example.com", ClientPlatform.IOS)

        assert handle.id == "imp-1"
        row = repo.rows["imp-1"]
        assert row.status is ImportStatus.PENDING
        assert row.platform is ClientPlatform.IOS

    def test_duplicate_id_rejected(self) -> None:
        journal = ImportJournal(ImportLogRepositoryStub())
        journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")

        with pytest.raises(InvalidInputError):
            journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")

    def test_source_truncated(self) -> None:
        repo = ImportLogRepositoryStub()

        ImportJournal(repo, max_source_chars=10).start("imp-1", "u1", ImportKind.URL, "x" * 50)

        assert repo.rows["imp-1"].source == "x" * 10


class TestImportJournalClose:
    def test_success_records_usage(self) -> None:
        repo = ImportLogRepositoryStub()
        journal = ImportJournal(repo)
        handle = journal.start("imp-1", "u1", ImportKind.VIDEO, "https://youtu.be/abc")

        journal.succeed(handle, "r1", "Pancakes", 2, AIUsage(1200, 300), ["gemini-2.5-flash"])

        row = repo.rows["imp-1"]
        assert row.status is ImportStatus.SUCCESS
        assert row.recipe_id == "r1"
        assert row.tokens_used == 2
        assert row.input_tokens == 1200
        assert row.output_tokens == 300
        assert row.models_used == ["gemini-2.5-flash"]
        assert row.duration_ms is not None and row.duration_ms >= 0

    def test_failure_truncates_message(self) -> None:
        repo = ImportLogRepositoryStub()
        journal = ImportJournal(repo, max_error_chars=20)
        handle = journal.start("imp-1", "u1", ImportKind.IMAGE, "users/u1/imports/a.jpg")

        journal.fail(handle, "e" * 100, "no_readable_text")

        row = repo.rows["imp-1"]
        assert row.status is ImportStatus.FAILED
        assert row.error_code == "no_readable_text"
        assert len(row.error_message) == 20
        assert row.tokens_used == 0

    def test_row_is_closed_once(self) -> None:
        repo = ImportLogRepositoryStub()
        journal = ImportJournal(repo)
        handle = journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")
        journal.fail(handle, "boom", "fetch_failed")

        journal.succeed(handle, "r1", "Late", 1, AIUsage(), [])

        assert repo.rows["imp-1"].status is ImportStatus.FAILED

    def test_write_failure_is_logged_not_raised(self, caplog) -> None:
        repo = ImportLogRepositoryStub()
        journal = ImportJournal(repo)
        handle = journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")
        repo.fail_complete = True

        with caplog.at_level(logging.INFO, logger="import"):
            entry = journal.succeed(handle, "r1", "Soup", 1, AIUsage(), [])

        assert entry.status is ImportStatus.SUCCESS
        assert "import.close_failed" in caplog.text
        assert "status=success" in caplog.text


class TestImportJournalAudit:
    def test_unattributed_failure_logs_unknown_user(self, caplog) -> None:
        journal = ImportJournal(ImportLogRepositoryStub())

        with caplog.at_level(logging.ERROR, logger="import"):
            journal.log_unattributed_failure(ImportKind.URL, "https://example.com", "bad token", "unauthenticated")

        assert "user=unknown" in caplog.text
        assert "error_code=unauthenticated" in caplog.text


class TestImportJournalStatus:
    def test_owner_reads_status(self) -> None:
        journal = ImportJournal(ImportLogRepositoryStub())
        journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")

        assert journal.get_status("imp-1", "u1").status is ImportStatus.PENDING

    def test_other_user_gets_not_found(self) -> None:
        journal = ImportJournal(ImportLogRepositoryStub())
        journal.start("imp-1", "u1", ImportKind.URL, "https://example.com")

        with pytest.raises(ImportNotFoundError):
            journal.get_status("imp-1", "u2")
