from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from src.app.domain.errors import RepositoryError
from src.app.domain.models import IMPORT_REASONS, TokenTransaction, TransactionReason
from src.app.infra.db.base import LedgerRepository
from src.app.services.rate_limiter import RateLimiter

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class CountingRepositoryStub(LedgerRepository):
    def __init__(self, count: int = 0, fail: bool = False) -> None:
        self.count = count
        self.fail = fail
        self.calls: list[tuple[str, tuple, datetime]] = []

    def count_debits_since(self, user_id: str, reasons: Iterable[TransactionReason], since: datetime) -> int:
        self.calls.append((user_id, tuple(reasons), since))
        if self.fail:
            raise RepositoryError("count_debits", "timeout")
        return self.count

    def get_balance(self, user_id: str) -> Optional[int]:
        return None

    def apply_debit(self, user_id, amount, reason, related_recipe_id=None):
        return None

    def apply_credit(self, user_id, amount, reason, transaction_id=None):
        return None

    def find_transaction_by_external_id(self, transaction_id: str) -> Optional[TokenTransaction]:
        return None

    def list_transactions(self, user_id: str) -> list[TokenTransaction]:
        return []


def _limiter(repo: CountingRepositoryStub) -> RateLimiter:
    return RateLimiter(repo, limit=150, window_hours=24, clock=lambda: NOW)


class TestRateLimiter:
    def test_under_limit_is_allowed(self) -> None:
        status = _limiter(CountingRepositoryStub(count=149)).check("u1")

        assert status.allowed is True
        assert status.remaining == 1
        assert status.reset_at == NOW + timedelta(hours=24)

    def test_at_limit_is_blocked(self) -> None:
        status = _limiter(CountingRepositoryStub(count=150)).check("u1")

        assert status.allowed is False
        assert status.remaining == 0

    def test_counts_import_debits_in_window(self) -> None:
        repo = CountingRepositoryStub(count=3)

        _limiter(repo).check("u1")

        user_id, reasons, since = repo.calls[0]
        assert user_id == "u1"
        assert reasons == IMPORT_REASONS
        assert TransactionReason.PURCHASE not in reasons
        assert since == NOW - timedelta(hours=24)

    def test_count_failure_allows_import(self) -> None:
        status = _limiter(CountingRepositoryStub(fail=True)).check("u1")

        assert status.allowed is True
        assert status.remaining == 150
