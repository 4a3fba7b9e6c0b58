# src/app/services/rate_limiter.py
"""
Rolling-window limit on imports, counted from the token journal.
Fails open: a journal read error never blocks an import.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.app.domain.errors import RepositoryError
from src.app.domain.models import IMPORT_REASONS, RateLimitStatus
from src.app.infra.db.base import LedgerRepository

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 150
DEFAULT_WINDOW_HOURS = 24


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """
    Rolling-window import limit derived from import debits in the token journal.

    A failed count lets the import through.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        limit: int = DEFAULT_LIMIT,
        window_hours: int = DEFAULT_WINDOW_HOURS,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self._repo = repository
        self.limit = limit
        self.window = timedelta(hours=window_hours)
        self._clock = clock

    def check(self, user_id: str) -> RateLimitStatus:
        now = self._clock()
        try:
            used = self._repo.count_debits_since(user_id, IMPORT_REASONS, now - self.window)
        except RepositoryError as error:
            logger.error("rate_limit.check_failed user=%s error=%s (allowing)", user_id, error)
            return RateLimitStatus(allowed=True, remaining=self.limit, reset_at=now, used=0, limit=self.limit)

        status = RateLimitStatus(
            allowed=used < self.limit,
            remaining=max(0, self.limit - used),
            reset_at=now + self.window,
            used=used,
            limit=self.limit,
        )
        if not status.allowed:
            logger.warning("rate_limit.exceeded user=%s used=%d limit=%d", user_id, used, self.limit)
        return status
