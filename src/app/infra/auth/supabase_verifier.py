from __future__ import annotations

import logging
from typing import Optional

from supabase import AuthError, Client

from src.app.domain.errors import UnauthenticatedError
from src.app.infra.auth.base import Identity, IdentityVerifier
from src.app.infra.db.supabase_common import NETWORK_ERRORS

logger = logging.getLogger(__name__)


class SupabaseIdentityVerifier(IdentityVerifier):
    """Validates Supabase access tokens against GoTrue."""

    def __init__(self, client: Client):
        self._client = client

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise UnauthenticatedError("Missing token")

        try:
            res = self._client.auth.get_user(token)
        except (AuthError, *NETWORK_ERRORS) as error:
            logger.info("auth.rejected reason=%s", error)
            raise UnauthenticatedError("Invalid/expired token") from error

        user = res.user if res else None
        if not user:
            raise UnauthenticatedError("Invalid token")

        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return Identity(id=str(user.id), email=user.email, name=name)
