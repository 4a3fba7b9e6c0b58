from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class Identity:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class IdentityVerifier(ABC):
    """Resolves a bearer credential to the identity that owns it."""

    @abstractmethod
    def verify(self, token: Optional[str]) -> Identity:
        """
        Raises:
            UnauthenticatedError: if the token is missing, invalid or expired
        """
        pass
