"""
Identity provider interface.

Providers hand out short-lived bearer tokens used to authorize one
stream-open call each.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TokenInfo:
    """Bearer token and its absolute expiry (unix seconds, 0 = never)."""
    token: str
    expires_at: int = 0

    def expires_within(self, seconds: float, now: Optional[float] = None) -> bool:
        if self.expires_at == 0:
            return False
        now = time.time() if now is None else now
        return self.expires_at - now <= seconds


class IdentityProvider(ABC):
    """Abstract identity provider."""

    @abstractmethod
    async def get_token(self) -> TokenInfo:
        """Get a valid bearer token.

        Raises:
            AuthError: If the token cannot be obtained
        """
        ...

    async def close(self) -> None:
        """Release any underlying resources."""


class StaticTokenProvider(IdentityProvider):
    """Provider returning a pre-issued token."""

    def __init__(self, token: str):
        self._token = TokenInfo(token=token)

    async def get_token(self) -> TokenInfo:
        return self._token
