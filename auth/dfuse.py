"""dfuse API key to bearer token exchange."""

import asyncio
import logging
import time
from typing import Optional

import httpx

from config.settings import settings
from core.errors import AuthError
from .provider import IdentityProvider, TokenInfo

logger = logging.getLogger(__name__)


class DfuseAuthClient(IdentityProvider):
    """
    Issues dfuse API tokens from an API key.

    The issued token is cached and reused until it comes within
    ``refresh_margin`` seconds of its expiry.
    """

    def __init__(
        self,
        api_key: str,
        auth_url: Optional[str] = None,
        refresh_margin: Optional[float] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise AuthError("a dfuse API key is required")

        self.api_key = api_key
        self.auth_url = auth_url or settings.dfuse_auth_url
        self.refresh_margin = refresh_margin if refresh_margin is not None else settings.auth_refresh_margin_seconds
        self._timeout = timeout or settings.auth_timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None
        self._token: Optional[TokenInfo] = None
        self._lock = asyncio.Lock()

        # Stats
        self._issued_count = 0

    async def get_token(self) -> TokenInfo:
        """Return the cached token, issuing a new one when close to expiry."""
        async with self._lock:
            if self._token is not None and not self._token.expires_within(self.refresh_margin):
                return self._token

            self._token = await self._issue()
            return self._token

    async def _issue(self) -> TokenInfo:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await self._http_client.post(
                self.auth_url,
                json={"api_key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise AuthError(
                f"unable to retrieve dfuse API token: HTTP {e.response.status_code} from {self.auth_url}"
            ) from e
        except httpx.HTTPError as e:
            raise AuthError(f"unable to retrieve dfuse API token: {e}") from e
        except ValueError as e:
            raise AuthError(f"unable to retrieve dfuse API token: invalid JSON response: {e}") from e

        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise AuthError("unable to retrieve dfuse API token: response has no token")

        try:
            expires_at = int(payload.get("expires_at") or 0)
        except (TypeError, ValueError) as e:
            raise AuthError(f"unable to retrieve dfuse API token: invalid expires_at: {e}") from e

        self._issued_count += 1
        remaining = expires_at - time.time() if expires_at else 0
        logger.info(f"Issued dfuse API token (valid for {remaining:.0f}s)")

        return TokenInfo(token=token, expires_at=expires_at)

    async def close(self):
        """Close the HTTP client if we created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None

    def get_stats(self) -> dict:
        """Get token issuing statistics."""
        return {
            "issued_count": self._issued_count,
            "expires_at": self._token.expires_at if self._token else None,
        }
