"""Cached application access tokens for the Twitch API."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from ..errors import AuthFailure, NetworkFailure
from ..models import Credential

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CredentialCache:
    """Holds at most one credential for the lifetime of the process.

    Concurrent refreshes may both call :meth:`set`; the last writer wins and
    the stored value is always a complete credential.
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._credential: Credential | None = None

    def now(self) -> float:
        return self._clock()

    def get(self) -> Credential | None:
        """Return the cached credential if it has not expired."""

        credential = self._credential
        if credential is None:
            return None
        if not credential.is_valid(self._clock()):
            self._credential = None
            return None
        return credential

    def set(self, credential: Credential) -> None:
        self._credential = credential

    def invalidate(self) -> None:
        if self._credential is not None:
            logger.info("Discarding cached Twitch app access token")
        self._credential = None


class AppTokenProvider:
    """Exchanges client credentials for app tokens and caches the result."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: CredentialCache,
        *,
        cache_seconds: int,
        refresh_margin_seconds: int = 60,
        token_path: str = "/oauth2/token",
    ):
        self._client = http_client
        self._cache = cache
        self._cache_seconds = cache_seconds
        self._refresh_margin = refresh_margin_seconds
        self._token_path = token_path

    @property
    def cache(self) -> CredentialCache:
        return self._cache

    async def get_token(self, client_id: str, client_secret: str) -> str:
        """Return a usable app access token, exchanging credentials if needed."""

        cached = self._cache.get()
        if cached is not None:
            return cached.token

        try:
            response = await self._client.post(
                self._token_path,
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.HTTPError as exc:
            raise NetworkFailure(
                "Unable to reach the Twitch token endpoint", details=str(exc)
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "Twitch token exchange failed with %s: %s",
                response.status_code,
                response.text,
            )
            raise AuthFailure(
                f"Failed to get access token: {response.status_code}",
                status_code=response.status_code,
                details=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthFailure(
                "Token response was not valid JSON",
                status_code=response.status_code,
                details=response.text,
            ) from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthFailure(
                "Token response did not include an access token",
                status_code=response.status_code,
                details=response.text,
            )

        ttl = self._cache_seconds
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            ttl = min(ttl, max(int(expires_in) - self._refresh_margin, 0))

        self._cache.set(Credential(token=str(token), expires_at=self._cache.now() + ttl))
        logger.info("Obtained new Twitch app access token (cached for %ss)", ttl)
        return str(token)

    def invalidate(self) -> None:
        self._cache.invalidate()
