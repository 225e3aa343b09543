"""Live status lookups against the Twitch Helix API."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Sequence

import httpx

from ..config import Settings
from ..errors import (
    BadRequest,
    ConfigError,
    CredentialRejected,
    NetworkFailure,
    UpstreamError,
)
from ..models import StatusRecord, StatusSnapshot
from .token_cache import AppTokenProvider

logger = logging.getLogger(__name__)

# Helix caps ``user_login`` filters per request.
MAX_LOGINS_PER_REQUEST = 100


def _chunk(values: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class TwitchStatusClient:
    """Fetches live status for a batch of channels and normalises the result."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        token_provider: AppTokenProvider,
    ):
        self._settings = settings
        self._client = http_client
        self._tokens = token_provider

    async def fetch_status(self, identifiers: Sequence[str]) -> StatusSnapshot:
        """Return a snapshot covering every requested identifier.

        Identifiers are matched case-insensitively against Helix results, and
        the snapshot keys keep the caller's casing. Channels missing from the
        live list are reported offline. A 401 drops the cached token and is
        raised as :class:`CredentialRejected`; the next call performs a fresh exchange.
        """

        if not identifiers:
            raise BadRequest("Missing streamers parameter")

        client_id = self._settings.twitch_client_id
        client_secret = self._settings.twitch_client_secret
        if not (client_id and client_secret):
            raise ConfigError(
                "Twitch credentials not configured. Set TWITCH_CLIENT_ID and "
                "TWITCH_CLIENT_SECRET in the environment."
            )

        token = await self._tokens.get_token(client_id, client_secret)
        headers = {"Client-ID": client_id, "Authorization": f"Bearer {token}"}

        live: dict[str, StatusRecord] = {}
        for batch in _chunk(list(identifiers), MAX_LOGINS_PER_REQUEST):
            for stream in await self._fetch_batch(batch, headers):
                login = stream.get("user_login")
                if isinstance(login, str) and login:
                    live[login.casefold()] = StatusRecord.from_stream(stream)

        snapshot: StatusSnapshot = {}
        for identifier in identifiers:
            snapshot[identifier] = live.get(identifier.casefold(), StatusRecord.offline())
        logger.info(
            "Fetched Twitch status for %s channels (%s live)",
            len(snapshot),
            sum(1 for record in snapshot.values() if record.live),
        )
        return snapshot

    async def _fetch_batch(
        self, batch: Sequence[str], headers: dict[str, str]
    ) -> list[dict[str, Any]]:
        params = [("user_login", login) for login in batch]
        params.append(("first", str(MAX_LOGINS_PER_REQUEST)))
        try:
            response = await self._client.get("/streams", params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Twitch status request failed: %s", exc)
            raise NetworkFailure("Unable to reach the Twitch API", details=str(exc)) from exc

        if response.status_code == 401:
            logger.warning("Twitch rejected the app access token: %s", response.text)
            self._tokens.invalidate()
            raise CredentialRejected(
                "Twitch API rejected the access token",
                status_code=response.status_code,
                details=response.text,
            )
        if response.status_code >= 400:
            logger.error("Twitch API error: %s %s", response.status_code, response.text)
            raise UpstreamError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(response.status_code, "Response was not valid JSON") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise UpstreamError(response.status_code, "Unexpected response structure")
        return [entry for entry in data if isinstance(entry, dict)]
