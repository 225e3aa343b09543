"""HTTP client for the status proxy."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import httpx

from ..errors import (
    AuthFailure,
    BadRequest,
    ChannelCycleError,
    ConfigError,
    NetworkFailure,
    UpstreamError,
)
from ..models import StatusSnapshot, snapshot_from_payload

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    async def fetch_status(self, identifiers: Sequence[str]) -> StatusSnapshot: ...


class ProxyStatusClient:
    """Calls ``GET /status`` on the proxy and maps failures to error types."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    async def fetch_status(self, identifiers: Sequence[str]) -> StatusSnapshot:
        if not identifiers:
            raise BadRequest("Missing streamers parameter")
        try:
            response = await self._client.get(
                "/status", params={"streamers": ",".join(identifiers)}
            )
        except httpx.HTTPError as exc:
            raise NetworkFailure("Unable to reach the status proxy", details=str(exc)) from exc

        if response.status_code >= 400:
            raise self._error_from_response(response)

        try:
            return snapshot_from_payload(response.json())
        except ValueError as exc:
            raise UpstreamError(response.status_code, "Invalid status payload") from exc

    @staticmethod
    def _error_from_response(response: httpx.Response) -> ChannelCycleError:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = str(data.get("error") or response.reason_phrase or "Status proxy error")
        details = data.get("details")
        details = str(details) if details is not None else None
        status = response.status_code

        if status == 400:
            return BadRequest(message, details=details)
        if status == 401:
            return AuthFailure(message, status_code=status, details=details)
        if status == 500 and "not configured" in message:
            logger.error(
                "Twitch credentials are not set on the status proxy; "
                "configure TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET"
            )
            return ConfigError(message, details=details)
        return UpstreamError(status, details or message)
