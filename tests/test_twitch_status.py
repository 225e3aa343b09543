"""Tests for the Twitch status adapter."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.errors import AuthFailure, BadRequest, ConfigError, NetworkFailure, UpstreamError
from app.models import StatusRecord
from app.services.token_cache import AppTokenProvider, CredentialCache
from app.services.twitch import TwitchStatusClient


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base = {
        "_env_file": None,
        "TWITCH_CLIENT_ID": "client-id",
        "TWITCH_CLIENT_SECRET": "client-secret",
    }
    base.update(overrides)
    return Settings(**base)  # type: ignore[arg-type]


class FakeTwitch:
    """Serves both the token endpoint and Helix ``/streams``."""

    def __init__(self, streams: list[dict[str, Any]] | None = None):
        self.streams = streams or []
        self.token_requests = 0
        self.stream_requests: list[httpx.Request] = []
        self.stream_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            self.token_requests += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.token_requests}", "expires_in": 5_184_000},
            )
        self.stream_requests.append(request)
        if self.stream_status != 200:
            return httpx.Response(self.stream_status, text="upstream said no")
        logins = {value.lower() for value in request.url.params.get_list("user_login")}
        data = [stream for stream in self.streams if stream["user_login"] in logins]
        return httpx.Response(200, json={"data": data, "pagination": {}})


def _client(fake: FakeTwitch, http_client: httpx.AsyncClient, settings: Settings | None = None):
    provider = AppTokenProvider(http_client, CredentialCache(), cache_seconds=3_600)
    return TwitchStatusClient(settings or build_settings(), http_client, provider)


@pytest.mark.anyio("asyncio")
async def test_absent_channels_are_reported_offline() -> None:
    fake = FakeTwitch(
        [
            {
                "user_login": "alpha",
                "title": "Speedrun",
                "game_name": "Chess",
                "viewer_count": 1234,
            }
        ]
    )
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        snapshot = await _client(fake, http_client).fetch_status(["Alpha", "Beta"])

    assert list(snapshot) == ["Alpha", "Beta"]
    assert snapshot["Alpha"] == StatusRecord(
        live=True, title="Speedrun", category="Chess", viewer_count=1234
    )
    assert snapshot["Beta"].to_payload() == {"live": False}
    request = fake.stream_requests[0]
    assert request.url.path == "/helix/streams"
    assert request.url.params.get_list("user_login") == ["Alpha", "Beta"]
    assert request.headers["Client-ID"] == "client-id"
    assert request.headers["Authorization"] == "Bearer token-1"


@pytest.mark.anyio("asyncio")
async def test_missing_fields_default_to_empty_values() -> None:
    fake = FakeTwitch([{"user_login": "alpha"}])
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        snapshot = await _client(fake, http_client).fetch_status(["alpha"])

    assert snapshot["alpha"].to_payload() == {
        "live": True,
        "title": "",
        "category": "",
        "viewerCount": 0,
    }


@pytest.mark.anyio("asyncio")
async def test_large_rosters_are_queried_in_batches() -> None:
    names = [f"channel{index}" for index in range(150)]
    fake = FakeTwitch([{"user_login": "channel120", "title": "hi"}])
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        snapshot = await _client(fake, http_client).fetch_status(names)

    assert len(fake.stream_requests) == 2
    assert len(fake.stream_requests[0].url.params.get_list("user_login")) == 100
    assert len(snapshot) == 150
    assert [name for name, record in snapshot.items() if record.live] == ["channel120"]


@pytest.mark.anyio("asyncio")
async def test_empty_identifier_list_is_rejected() -> None:
    fake = FakeTwitch()
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        with pytest.raises(BadRequest):
            await _client(fake, http_client).fetch_status([])

    assert fake.token_requests == 0


@pytest.mark.anyio("asyncio")
async def test_missing_credentials_raise_config_error() -> None:
    fake = FakeTwitch()
    settings = build_settings(TWITCH_CLIENT_SECRET=None)
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        with pytest.raises(ConfigError):
            await _client(fake, http_client, settings).fetch_status(["alpha"])


@pytest.mark.anyio("asyncio")
async def test_unauthorized_clears_token_and_next_call_refreshes() -> None:
    fake = FakeTwitch([{"user_login": "alpha"}])
    fake.stream_status = 401
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        client = _client(fake, http_client)
        with pytest.raises(AuthFailure) as excinfo:
            await client.fetch_status(["alpha"])
        assert excinfo.value.status_code == 401
        assert fake.token_requests == 1
        assert len(fake.stream_requests) == 1

        fake.stream_status = 200
        snapshot = await client.fetch_status(["alpha"])

    assert fake.token_requests == 2
    assert snapshot["alpha"].live is True
    assert fake.stream_requests[-1].headers["Authorization"] == "Bearer token-2"


@pytest.mark.anyio("asyncio")
async def test_upstream_error_is_not_treated_as_offline() -> None:
    fake = FakeTwitch()
    fake.stream_status = 503
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com/helix"
    ) as http_client:
        client = _client(fake, http_client)
        with pytest.raises(UpstreamError) as excinfo:
            await client.fetch_status(["alpha"])

    assert excinfo.value.status_code == 503
    assert excinfo.value.details == "upstream said no"
    # The cached token survives non-auth failures.
    assert fake.token_requests == 1


@pytest.mark.anyio("asyncio")
async def test_transport_failure_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            return httpx.Response(200, json={"access_token": "token"})
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.example.com/helix"
    ) as http_client:
        provider = AppTokenProvider(http_client, CredentialCache(), cache_seconds=3_600)
        client = TwitchStatusClient(build_settings(), http_client, provider)
        with pytest.raises(NetworkFailure):
            await client.fetch_status(["alpha"])
