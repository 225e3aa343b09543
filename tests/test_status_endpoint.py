"""Tests for the ``/status`` proxy endpoint."""

from __future__ import annotations

from contextlib import contextmanager

import httpx
from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app
from app.services.token_cache import AppTokenProvider
from app.services.twitch import TwitchStatusClient


class FakeTwitch:
    def __init__(self) -> None:
        self.live = {"alpha": {"user_login": "alpha", "title": "Hi", "game_name": "Chess", "viewer_count": 7}}
        self.stream_status = 200
        self.token_status = 200
        self.token_requests = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            self.token_requests += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="bad secret")
            return httpx.Response(200, json={"access_token": f"token-{self.token_requests}"})
        if self.stream_status != 200:
            return httpx.Response(self.stream_status, text="nope")
        logins = {value.lower() for value in request.url.params.get_list("user_login")}
        return httpx.Response(
            200, json={"data": [entry for login, entry in self.live.items() if login in logins]}
        )


@contextmanager
def _test_client(monkeypatch, fake: FakeTwitch, *, configured: bool = True):
    monkeypatch.setattr(settings, "twitch_client_id", "client" if configured else None)
    monkeypatch.setattr(settings, "twitch_client_secret", "secret" if configured else None)

    app = create_app()
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(fake.handler), base_url="https://api.example.com"
    )
    with TestClient(app) as client:
        provider = AppTokenProvider(
            http_client, app.state.credential_cache, cache_seconds=3_600
        )
        app.state.status_client = TwitchStatusClient(settings, http_client, provider)
        yield client


def test_status_fills_offline_channels_with_caller_casing(monkeypatch) -> None:
    fake = FakeTwitch()
    with _test_client(monkeypatch, fake) as client:
        response = client.get("/status", params={"streamers": "Alpha,Beta"})

    assert response.status_code == 200
    assert response.json() == {
        "Alpha": {"live": True, "title": "Hi", "category": "Chess", "viewerCount": 7},
        "Beta": {"live": False},
    }


def test_missing_streamers_parameter(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch()) as client:
        response = client.get("/status")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing streamers parameter"}


def test_missing_credentials_returns_500(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch(), configured=False) as client:
        response = client.get("/status", params={"streamers": "alpha"})

    assert response.status_code == 500
    assert "not configured" in response.json()["error"]


def test_upstream_error_is_propagated(monkeypatch) -> None:
    fake = FakeTwitch()
    fake.stream_status = 503
    with _test_client(monkeypatch, fake) as client:
        response = client.get("/status", params={"streamers": "alpha"})

    assert response.status_code == 503
    assert response.json() == {"error": "Twitch API error", "status": 503, "details": "nope"}


def test_unauthorized_clears_cache_and_next_request_refreshes(monkeypatch) -> None:
    fake = FakeTwitch()
    with _test_client(monkeypatch, fake) as client:
        assert client.get("/status", params={"streamers": "alpha"}).status_code == 200
        assert client.get("/status", params={"streamers": "alpha"}).status_code == 200
        assert fake.token_requests == 1

        fake.stream_status = 401
        rejected = client.get("/status", params={"streamers": "alpha"})
        assert rejected.status_code == 401
        assert rejected.json()["status"] == 401
        assert client.app.state.credential_cache.get() is None

        fake.stream_status = 200
        assert client.get("/status", params={"streamers": "alpha"}).status_code == 200

    assert fake.token_requests == 2


def test_token_exchange_failure_returns_bad_gateway(monkeypatch) -> None:
    fake = FakeTwitch()
    fake.token_status = 403
    with _test_client(monkeypatch, fake) as client:
        response = client.get("/status", params={"streamers": "alpha"})

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to get access token"
    assert response.json()["status"] == 403


def test_options_preflight_returns_empty_body(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch()) as client:
        response = client.options("/status")

    assert response.status_code == 200
    assert response.content == b""


def test_browser_preflight_returns_empty_body_with_cors_headers(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch()) as client:
        response = client.options(
            "/status",
            headers={
                "Origin": "https://viewer.example",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "GET" in response.headers["access-control-allow-methods"]


def test_cors_headers_are_present(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch()) as client:
        response = client.get(
            "/status",
            params={"streamers": "alpha"},
            headers={"Origin": "https://viewer.example"},
        )

    assert response.headers["access-control-allow-origin"] == "*"


def test_healthcheck(monkeypatch) -> None:
    with _test_client(monkeypatch, FakeTwitch()) as client:
        assert client.get("/healthz").json() == {"status": "ok"}
