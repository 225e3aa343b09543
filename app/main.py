"""Entry point for the FastAPI-powered Twitch status proxy."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import settings
from .errors import (
    AuthFailure,
    BadRequest,
    ConfigError,
    CredentialRejected,
    NetworkFailure,
    UpstreamError,
)
from .models import snapshot_to_payload
from .services.token_cache import AppTokenProvider, CredentialCache
from .services.twitch import TwitchStatusClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CREDENTIALS_MISSING = (
    "Twitch credentials not configured. Set TWITCH_CLIENT_ID and "
    "TWITCH_CLIENT_SECRET in the environment."
)

app: FastAPI


class StatusCORSMiddleware(CORSMiddleware):
    """CORS middleware whose preflight replies carry an empty body."""

    def preflight_response(self, request_headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=response.status_code, headers=headers)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(settings.request_timeout_seconds, connect=5.0)
    auth_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.twitch_auth_url), timeout=timeout)
    )
    api_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.twitch_api_url), timeout=timeout)
    )

    # One credential cache per process, shared by every request.
    token_provider = AppTokenProvider(
        auth_client,
        fastapi_app.state.credential_cache,
        cache_seconds=settings.token_cache_seconds,
        refresh_margin_seconds=settings.token_refresh_margin_seconds,
    )
    fastapi_app.state.status_client = TwitchStatusClient(
        settings, api_client, token_provider
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Credential-caching Twitch live status proxy",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        StatusCORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    fastapi_app.state.credential_cache = CredentialCache()

    register_routes(fastapi_app)
    return fastapi_app


def get_status_client(fastapi_app: FastAPI) -> TwitchStatusClient:
    client = getattr(fastapi_app.state, "status_client", None)
    if not isinstance(client, TwitchStatusClient):
        raise RuntimeError("Status client not initialised")
    return client


def parse_streamers(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.options("/status")
    async def status_preflight() -> Response:
        return Response(status_code=200)

    @fastapi_app.get("/status")
    async def status(request: Request) -> JSONResponse:
        if not settings.has_twitch_credentials:
            return JSONResponse({"error": CREDENTIALS_MISSING}, status_code=500)

        streamers = parse_streamers(request.query_params.get("streamers"))
        if not streamers:
            return JSONResponse({"error": "Missing streamers parameter"}, status_code=400)

        service = get_status_client(fastapi_app)
        try:
            snapshot = await service.fetch_status(streamers)
        except BadRequest as exc:
            return JSONResponse({"error": exc.message}, status_code=400)
        except ConfigError as exc:
            return JSONResponse({"error": exc.message}, status_code=500)
        except CredentialRejected as exc:
            return _upstream_error(exc.status_code or 401, exc.details)
        except AuthFailure as exc:
            logger.error("Twitch token exchange failed: %s", exc)
            return JSONResponse(
                {
                    "error": "Failed to get access token",
                    "status": exc.status_code,
                    "details": exc.details,
                },
                status_code=502,
            )
        except UpstreamError as exc:
            return _upstream_error(exc.status_code, exc.details)
        except NetworkFailure as exc:
            logger.error("Twitch API unreachable: %s", exc.details)
            return JSONResponse(
                {"error": "Twitch API unreachable", "details": exc.details},
                status_code=502,
            )
        return JSONResponse(snapshot_to_payload(snapshot))


def _upstream_error(status_code: int, details: str | None) -> JSONResponse:
    return JSONResponse(
        {"error": "Twitch API error", "status": status_code, "details": details},
        status_code=status_code,
    )


app = create_app()
