"""Viewport contract consumed by the rotation controller."""

from __future__ import annotations

import logging
from collections import deque
from typing import Protocol
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

PLAYER_URL = "https://player.twitch.tv/"
HISTORY_LIMIT = 50


class Viewport(Protocol):
    def show(self, channel: str, *, muted: bool, parent_host: str) -> None: ...


def build_embed_url(channel: str, *, muted: bool, parent_host: str) -> str:
    query = urlencode(
        {
            "channel": channel,
            "parent": parent_host,
            "muted": "true" if muted else "false",
            "autoplay": "true",
        }
    )
    return f"{PLAYER_URL}?{query}"


class LoggingViewport:
    """Headless viewport that logs the embed it would load.

    Only the most recent ``history_limit`` URLs are kept.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.history: deque[str] = deque(maxlen=history_limit)

    @property
    def current_url(self) -> str | None:
        return self.history[-1] if self.history else None

    def show(self, channel: str, *, muted: bool, parent_host: str) -> None:
        url = build_embed_url(channel, muted=muted, parent_host=parent_host)
        self.history.append(url)
        logger.info("Now showing %s (%s)", channel, url)
