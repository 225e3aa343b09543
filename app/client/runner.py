"""Attach asyncio timers to the rotation controller."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, suppress

import httpx

from ..config import Settings
from ..database import Database
from .controller import RotationController
from .poller import ProxyStatusClient
from .store import DatabaseKeyValueStore, RosterStore
from .viewport import LoggingViewport

logger = logging.getLogger(__name__)

PROGRESS_STEP_SECONDS = 0.5


class RotationRunner:
    """Runs the advance, countdown and polling timers on the event loop.

    Hiding the viewer cancels the advance and countdown timers but leaves the
    scheduler's logical state alone; showing it again starts a fresh interval
    rather than catching up on missed ticks. Polling continues while hidden.
    """

    def __init__(
        self,
        controller: RotationController,
        *,
        poll_interval_seconds: float = 60,
        progress_step_seconds: float = PROGRESS_STEP_SECONDS,
    ):
        self._controller = controller
        self._scheduler = controller.scheduler
        self._scheduler.on_timer_reset = self._restart_timers
        self._poll_interval = poll_interval_seconds
        self._progress_step = progress_step_seconds
        self._visible = True
        self._advance_task: asyncio.Task[None] | None = None
        self._progress_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def timers_running(self) -> bool:
        return self._advance_task is not None and not self._advance_task.done()

    async def start(self) -> None:
        await self._controller.start()
        self._restart_timers()
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self._cancel_timers()
        if self._poll_task is not None:
            self._poll_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        if visible:
            logger.debug("Viewer visible again, restarting rotation timers")
        else:
            logger.debug("Viewer hidden, suspending rotation timers")
        self._restart_timers()

    def _restart_timers(self) -> None:
        self._cancel_timers()
        if not (self._scheduler.is_playing and self._visible):
            return
        self._scheduler.reset_countdown()
        self._advance_task = asyncio.create_task(self._advance_loop())
        self._progress_task = asyncio.create_task(self._progress_loop())

    def _cancel_timers(self) -> None:
        for task in (self._advance_task, self._progress_task):
            if task is not None and not task.done():
                task.cancel()
        self._advance_task = None
        self._progress_task = None

    async def _advance_loop(self) -> None:
        while True:
            await asyncio.sleep(self._scheduler.interval_seconds)
            self._scheduler.tick()

    async def _progress_loop(self) -> None:
        while True:
            await asyncio.sleep(self._progress_step)
            self._scheduler.advance_countdown(self._progress_step)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self._controller.refresh_status()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Scheduled status poll failed: %s", exc)


async def run_viewer(settings: Settings) -> None:
    """Run the headless rotation viewer until cancelled."""

    async with AsyncExitStack() as exit_stack:
        http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.status_proxy_url),
                timeout=httpx.Timeout(settings.request_timeout_seconds, connect=5.0),
            )
        )
        database = Database(settings.database_url)
        await database.create_all()
        exit_stack.push_async_callback(database.dispose)

        store = RosterStore(
            DatabaseKeyValueStore(database.session_factory),
            default_roster=settings.default_roster,
            default_category=settings.default_category,
        )
        controller = RotationController(
            store,
            ProxyStatusClient(http_client),
            LoggingViewport(),
            interval_seconds=settings.rotation_interval_seconds,
            live_only=settings.live_only,
            muted=settings.muted,
            parent_host=settings.parent_host,
        )
        runner = RotationRunner(
            controller, poll_interval_seconds=settings.poll_interval_seconds
        )
        exit_stack.push_async_callback(runner.stop)
        await runner.start()
        await asyncio.Event().wait()
