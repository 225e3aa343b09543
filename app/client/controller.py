"""Coordinates the roster, status polling, reconciliation and rotation."""

from __future__ import annotations

import logging

from ..errors import ChannelCycleError
from ..models import StatusSnapshot
from .poller import StatusSource
from .reconciler import Reconciliation, reconcile, select_active
from .scheduler import RotationScheduler
from .store import ActionResult, RosterStore
from .viewport import Viewport

logger = logging.getLogger(__name__)

NO_LIVE_CHANNELS_NOTICE = (
    "No channels are currently live in the selected category; "
    "live-only mode has been turned off"
)


class RotationController:
    """Owns the viewer state and exposes the user-facing actions.

    Each status fetch is tagged with a generation number. Roster edits and
    newer fetches bump the generation, so a response that arrives after
    either is discarded instead of overwriting fresher state.
    """

    def __init__(
        self,
        store: RosterStore,
        source: StatusSource,
        viewport: Viewport,
        *,
        scheduler: RotationScheduler | None = None,
        interval_seconds: int = 30,
        live_only: bool = True,
        muted: bool = False,
        parent_host: str = "localhost",
    ):
        self.store = store
        self.scheduler = scheduler or RotationScheduler(interval_seconds)
        self.scheduler.on_display = self._render
        self.live_only = live_only
        self.muted = muted
        self.notice = ""
        self._source = source
        self._viewport = viewport
        self._parent_host = parent_host
        self._raw: StatusSnapshot = {}
        self._reconciliation = Reconciliation()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def raw_snapshot(self) -> StatusSnapshot:
        return dict(self._raw)

    @property
    def display_snapshot(self) -> StatusSnapshot:
        return dict(self._reconciliation.display)

    @property
    def active(self) -> tuple[str, ...]:
        return self.scheduler.active

    @property
    def current(self) -> str | None:
        return self.scheduler.current

    async def start(self) -> None:
        """Load persisted state, fetch the first snapshot and show a channel."""

        await self.store.load()
        if not await self.refresh_status():
            self._recompute()

    async def refresh_status(self) -> bool:
        """Poll once; return whether a new snapshot was applied."""

        self._generation += 1
        generation = self._generation
        roster = self.store.roster
        if not roster:
            self._recompute()
            return False

        try:
            raw = await self._source.fetch_status(roster)
        except ChannelCycleError as exc:
            logger.warning(
                "Status poll failed (%s): %s; keeping the previous channel list",
                exc.__class__.__name__,
                exc,
            )
            return False

        if generation != self._generation:
            logger.info(
                "Discarding stale status response (generation %s, current %s)",
                generation,
                self._generation,
            )
            return False

        self._raw = raw
        self._recompute()
        logger.info(
            "Stream status updated: %s channels live in filtered category",
            self._reconciliation.category_live,
        )
        return True

    def _recompute(self) -> ActionResult:
        roster = self.store.roster
        self._reconciliation = reconcile(
            roster,
            self._reconciliation.display,
            self._raw,
            self.store.category_filter,
        )
        selection = select_active(roster, self._reconciliation, self.live_only)
        result = ActionResult(True)
        if selection.fell_back:
            self.live_only = False
            self.notice = NO_LIVE_CHANNELS_NOTICE
            logger.info("No channels match the current filters")
            result = ActionResult(False, NO_LIVE_CHANNELS_NOTICE)
        elif self.live_only:
            self.notice = ""
        self.scheduler.replace_active(selection.channels)
        return result

    async def _after_roster_edit(self, result: ActionResult) -> ActionResult:
        if result.ok:
            self._recompute()
            await self.refresh_status()
        return result

    async def add_channel(self, name: str) -> ActionResult:
        return await self._after_roster_edit(await self.store.add(name))

    async def add_channels(self, text: str) -> ActionResult:
        return await self._after_roster_edit(await self.store.add_many(text))

    async def remove_channel(self, name: str) -> ActionResult:
        return await self._after_roster_edit(await self.store.remove(name))

    async def set_category(self, value: str) -> ActionResult:
        result = await self.store.set_category_filter(value)
        self._recompute()
        await self.refresh_status()
        return result

    async def clear_category(self) -> ActionResult:
        return await self.set_category("")

    def set_live_only(self, enabled: bool) -> ActionResult:
        self.live_only = enabled
        outcome = self._recompute()
        if not outcome.ok:
            return outcome
        self.notice = ""
        return ActionResult(True, "Live-only mode on" if enabled else "Showing all channels")

    def select_channel(self, name: str) -> ActionResult:
        """Jump to ``name``, leaving live-only mode if it is filtered out."""

        if self.scheduler.jump_to(name):
            return ActionResult(True)
        if name not in self.store:
            return ActionResult(False, f"{name} is not in the list")
        self.live_only = False
        self.scheduler.replace_active(self.store.roster)
        self.scheduler.jump_to(name)
        return ActionResult(True, "Live-only mode turned off to show this channel")

    def set_interval(self, value: object) -> ActionResult:
        try:
            seconds = int(str(value).strip())
        except (TypeError, ValueError):
            return ActionResult(False, "Interval must be a whole number of seconds")
        applied = self.scheduler.set_interval(seconds)
        return ActionResult(True, f"Rotating every {applied}s")

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        self.scheduler.reload()
        return self.muted

    def toggle_play(self) -> bool:
        self.scheduler.toggle()
        return self.scheduler.is_playing

    def next_channel(self) -> str | None:
        return self.scheduler.advance_manually(1)

    def previous_channel(self) -> str | None:
        return self.scheduler.advance_manually(-1)

    def live_count_label(self) -> str:
        total = self._reconciliation.total_live
        return f"{total} LIVE" if total else ""

    def category_count_label(self) -> str:
        category = self.store.category_filter
        count = self._reconciliation.category_live
        if category and count:
            return f'{count} in "{category}"'
        return ""

    def stream_info(self) -> str:
        current = self.scheduler.current
        if current is None:
            return ""
        record = self._reconciliation.display.get(current)
        if record is None:
            return ""
        return record.describe()

    def _render(self, channel: str) -> None:
        self._viewport.show(channel, muted=self.muted, parent_host=self._parent_host)
