"""Timer-independent rotation state machine."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Sequence

from ..config import MAX_INTERVAL_SECONDS, MIN_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

DisplayCallback = Callable[[str], None]
TimerCallback = Callable[[], None]


class RotationState(str, Enum):
    """Logical playback states."""

    PLAYING = "playing"
    PAUSED = "paused"


def clamp_interval(seconds: float) -> int:
    return int(max(MIN_INTERVAL_SECONDS, min(MAX_INTERVAL_SECONDS, seconds)))


class RotationScheduler:
    """Advances a cursor through the active channels.

    The scheduler owns no timers. A runner calls :meth:`tick` once per
    interval and :meth:`advance_countdown` at a faster cadence, and listens
    to ``on_timer_reset`` to know when its pending advance must be
    rescheduled: pause, resume, manual navigation or a jump, a reload
    and an interval change.
    """

    def __init__(
        self,
        interval_seconds: float = 30,
        *,
        on_display: DisplayCallback | None = None,
        on_timer_reset: TimerCallback | None = None,
    ):
        self.state = RotationState.PLAYING
        self.interval_seconds = clamp_interval(interval_seconds)
        self.on_display = on_display
        self.on_timer_reset = on_timer_reset
        self._active: tuple[str, ...] = ()
        self._cursor = 0
        self._elapsed = 0.0

    @property
    def active(self) -> tuple[str, ...]:
        return self._active

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> str | None:
        if not self._active:
            return None
        return self._active[self._cursor]

    @property
    def is_playing(self) -> bool:
        return self.state is RotationState.PLAYING

    @property
    def progress(self) -> float:
        """Countdown position as a percentage of the interval."""

        return min(100.0, self._elapsed / self.interval_seconds * 100.0)

    def label(self) -> str:
        current = self.current
        if current is None:
            return ""
        return f"{self._cursor + 1}/{len(self._active)}: {current}"

    def tick(self) -> str | None:
        """Advance to the next channel after a full interval elapsed."""

        if not self.is_playing or not self._active:
            return None
        self._cursor = (self._cursor + 1) % len(self._active)
        self._show()
        return self.current

    def pause(self) -> None:
        if not self.is_playing:
            return
        self.state = RotationState.PAUSED
        logger.info("Rotation paused")
        self._notify_timer()

    def resume(self) -> None:
        if self.is_playing:
            return
        self.state = RotationState.PLAYING
        self._elapsed = 0.0
        logger.info("Rotation resumed (%ss interval)", self.interval_seconds)
        self._notify_timer()

    def toggle(self) -> RotationState:
        if self.is_playing:
            self.pause()
        else:
            self.resume()
        return self.state

    def advance_manually(self, direction: int) -> str | None:
        if direction not in (1, -1):
            raise ValueError("direction must be +1 or -1")
        if not self._active:
            return None
        self._cursor = (self._cursor + direction) % len(self._active)
        self._show()
        if self.is_playing:
            self._notify_timer()
        return self.current

    def set_interval(self, seconds: float) -> int:
        self.interval_seconds = clamp_interval(seconds)
        self._elapsed = 0.0
        if self.is_playing:
            self._notify_timer()
        return self.interval_seconds

    def replace_active(self, channels: Sequence[str]) -> str | None:
        """Swap in a freshly computed active subset.

        The displayed channel keeps being displayed if it is still active;
        otherwise the cursor resets to the first channel.
        """

        previous = self.current
        self._active = tuple(channels)
        if previous is not None and previous in self._active:
            self._cursor = self._active.index(previous)
        else:
            self._cursor = 0
        if self.current is not None and self.current != previous:
            self._show()
        return self.current

    def jump_to(self, channel: str) -> bool:
        """Display ``channel`` if it belongs to the active subset."""

        if channel not in self._active:
            return False
        self._cursor = self._active.index(channel)
        self._show()
        if self.is_playing:
            self._notify_timer()
        return True

    def reload(self) -> None:
        if self.current is None:
            return
        self._show()
        if self.is_playing:
            self._notify_timer()

    def advance_countdown(self, step: float) -> float:
        if self.is_playing and self._elapsed < self.interval_seconds:
            self._elapsed = min(float(self.interval_seconds), self._elapsed + step)
        return self.progress

    def reset_countdown(self) -> None:
        self._elapsed = 0.0

    def _show(self) -> None:
        self._elapsed = 0.0
        current = self.current
        if current is not None and self.on_display is not None:
            self.on_display(current)

    def _notify_timer(self) -> None:
        if self.on_timer_reset is not None:
            self.on_timer_reset()
