"""Derive the displayable status and the active rotation subset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from ..models import StatusRecord, StatusSnapshot


@dataclass(slots=True, frozen=True)
class Reconciliation:
    """Result of merging a raw snapshot with the roster and category filter."""

    display: StatusSnapshot = field(default_factory=dict)
    active: tuple[str, ...] = ()
    total_live: int = 0
    category_live: int = 0


@dataclass(slots=True, frozen=True)
class ActiveSelection:
    channels: tuple[str, ...]
    live_only: bool
    fell_back: bool = False


def reconcile(
    roster: Sequence[str],
    previous: Mapping[str, StatusRecord] | None,
    raw: Mapping[str, StatusRecord],
    category_filter: str = "",
) -> Reconciliation:
    """Apply the category filter to ``raw`` and select the live roster entries.

    Live records outside a non-empty ``category_filter`` are shown as offline.
    Roster entries that ``raw`` does not cover yet keep their ``previous``
    display record when it still passes the filter, or are treated as offline. ``total_live`` always counts
    the unfiltered ``raw`` snapshot.
    """

    category_filter = (category_filter or "").strip()
    display: StatusSnapshot = {}
    for channel, record in raw.items():
        if record.matches_category(category_filter):
            display[channel] = record
        else:
            display[channel] = StatusRecord.offline()

    for channel in roster:
        if channel not in display:
            carried = (previous or {}).get(channel)
            if carried is not None and carried.matches_category(category_filter):
                display[channel] = carried
            else:
                display[channel] = StatusRecord.offline()

    active = tuple(channel for channel in roster if display[channel].live)
    return Reconciliation(
        display=display,
        active=active,
        total_live=sum(1 for record in raw.values() if record.live),
        category_live=sum(1 for record in display.values() if record.live),
    )


def select_active(
    roster: Sequence[str], reconciliation: Reconciliation, live_only: bool
) -> ActiveSelection:
    """Choose the channels to rotate through.

    When live-only mode is requested but nothing is live, the full roster is
    returned and live-only mode is switched off.
    """

    if not live_only:
        return ActiveSelection(tuple(roster), live_only=False)
    if reconciliation.active:
        return ActiveSelection(reconciliation.active, live_only=True)
    return ActiveSelection(tuple(roster), live_only=False, fell_back=True)
