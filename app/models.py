"""Pydantic models describing channel status payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StatusRecord(BaseModel):
    """Live/offline status for a single channel."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    live: bool = False
    title: str | None = None
    category: str | None = Field(
        default=None, validation_alias=AliasChoices("category", "game")
    )
    viewer_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("viewerCount", "viewer_count", "viewers"),
        serialization_alias="viewerCount",
    )

    @classmethod
    def offline(cls) -> "StatusRecord":
        return cls(live=False)

    @classmethod
    def from_stream(cls, stream: Mapping[str, Any]) -> "StatusRecord":
        """Build a live record from a Helix ``/streams`` entry."""

        try:
            viewers = int(stream.get("viewer_count") or 0)
        except (TypeError, ValueError):
            viewers = 0
        return cls(
            live=True,
            title=str(stream.get("title") or ""),
            category=str(stream.get("game_name") or ""),
            viewer_count=viewers,
        )

    def matches_category(self, category_filter: str) -> bool:
        """Return whether the record is live in ``category_filter``."""

        if not self.live:
            return False
        if not category_filter:
            return True
        return (self.category or "").casefold() == category_filter.casefold()

    def describe(self) -> str:
        """Return the one-line status shown under the player."""

        if not self.live:
            return "Offline"
        parts = [self.title or "Live"]
        if self.category:
            parts.append(self.category)
        if self.viewer_count:
            parts.append(f"{self.viewer_count:,} viewers")
        return " • ".join(parts)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation; offline records carry only ``live``."""

        if not self.live:
            return {"live": False}
        return {
            "live": True,
            "title": self.title or "",
            "category": self.category or "",
            "viewerCount": self.viewer_count or 0,
        }


StatusSnapshot = dict[str, StatusRecord]


def snapshot_to_payload(snapshot: Mapping[str, StatusRecord]) -> dict[str, Any]:
    return {channel: record.to_payload() for channel, record in snapshot.items()}


def snapshot_from_payload(data: object) -> StatusSnapshot:
    """Parse a proxy response body into a snapshot."""

    if not isinstance(data, dict):
        raise ValueError("Status payload must be a JSON object")
    snapshot: StatusSnapshot = {}
    for channel, entry in data.items():
        if not isinstance(entry, dict):
            snapshot[str(channel)] = StatusRecord.offline()
            continue
        record = StatusRecord.model_validate(entry)
        snapshot[str(channel)] = record if record.live else StatusRecord.offline()
    return snapshot


@dataclass(slots=True, frozen=True)
class Credential:
    """Application access token together with its local expiry watermark."""

    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at
