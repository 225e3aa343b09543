"""Persistent roster and category filter for the rotation viewer."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import StoredValue

logger = logging.getLogger(__name__)

ROSTER_KEY = "roster"
CATEGORY_KEY = "category_filter"


@dataclass(slots=True, frozen=True)
class ActionResult:
    """Outcome of a user-initiated action, with the message shown to the user."""

    ok: bool
    message: str = ""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Volatile store used for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value


class DatabaseKeyValueStore:
    """Key/value store persisted in the ``stored_values`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StoredValue.value).where(StoredValue.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            record = await session.get(StoredValue, key)
            if record is None:
                session.add(StoredValue(key=key, value=value))
            else:
                record.value = value
            await session.commit()


def validate_channel_name(name: str) -> str | None:
    """Return an error message when ``name`` cannot be used as a channel."""

    if not name:
        return "Please enter a streamer name"
    if "," in name or any(char.isspace() for char in name):
        return f"Invalid streamer name: {name!r}"
    return None


class RosterStore:
    """Ordered, de-duplicated channel roster plus the category filter.

    Values are read from the backing store by :meth:`load`; every mutation is
    written back immediately. Rejected edits leave both the in-memory and the
    persisted state untouched.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        default_roster: Iterable[str],
        default_category: str = "",
    ):
        self._backend = backend
        self._default_roster = tuple(default_roster)
        self._default_category = default_category
        self._roster: list[str] = list(self._default_roster)
        self._category_filter = default_category

    @property
    def roster(self) -> tuple[str, ...]:
        return tuple(self._roster)

    @property
    def category_filter(self) -> str:
        return self._category_filter

    def __contains__(self, name: object) -> bool:
        return name in self._roster

    async def load(self) -> None:
        raw_roster = await self._backend.get(ROSTER_KEY)
        self._roster = self._decode_roster(raw_roster)
        category = await self._backend.get(CATEGORY_KEY)
        self._category_filter = (
            self._default_category if category is None else category.strip()
        )

    def _decode_roster(self, raw: str | None) -> list[str]:
        if raw is None:
            return list(self._default_roster)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored roster is not valid JSON, using the default roster")
            return list(self._default_roster)
        if not isinstance(data, list):
            logger.warning("Stored roster has unexpected shape, using the default roster")
            return list(self._default_roster)
        roster: list[str] = []
        for entry in data:
            if isinstance(entry, str) and entry and entry not in roster:
                roster.append(entry)
        return roster

    async def _save_roster(self) -> None:
        await self._backend.set(ROSTER_KEY, json.dumps(self._roster))

    async def add(self, name: str) -> ActionResult:
        name = name.strip()
        error = validate_channel_name(name)
        if error:
            return ActionResult(False, error)
        if name in self._roster:
            return ActionResult(False, "Streamer already in list")
        self._roster.append(name)
        await self._save_roster()
        logger.info("Added %s to the roster", name)
        return ActionResult(True, f"Added {name}")

    async def add_many(self, text: str) -> ActionResult:
        """Add every comma separated name from a bulk paste."""

        names = [part.strip() for part in text.split(",") if part.strip()]
        if not names:
            return ActionResult(False, "Please enter at least one streamer name")
        invalid = [name for name in names if validate_channel_name(name)]
        if invalid:
            return ActionResult(False, f"Invalid streamer names: {', '.join(invalid)}")

        added = 0
        for name in names:
            if name not in self._roster:
                self._roster.append(name)
                added += 1
        if not added:
            return ActionResult(False, "All streamers are already in the list")
        await self._save_roster()
        logger.info("Bulk added %s channels to the roster", added)
        return ActionResult(True, f"Added {added} streamer(s)")

    async def remove(self, name: str) -> ActionResult:
        if name not in self._roster:
            return ActionResult(False, f"{name} is not in the list")
        self._roster.remove(name)
        await self._save_roster()
        logger.info("Removed %s from the roster", name)
        return ActionResult(True, f"Removed {name}")

    async def set_category_filter(self, value: str) -> ActionResult:
        self._category_filter = value.strip()
        await self._backend.set(CATEGORY_KEY, self._category_filter)
        if self._category_filter:
            logger.info("Category filter set to: %s", self._category_filter)
            return ActionResult(True, f"Category filter set to {self._category_filter}")
        logger.info("Category filter cleared - showing all games")
        return ActionResult(True, "Category filter cleared")

    async def clear_category_filter(self) -> ActionResult:
        return await self.set_category_filter("")
