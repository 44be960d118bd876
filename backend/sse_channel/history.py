"""Bounded replay buffer of framed messages keyed by event id."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterable
from typing import Any

from .config import DEFAULT_HISTORY_SIZE, positive_int
from .framing import Message, frame_message

log = logging.getLogger("sse_channel.history")


class HistoryRing:
    """Ordered, id-deduplicated history capped at ``limit`` entries.

    Entries are kept oldest to newest. Recording an id that is already present
    drops the old entry and appends the new one as the newest.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_SIZE) -> None:
        self._limit = positive_int(limit, DEFAULT_HISTORY_SIZE)
        self._entries: OrderedDict[int, str] = OrderedDict()

    @classmethod
    def prepopulated(
        cls,
        items: Iterable[Any],
        limit: int = DEFAULT_HISTORY_SIZE,
        json_encode: bool = False,
    ) -> HistoryRing:
        """Build a ring from *items* given oldest first.

        Items without a positive id are discarded and only the most recent
        ``limit`` are kept.
        """
        ring = cls(limit)
        messages = [m for m in (Message.coerce(i) for i in items) if m.id]
        for message in messages[-ring.limit:]:
            ring.record(message.id, frame_message(message, json_encode))
        return ring

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> list[int]:
        """Event ids currently held, oldest first."""
        return list(self._entries)

    def record(self, event_id: int | None, frame: str) -> None:
        event_id = positive_int(event_id)
        if event_id is None:
            return

        self._entries.pop(event_id, None)
        self._entries[event_id] = frame

        while len(self._entries) > self._limit:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("history.evicted id=%s", evicted)

    def entries_since(self, last_seen_id: int) -> list[str]:
        """Frames newer than *last_seen_id*, oldest first.

        The scan walks from the newest entry and stops at the first id that is
        not greater than *last_seen_id*, so ids are expected to increase
        across sends.
        """
        frames: list[str] = []
        for event_id, frame in reversed(self._entries.items()):
            if event_id <= last_seen_id:
                break
            frames.append(frame)
        frames.reverse()
        return frames

    def clear(self) -> None:
        self._entries.clear()
