"""Named channels served by one process."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from .channel import SseChannel

log = logging.getLogger("sse_channel.hub")


class ChannelHub:
    """Registry of channels addressed by name."""

    def __init__(self) -> None:
        self._channels: dict[str, SseChannel] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[tuple[str, SseChannel]]:
        return iter(list(self._channels.items()))

    def __len__(self) -> int:
        return len(self._channels)

    def create(self, name: str, options: dict[str, Any] | None = None, **kwargs: Any) -> SseChannel:
        if name in self._channels:
            raise ValueError(f"channel {name!r} already exists")
        channel = SseChannel(options, **kwargs)
        self._channels[name] = channel
        log.info("channel.created name=%s history=%d", name, channel.history_size)
        return channel

    def get(self, name: str) -> SseChannel | None:
        return self._channels.get(name)

    def names(self) -> list[str]:
        return list(self._channels)

    def total_connections(self) -> int:
        return sum(c.connection_count for c in self._channels.values())

    def close_all(self) -> None:
        for name, channel in self._channels.items():
            channel.close()
            log.info("channel.closed name=%s", name)
