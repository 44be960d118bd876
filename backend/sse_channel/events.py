"""Synchronous listener registry for channel notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

log = logging.getLogger("sse_channel.events")

CONNECT = "connect"
DISCONNECT = "disconnect"
MESSAGE = "message"

Listener = Callable[..., Any]


class ChannelEvents:
    """Notify listeners of ``connect``, ``disconnect`` and ``message``.

    Listeners run synchronously, in registration order, at the point the
    notification is emitted. A failing listener is logged and skipped.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, name: str, listener: Listener) -> None:
        self._listeners.setdefault(name, []).append(listener)

    def off(self, name: str, listener: Listener) -> None:
        if name in self._listeners:
            self._listeners[name] = [cb for cb in self._listeners[name] if cb != listener]

    def remove_all(self, name: str | None = None) -> None:
        if name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(name, None)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def emit(self, name: str, *args: Any) -> int:
        """Call every listener for *name*. Returns how many were called."""
        listeners = list(self._listeners.get(name, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                log.error("listener for %s failed: %s", name, e)
        return len(listeners)
