"""Server-Sent Events channel.

A channel is a group of clients that receive the same messages. Messages
sent with a positive numeric id are kept in a bounded history, and a client
reconnecting with a last-seen id gets every newer message replayed.

All methods are expected to be called from the event loop that serves the
connections; none of them block on the network.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from .admission import AdmissionOutcome, OriginNotAllowed, RequestMeta, negotiate
from .config import ChannelOptions, positive_int
from .connections import ConnectionRegistry, Sink, deliver
from .cors import CorsPolicy
from .events import CONNECT, DISCONNECT, MESSAGE, ChannelEvents, Listener
from .framing import Message, frame_message, retry_frame
from .history import HistoryRing

log = logging.getLogger("sse_channel.channel")

AdmissionCallback = Callable[[Exception | None], Any]


class SseChannel:
    """Broadcast channel with history replay and keep-alive pings.

    Options (wire-style or Python names):
        historySize:  max number of messages kept for replay (default 500)
        history:      messages to pre-populate the history with, oldest first
        retryTimeout: ms clients should wait before reconnecting
        pingInterval: ms between keep-alive pings (default 20000)
        jsonEncode:   JSON-encode message data before sending
        cors:         ``False`` or ``{"origins": [...]}`` (``"*"`` allows all)
    """

    def __init__(self, options: dict[str, Any] | ChannelOptions | None = None, **kwargs: Any) -> None:
        if isinstance(options, ChannelOptions):
            options = options.model_dump()
        opts = ChannelOptions.model_validate({**(options or {}), **kwargs})

        self.json_encode: bool = opts.json_encode
        self.history_size: int = opts.history_size
        self.retry_timeout: int | None = opts.retry_timeout
        self.ping_interval: int = opts.ping_interval
        self.cors: CorsPolicy = opts.cors

        self.history = HistoryRing.prepopulated(opts.history, self.history_size, self.json_encode)
        self.events = ChannelEvents()

        self._registry = ConnectionRegistry()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._closed = False

        self._start_timer()

    def __repr__(self) -> str:
        return f"<SseChannel connections={self.connection_count} history={len(self.history)}>"

    # ── Notifications ────────────────────────────────────────────────────────

    def on(self, name: str, listener: Listener) -> None:
        self.events.on(name, listener)

    def off(self, name: str, listener: Listener) -> None:
        self.events.off(name, listener)

    def remove_all_listeners(self, name: str | None = None) -> None:
        self.events.remove_all(name)

    # ── Connections ──────────────────────────────────────────────────────────

    @property
    def connection_count(self) -> int:
        return self._registry.count

    def get_connection_count(self) -> int:
        return self._registry.count

    @property
    def connections(self) -> list[Sink]:
        return list(self._registry)

    @property
    def closed(self) -> bool:
        return self._closed

    def add_client(
        self,
        request: RequestMeta,
        sink: Sink,
        callback: AdmissionCallback | None = None,
    ) -> AdmissionOutcome:
        """Admit a client and start streaming to it.

        *callback* is called on the next loop iteration with ``None`` once the
        client is connected, or with :class:`OriginNotAllowed` when its origin
        is rejected. Preflight requests are answered without a callback.
        """
        self._start_timer()

        outcome = negotiate(request, sink, cors=self.cors, retry_timeout=self.retry_timeout)
        if outcome is AdmissionOutcome.PREFLIGHT:
            return outcome
        if outcome is AdmissionOutcome.REJECTED:
            if callback:
                self._defer(callback, OriginNotAllowed(request.origin))
            return outcome

        self._registry.register(sink)
        sink.on_close(lambda: self.remove_client(sink))
        log.info("client connected (total=%d)", self.connection_count)

        last_event_id = request.last_event_id
        if last_event_id:
            self.send_events_since(sink, last_event_id)

        self.events.emit(CONNECT, self, request, sink)

        if callback:
            self._defer(callback, None)
        return outcome

    def remove_client(self, sink: Sink) -> None:
        """Deregister *sink*. Safe to call any number of times."""
        if self._registry.deregister(sink):
            log.debug("client disconnected (total=%d)", self.connection_count)
            self.events.emit(DISCONNECT, self, sink)

    # ── Messages ─────────────────────────────────────────────────────────────

    def send(self, msg: Any, clients: Iterable[Sink] | None = None) -> str:
        """Send *msg* to every client, or only to *clients*.

        Messages sent to an explicit list of clients bypass the history.
        Returns the framed message.
        """
        message = Message.coerce(msg)
        frame = frame_message(message, self.json_encode)

        if clients is None:
            self.history.record(message.id, frame)
            recipients = self.connections
        else:
            recipients = list(clients)

        self._registry.broadcast(frame, recipients)
        self.events.emit(MESSAGE, self, message, recipients)
        return frame

    def send_events_since(self, sink: Sink, since_id: int) -> int:
        """Replay history entries newer than *since_id* to one client."""
        frames = self.history.entries_since(since_id)
        if frames:
            deliver(sink, frames)
        log.debug("replayed %d entries since id=%s", len(frames), since_id)
        return len(frames)

    def history_ids(self) -> list[int]:
        return self.history.ids()

    def retry(self, retry_timeout: int) -> None:
        """Set the reconnection delay and tell every connected client."""
        retry_timeout = positive_int(retry_timeout)
        if retry_timeout is None:
            return
        self.retry_timeout = retry_timeout
        self._registry.broadcast(retry_frame(retry_timeout))

    def ping(self) -> None:
        self._registry.ping_all()

    def close(self) -> None:
        """Stop pinging and end every connection."""
        if not self._closed:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            log.info("channel closed (connections=%d)", self.connection_count)
        self._registry.close_all()

    # ── Scheduling ───────────────────────────────────────────────────────────

    def _start_timer(self) -> None:
        if self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Armed on the first admission instead
            return
        if self._timer is not None:
            if self._loop is loop:
                return
            self._timer.cancel()
        self._loop = loop
        self._timer = loop.call_later(self.ping_interval / 1000, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._closed:
            return
        self.ping()
        self._start_timer()

    def _defer(self, callback: AdmissionCallback, error: Exception | None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(error)
            return
        loop.call_soon(callback, error)
