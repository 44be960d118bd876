"""Live connection set and fan-out of frames to it."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Protocol

from .framing import PING_FRAME

log = logging.getLogger("sse_channel.connections")


class SseChannelError(RuntimeError):
    """Base error for channel failures."""


class SinkWriteError(SseChannelError):
    """Raised by a sink that cannot accept more data."""


class Sink(Protocol):
    """Outbound side of one client stream, owned by the transport.

    ``supports_flush`` is fixed when the sink is created and tells the
    channel whether ``flush()`` must be called to push written data out.
    """

    supports_flush: bool

    def configure_stream(self) -> None:
        """Prepare the transport for a long-lived, low-latency stream."""
        ...

    def write_head(self, status: int, headers: Mapping[str, str]) -> None: ...

    def write(self, chunk: str) -> None: ...

    def flush(self) -> None: ...

    def end(self) -> None: ...

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run *callback* once the client has gone away or the sink ended."""
        ...


def deliver(sink: Sink, chunks: Iterable[str]) -> bool:
    """Write *chunks* to *sink* and flush once.

    Returns ``False`` if the sink refused the data. Errors are logged, never
    raised: the sink stays registered until the transport reports it closed.
    """
    try:
        for chunk in chunks:
            sink.write(chunk)
        if sink.supports_flush:
            sink.flush()
    except Exception as e:
        log.warning("write to %r failed: %s", sink, e)
        return False
    return True


class ConnectionRegistry:
    """Ordered set of registered sinks."""

    def __init__(self) -> None:
        self._connections: list[Sink] = []

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Sink]:
        return iter(list(self._connections))

    def __contains__(self, sink: object) -> bool:
        return any(c is sink for c in self._connections)

    @property
    def count(self) -> int:
        return len(self._connections)

    def register(self, sink: Sink) -> None:
        self._connections.append(sink)

    def deregister(self, sink: Sink) -> int:
        """Remove every occurrence of *sink*. Returns how many were removed."""
        before = len(self._connections)
        self._connections = [c for c in self._connections if c is not sink]
        return before - len(self._connections)

    def broadcast(self, chunk: str, connections: Iterable[Sink] | None = None) -> int:
        """Write *chunk* to *connections* (all registered sinks by default).

        Returns the number of sinks that accepted the chunk.
        """
        targets = list(self._connections if connections is None else connections)
        delivered = 0
        for sink in targets:
            if deliver(sink, (chunk,)):
                delivered += 1
        if delivered < len(targets):
            log.warning("broadcast reached %d of %d connections", delivered, len(targets))
        return delivered

    def ping_all(self) -> int:
        return self.broadcast(PING_FRAME)

    def close_all(self) -> None:
        """End every registered sink without waiting for it to drain."""
        for sink in reversed(list(self._connections)):
            try:
                sink.end()
            except Exception as e:
                log.warning("ending %r failed: %s", sink, e)
