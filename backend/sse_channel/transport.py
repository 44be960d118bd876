"""Queue-backed sink that feeds a Starlette streaming response."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Callable, Mapping

from fastapi.responses import Response, StreamingResponse

from .connections import SinkWriteError

log = logging.getLogger("sse_channel.transport")

DEFAULT_MAX_QUEUE = 256

_ids = itertools.count(1)


class QueueSink:
    """A :class:`~sse_channel.connections.Sink` for one ASGI response.

    Writes are buffered until ``flush()`` (when ``supports_flush`` is set) and
    then handed to the response iterator through a bounded queue. A client
    that stops reading fills its queue and further writes fail with
    :class:`SinkWriteError` without affecting anyone else.
    """

    def __init__(self, *, max_queue: int = DEFAULT_MAX_QUEUE, supports_flush: bool = True) -> None:
        self.sink_id = next(_ids)
        self.supports_flush = supports_flush
        self.status = 200
        self.headers: dict[str, str] = {}
        self.low_latency = False

        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=max_queue)
        self._pending: list[bytes] = []
        self._head_written = False
        self._ended = False
        self._closed = False
        self._close_callbacks: list[Callable[[], None]] = []

    def __repr__(self) -> str:
        return f"<QueueSink #{self.sink_id} status={self.status}>"

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Sink protocol ────────────────────────────────────────────────────────

    def configure_stream(self) -> None:
        # The ASGI server owns the socket; ask proxies not to buffer instead
        self.low_latency = True

    def write_head(self, status: int, headers: Mapping[str, str]) -> None:
        if self._head_written:
            raise SinkWriteError("headers already sent")
        self._head_written = True
        self.status = status
        self.headers = dict(headers)
        if self.low_latency:
            self.headers.setdefault("X-Accel-Buffering", "no")

    def write(self, chunk: str) -> None:
        if self._ended:
            raise SinkWriteError(f"write after end on {self!r}")
        data = chunk.encode("utf-8")
        if self.supports_flush:
            self._pending.append(data)
        else:
            self._enqueue(data)

    def flush(self) -> None:
        if not self._pending:
            return
        data = b"".join(self._pending)
        self._pending.clear()
        self._enqueue(data)

    def end(self) -> None:
        if self._ended:
            return
        try:
            self.flush()
        except SinkWriteError as e:
            log.debug("dropping unflushed data on end: %s", e)
        self._ended = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # stream() stops once the queue drains
            pass
        self._fire_close()

    def on_close(self, callback: Callable[[], None]) -> None:
        if self._closed:
            callback()
        else:
            self._close_callbacks.append(callback)

    # ── Response side ────────────────────────────────────────────────────────

    def _enqueue(self, data: bytes) -> None:
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            raise SinkWriteError(f"{self!r} queue full ({self._queue.maxsize} chunks)") from None

    def _fire_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                log.error("close callback for %r failed: %s", self, e)

    def drain(self) -> bytes:
        """Take everything queued so far without waiting."""
        chunks: list[bytes] = []
        while not self._queue.empty():
            chunk = self._queue.get_nowait()
            if chunk is not None:
                chunks.append(chunk)
        return b"".join(chunks)

    async def stream(self) -> AsyncIterator[bytes]:
        """Yield queued chunks until the sink ends or the client goes away."""
        try:
            while True:
                if self._ended and self._queue.empty():
                    break
                chunk = await self._queue.get()
                if chunk is None:
                    break
                yield chunk
        finally:
            self._fire_close()

    def to_response(self) -> Response:
        """Starlette response for whatever admission wrote to this sink."""
        if self._ended:
            return Response(content=self.drain(), status_code=self.status, headers=self.headers)
        return StreamingResponse(self.stream(), status_code=self.status, headers=self.headers)
