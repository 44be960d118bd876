from __future__ import annotations

from collections.abc import Callable, Mapping

import pytest

from sse_channel.connections import SinkWriteError


class RecordingSink:
    """In-memory sink that records everything written to it."""

    def __init__(self, supports_flush: bool = True, fail_writes: bool = False) -> None:
        self.supports_flush = supports_flush
        self.fail_writes = fail_writes
        self.status: int | None = None
        self.headers: dict[str, str] = {}
        self.chunks: list[str] = []
        self.flushes = 0
        self.configured = False
        self.ended = False
        self._close_callbacks: list[Callable[[], None]] = []

    def configure_stream(self) -> None:
        self.configured = True

    def write_head(self, status: int, headers: Mapping[str, str]) -> None:
        self.status = status
        self.headers = dict(headers)

    def write(self, chunk: str) -> None:
        if self.fail_writes:
            raise SinkWriteError("broken pipe")
        self.chunks.append(chunk)

    def flush(self) -> None:
        self.flushes += 1

    def end(self) -> None:
        self.ended = True
        self.disconnect()

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def disconnect(self) -> None:
        """Simulate the transport reporting the client gone (may repeat)."""
        for callback in list(self._close_callbacks):
            callback()

    @property
    def output(self) -> str:
        return "".join(self.chunks)

    def clear(self) -> None:
        self.chunks.clear()
        self.flushes = 0


@pytest.fixture
def make_sink():
    def _make(**kwargs) -> RecordingSink:
        return RecordingSink(**kwargs)

    return _make
