"""Tests for the queue-backed ASGI sink."""

import asyncio

import pytest
from fastapi.responses import StreamingResponse

from sse_channel.admission import RequestMeta
from sse_channel.channel import SseChannel
from sse_channel.connections import SinkWriteError
from sse_channel.transport import QueueSink


async def _collect(sink: QueueSink) -> bytes:
    chunks = []
    async for chunk in sink.stream():
        chunks.append(chunk)
    return b"".join(chunks)


class TestQueueSink:
    async def test_buffers_until_flush(self):
        sink = QueueSink()
        sink.write("a")
        sink.write("b")
        assert sink.drain() == b""
        sink.flush()
        assert sink.drain() == b"ab"

    async def test_unbuffered_sink_writes_through(self):
        sink = QueueSink(supports_flush=False)
        sink.write("a")
        assert sink.drain() == b"a"

    async def test_full_queue_raises(self):
        sink = QueueSink(max_queue=1, supports_flush=False)
        sink.write("a")
        with pytest.raises(SinkWriteError):
            sink.write("b")

    async def test_write_after_end_raises(self):
        sink = QueueSink()
        sink.end()
        with pytest.raises(SinkWriteError):
            sink.write("late")

    async def test_head_only_once(self):
        sink = QueueSink()
        sink.write_head(200, {})
        with pytest.raises(SinkWriteError):
            sink.write_head(403, {})

    async def test_low_latency_header(self):
        sink = QueueSink()
        sink.configure_stream()
        sink.write_head(200, {"Content-Type": "text/event-stream;charset=UTF-8"})
        assert sink.headers["X-Accel-Buffering"] == "no"

    async def test_stream_until_end(self):
        sink = QueueSink()
        sink.write("data: x\n\n")
        sink.flush()
        sink.end()
        assert await _collect(sink) == b"data: x\n\n"

    async def test_end_flushes_pending(self):
        sink = QueueSink()
        sink.write("pending")
        sink.end()
        assert await _collect(sink) == b"pending"

    async def test_close_callbacks_fire_once(self):
        sink = QueueSink()
        calls = []
        sink.on_close(lambda: calls.append(1))
        sink.end()
        await _collect(sink)
        assert calls == [1]

        sink.on_close(lambda: calls.append(2))
        assert calls == [1, 2]

    async def test_cancelled_stream_reports_close(self):
        sink = QueueSink()
        closed = asyncio.Event()
        sink.on_close(closed.set)

        task = asyncio.create_task(_collect(sink))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert closed.is_set()
        assert sink.closed


class TestWithChannel:
    async def test_disconnect_deregisters(self):
        ch = SseChannel()
        sink = QueueSink()
        ch.add_client(RequestMeta.build(), sink)
        assert ch.connection_count == 1

        task = asyncio.create_task(_collect(sink))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert ch.connection_count == 0
        ch.close()

    async def test_streams_preamble_messages_and_close(self):
        ch = SseChannel(retryTimeout=500)
        sink = QueueSink()
        ch.add_client(RequestMeta.build(), sink)
        response = sink.to_response()
        assert isinstance(response, StreamingResponse)
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/event-stream;charset=UTF-8"

        ch.send({"id": 1, "event": "tick", "data": "a\nb"})
        ch.close()
        body = await _collect(sink)
        assert body == b":ok\n\nretry: 500\nevent: tick\nid: 1\ndata: a\ndata: b\n\n"
        assert ch.connection_count == 0

    async def test_slow_client_does_not_block_others(self):
        ch = SseChannel()
        slow, fast = QueueSink(max_queue=2), QueueSink()
        ch.add_client(RequestMeta.build(), slow)
        ch.add_client(RequestMeta.build(), fast)

        for i in range(1, 6):
            ch.send({"id": i, "data": str(i)})

        fast.end()
        assert (await _collect(fast)).count(b"data: ") == 5
        assert ch.connection_count == 1
        ch.close()

    async def test_rejection_response(self):
        ch = SseChannel(cors={"origins": ["https://a.example"]})
        sink = QueueSink()
        ch.add_client(RequestMeta.build(headers={"Origin": "https://b.example"}), sink)
        response = sink.to_response()
        assert response.status_code == 403
        assert response.body == b"Origin not allowed"
        ch.close()
