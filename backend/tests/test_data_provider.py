"""Tests for the demo data feeds."""

import asyncio
import itertools

from sse_channel.channel import SseChannel
from sse_channel.services.data_provider import publish_sysinfo, random_loop, random_sample


def test_publish_sysinfo_uses_increasing_ids():
    ch = SseChannel()
    ids = itertools.count(1)
    publish_sysinfo(ch, ids)
    publish_sysinfo(ch, ids)
    assert ch.history_ids() == [1, 2, 3, 4]
    assert ch.history.entries_since(3)[0].startswith("event: loadavg\nid: 4\n")
    ch.close()


def test_random_sample_shape():
    sample = random_sample()
    assert set(sample) == {"time", "randomNumber"}
    assert 0 <= sample["randomNumber"] < 1


async def test_random_loop_sends_until_cancelled():
    ch = SseChannel(jsonEncode=True)
    sent = []
    ch.on("message", lambda channel, msg, recipients: sent.append(msg))

    task = asyncio.create_task(random_loop(ch, 0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    await task

    assert sent
    assert ch.history_ids() == []
    ch.close()
