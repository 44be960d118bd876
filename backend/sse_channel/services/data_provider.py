"""Demo data feeds for the sysinfo and random channels.

  - sysinfo: load average and free memory, each as its own named event
  - random:  a timestamped random number, JSON-encoded by the channel
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import random
from datetime import datetime, timezone
from typing import Any

from ..channel import SseChannel

log = logging.getLogger("sse_channel.provider")


def load_average() -> float | None:
    try:
        return os.getloadavg()[0]
    except (AttributeError, OSError):
        return None


def free_memory() -> int | None:
    try:
        return os.sysconf("SC_AVPHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, OSError, ValueError):
        return None


def random_sample() -> dict[str, Any]:
    return {
        "time": datetime.now(timezone.utc).isoformat(),
        "randomNumber": random.random(),
    }


def publish_sysinfo(channel: SseChannel, ids: itertools.count) -> None:
    """Send one freemem and one loadavg event with increasing ids."""
    channel.send({"id": next(ids), "data": free_memory(), "event": "freemem"})
    channel.send({"id": next(ids), "data": load_average(), "event": "loadavg"})


async def sysinfo_loop(channel: SseChannel, interval: float) -> None:
    log.info("provider.sysinfo.started interval=%.2fs", interval)
    ids = itertools.count(1)

    while True:
        try:
            await asyncio.sleep(interval)
            publish_sysinfo(channel, ids)
        except asyncio.CancelledError:
            log.info("provider.sysinfo.stopped")
            break
        except Exception as e:
            log.error("provider.sysinfo.error: %s", e)


async def random_loop(channel: SseChannel, interval: float) -> None:
    log.info("provider.random.started interval=%.2fs", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            channel.send({"data": random_sample()})
        except asyncio.CancelledError:
            log.info("provider.random.stopped")
            break
        except Exception as e:
            log.error("provider.random.error: %s", e)
