"""Demo service exposing SSE channels over FastAPI."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import Settings, log, settings
from .hub import ChannelHub
from .routers import health, streams
from .services.data_provider import random_loop, sysinfo_loop


def build_hub(config: Settings) -> ChannelHub:
    """Create the demo channels.

    ``sysinfo`` replays up to ``history_size`` events and asks clients to
    reconnect quickly. ``random`` keeps a short history, accepts any origin,
    pings once a minute and JSON-encodes its payloads.
    """
    hub = ChannelHub()
    hub.create(
        "sysinfo",
        historySize=config.history_size,
        retryTimeout=config.retry_timeout,
        pingInterval=config.ping_interval,
        cors={"origins": config.origins},
    )
    hub.create(
        "random",
        historySize=5,
        cors={"origins": ["*"]},
        pingInterval=60 * 1000,
        jsonEncode=True,
    )
    return hub


def create_app(config: Settings | None = None, *, start_providers: bool = True) -> FastAPI:
    config = config or settings
    hub = build_hub(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        tasks: list[asyncio.Task[None]] = []
        if start_providers:
            tasks.append(asyncio.create_task(sysinfo_loop(hub.get("sysinfo"), config.sysinfo_interval)))
            tasks.append(asyncio.create_task(random_loop(hub.get("random"), config.provider_interval)))
        log.info("sse-channel %s serving channels: %s", __version__, ", ".join(hub.names()))
        yield
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        hub.close_all()
        log.info("sse-channel shut down")

    app = FastAPI(title="SSE Channel", version=__version__, lifespan=lifespan)
    app.state.hub = hub
    app.include_router(health.router)
    app.include_router(streams.router)
    return app

