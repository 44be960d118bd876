"""SSE streaming endpoints for the channels held by the app's hub."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from ..admission import RequestMeta
from ..channel import SseChannel
from ..config import log
from ..transport import QueueSink

router = APIRouter(prefix="/channels", tags=["channels"])


class MessageCreate(BaseModel):
    data: Any = None
    id: int | None = None
    event: str | None = Field(default=None, max_length=200)
    retry: int | None = None


def _channel(request: Request, name: str) -> SseChannel:
    channel = request.app.state.hub.get(name)
    if channel is None:
        raise HTTPException(status_code=404, detail="unknown channel")
    return channel


# Handlers are async so every channel call stays on the event loop.

@router.get("")
async def list_channels(request: Request) -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "connections": channel.connection_count,
            "historySize": channel.history_size,
            "historyIds": channel.history_ids()[-10:],
        }
        for name, channel in request.app.state.hub
    ]


@router.api_route("/{name}", methods=["GET", "OPTIONS"])
async def stream_channel(name: str, request: Request) -> Response:
    """Open an event stream on a channel (or answer a CORS preflight)."""
    channel = _channel(request, name)
    sink = QueueSink()
    outcome = channel.add_client(RequestMeta.from_request(request), sink)
    log.debug("stream %s %s -> %s", request.method, name, outcome.value)
    return sink.to_response()


@router.post("/{name}/messages", status_code=202)
async def send_message(name: str, payload: MessageCreate, request: Request) -> dict[str, Any]:
    channel = _channel(request, name)
    channel.send(payload.model_dump())
    recorded = payload.id is not None and payload.id > 0
    log.info("message sent on %s id=%s recorded=%s", name, payload.id, recorded)
    return {
        "ok": True,
        "recipients": channel.connection_count,
        "recorded": recorded,
    }


@router.post("/{name}/retry", status_code=202)
async def set_retry(name: str, retry: int, request: Request) -> dict[str, Any]:
    channel = _channel(request, name)
    channel.retry(retry)
    return {"ok": True, "retryTimeout": channel.retry_timeout}
