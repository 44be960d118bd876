"""Negotiation of a new client before it joins a channel.

Order of operations:
  1. Origin check (preflight answered here, disallowed origins rejected)
  2. Stream headers + preamble (ack comment, retry, optional padding)
  3. Last-seen id resolution for history replay
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from starlette.datastructures import URL, Headers, QueryParams

from .config import positive_int
from .connections import SinkWriteError, SseChannelError
from .cors import CorsPolicy
from .framing import CONNECTED_FRAME, PREAMBLE, retry_frame

if TYPE_CHECKING:
    from starlette.requests import Request

    from .connections import Sink

log = logging.getLogger("sse_channel.admission")

SSE_HEADERS = {
    "Content-Type": "text/event-stream;charset=UTF-8",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

# Reconnection id sources, highest priority first
LAST_EVENT_ID_HEADER = "last-event-id"
LAST_EVENT_ID_QUERY_KEYS = ("evs_last_event_id", "lastEventId")
PREAMBLE_QUERY_KEY = "evs_preamble"

_FALSY = {"", "0", "false", "no", "off"}


class OriginNotAllowed(SseChannelError):
    """A cross-origin request came from an origin the channel does not allow."""

    def __init__(self, origin: str | None) -> None:
        super().__init__(f"Origin not allowed: {origin}")
        self.origin = origin


class AdmissionOutcome(str, Enum):
    ACCEPTED = "accepted"
    PREFLIGHT = "preflight"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RequestMeta:
    """What admission needs to know about an incoming request."""

    method: str = "GET"
    url: str = "/"
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def build(
        cls,
        url: str = "/",
        headers: dict[str, str] | None = None,
        method: str = "GET",
    ) -> RequestMeta:
        return cls(method=method.upper(), url=url, headers=Headers(headers or {}))

    @classmethod
    def from_request(cls, request: Request) -> RequestMeta:
        return cls(method=request.method.upper(), url=str(request.url), headers=request.headers)

    @property
    def query(self) -> QueryParams:
        return QueryParams(URL(self.url).query)

    @property
    def origin(self) -> str | None:
        return self.headers.get("origin") or None

    @property
    def is_preflight(self) -> bool:
        return self.method == "OPTIONS"

    @property
    def wants_preamble(self) -> bool:
        value = self.query.get(PREAMBLE_QUERY_KEY)
        return value is not None and value.strip().lower() not in _FALSY

    @property
    def last_event_id(self) -> int:
        """Last-seen id claimed by the client, 0 when absent or invalid."""
        query = self.query
        candidates = [self.headers.get(LAST_EVENT_ID_HEADER)]
        candidates += [query.get(key) for key in LAST_EVENT_ID_QUERY_KEYS]
        for raw in candidates:
            if raw and raw.strip():
                return positive_int(raw.strip(), 0)
        return 0


def negotiate(
    request: RequestMeta,
    sink: Sink,
    *,
    cors: CorsPolicy,
    retry_timeout: int | None = None,
) -> AdmissionOutcome:
    """Check the origin and open the stream on *sink*.

    Only an ``ACCEPTED`` outcome leaves the sink open; preflight answers and
    rejections are written and ended here.
    """
    origin = request.origin

    if request.is_preflight:
        if cors.allows(origin):
            sink.write_head(204, cors.preflight_headers(origin))
        else:
            log.warning("preflight denied origin=%s", origin)
            sink.write_head(403, {})
        sink.end()
        return AdmissionOutcome.PREFLIGHT

    if not cors.allows(origin):
        log.warning("admission rejected origin=%s url=%s", origin, request.url)
        sink.write_head(403, {"Content-Type": "text/plain; charset=utf-8"})
        try:
            sink.write("Origin not allowed")
        except SinkWriteError as e:
            log.debug("rejection body not written: %s", e)
        sink.end()
        return AdmissionOutcome.REJECTED

    sink.configure_stream()
    sink.write_head(200, {**SSE_HEADERS, **cors.response_headers(origin)})
    sink.write(CONNECTED_FRAME)

    if retry_timeout:
        sink.write(retry_frame(retry_timeout))

    if request.wants_preamble:
        sink.write(PREAMBLE)

    if sink.supports_flush:
        sink.flush()

    return AdmissionOutcome.ACCEPTED
