"""Message framing for the text/event-stream wire format.

A frame is written as:

    event: <name>
    retry: <ms>
    id: <id>
    data: <line 1>
    data: <line 2>
    <blank line>

Only ``data`` is mandatory. Comment lines start with ``:``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .config import positive_int

# Acknowledgement written once a stream is open
CONNECTED_FRAME = ":ok\n\n"

# Keep-alive comment with empty content
PING_FRAME = ":\n"

# Some user agents hold back events until 2kb have arrived
PREAMBLE = ":" + "-" * 2056 + "\n"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Message:
    """A logical message handed to ``SseChannel.send``."""

    data: Any = ""
    id: int | None = None
    event: str | None = None
    retry: int | None = None

    @classmethod
    def coerce(cls, msg: Any) -> Message:
        """Normalize a string, bytes, mapping or ``Message`` into a ``Message``.

        Non-positive ids and retries are dropped.
        """
        if isinstance(msg, Message):
            return cls(
                data=msg.data,
                id=positive_int(msg.id),
                event=msg.event or None,
                retry=positive_int(msg.retry),
            )
        if isinstance(msg, Mapping):
            event = msg.get("event")
            return cls(
                data=msg.get("data"),
                id=positive_int(msg.get("id")),
                event=str(event) if event else None,
                retry=positive_int(msg.get("retry")),
            )
        return cls(data=msg)


def retry_frame(retry_ms: int) -> str:
    return f"retry: {retry_ms}\n"


def stringify(data: Any, json_encode: bool = False) -> str:
    """Turn a payload into text. Never raises."""
    if data is None:
        data = ""
    if isinstance(data, (bytes, bytearray, memoryview)):
        data = bytes(data).decode("utf-8", errors="replace")
    if json_encode:
        try:
            return json.dumps(data, default=str, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            # Non-string keys or circular references
            return str(data)
    if isinstance(data, str):
        return data
    return str(data)


def data_lines(text: str) -> str:
    """Emit one ``data:`` line per line of *text*, ending the event."""
    lines = _LINE_BREAK.split(text)
    return "".join(f"data: {line}\n" for line in lines) + "\n"


def frame_message(msg: Any, json_encode: bool = False) -> str:
    """Frame *msg* as a complete event ready to be written to a stream."""
    message = Message.coerce(msg)

    output = ""
    if message.event:
        output += f"event: {message.event}\n"
    if message.retry:
        output += retry_frame(message.retry)
    if message.id:
        output += f"id: {message.id}\n"

    return output + data_lines(stringify(message.data, json_encode))
