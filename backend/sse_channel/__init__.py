"""Server-Sent Events broadcast channels with history replay."""

from __future__ import annotations

__version__ = "1.0.0"

from .admission import AdmissionOutcome, OriginNotAllowed, RequestMeta
from .channel import SseChannel
from .config import ChannelOptions
from .connections import ConnectionRegistry, SinkWriteError, SseChannelError
from .cors import CorsPolicy
from .framing import Message, frame_message
from .history import HistoryRing
from .hub import ChannelHub
from .transport import QueueSink

__all__ = [
    "AdmissionOutcome",
    "ChannelHub",
    "ChannelOptions",
    "ConnectionRegistry",
    "CorsPolicy",
    "HistoryRing",
    "Message",
    "OriginNotAllowed",
    "QueueSink",
    "RequestMeta",
    "SinkWriteError",
    "SseChannel",
    "SseChannelError",
    "frame_message",
]
