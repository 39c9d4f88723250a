"""
Data models for the voice relay.
"""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Optional, Union


@dataclass
class SessionState:
    """
    Mutable per-call playback bookkeeping shared by the Twilio and OpenAI
    adapters. Only the relay worker mutates it.
    """
    stream_sid: Optional[str] = None
    latest_media_timestamp: int = 0  # ms, Twilio clock
    last_assistant_item: Optional[str] = None
    mark_queue: Deque[str] = field(default_factory=deque)
    response_start_timestamp: Optional[int] = None  # ms, Twilio clock

    def begin_response(self, at_timestamp: int) -> None:
        """Start the elapsed-time clock, unless a response is already playing."""
        if self.response_start_timestamp is None:
            self.response_start_timestamp = at_timestamp

    def reset_interruption(self) -> None:
        self.mark_queue.clear()
        self.last_assistant_item = None
        self.response_start_timestamp = None

    def start_stream(self, stream_sid: str) -> None:
        self.stream_sid = stream_sid
        self.reset_interruption()
        self.latest_media_timestamp = 0

    def push_mark(self, name: str) -> None:
        self.mark_queue.append(name)

    def pop_mark(self) -> Optional[str]:
        # Twilio may echo more marks than we track after a clear.
        if self.mark_queue:
            return self.mark_queue.popleft()
        return None

    @property
    def is_playing(self) -> bool:
        return bool(self.mark_queue) and self.response_start_timestamp is not None


class CallPhase(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class EventSource(str, Enum):
    TWILIO = "twilio"
    OPENAI = "openai"


class EventKind(str, Enum):
    MESSAGE = "message"
    CONNECTED = "connected"


@dataclass(frozen=True)
class RelayEvent:
    """One item on a call's ordered event queue."""
    source: EventSource
    kind: EventKind = EventKind.MESSAGE
    raw: Optional[Union[str, bytes]] = None
