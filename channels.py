"""
Outbound channel handles for the Twilio and OpenAI websockets.

Sends never block the caller: frames go into a bounded outbox drained by a
writer task, and anything sent while the channel is not open is dropped.
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from config import OUTBOUND_QUEUE_SIZE

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[Any]]
CloseFn = Callable[[], Awaitable[Any]]


class ChannelState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ChannelHandle:
    """Tri-state handle around one websocket's outbound path."""

    def __init__(self, name: str, max_pending: int = OUTBOUND_QUEUE_SIZE):
        self.name = name
        self.state = ChannelState.CONNECTING
        self.dropped = 0
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._send: Optional[SendFn] = None
        self._close: Optional[CloseFn] = None
        self._writer: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN

    def open(self, send: SendFn, close: CloseFn) -> None:
        if self.state is not ChannelState.CONNECTING:
            return
        self._send = send
        self._close = close
        self.state = ChannelState.OPEN
        self._writer = asyncio.create_task(self._drain(), name=f"{self.name}-writer")

    def send(self, message: Dict[str, Any]) -> bool:
        """Queue a JSON message. Returns False if it was dropped."""
        if self.state is not ChannelState.OPEN:
            logger.debug("Dropping %s message on %s channel", message.get("type") or message.get("event"), self.state.value)
            return False
        try:
            self._outbox.put_nowait(json.dumps(message))
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("%s outbox full, dropped message (%d so far)", self.name, self.dropped)
            return False
        return True

    async def _drain(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await self._send(text)
            except Exception as e:
                logger.error("Send on %s channel failed: %s", self.name, e)
                self.state = ChannelState.CLOSED
                return

    async def close(self) -> None:
        """Close without draining the outbox. Safe to call repeatedly."""
        self.state = ChannelState.CLOSED
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None
        close, self._close = self._close, None
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.debug("Error closing %s channel: %s", self.name, e)
