"""
WebSocket handler that relays one Twilio media stream to OpenAI Realtime.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect
from starlette.websockets import WebSocketState
from websockets.exceptions import ConnectionClosed

from channels import ChannelHandle
from config import RelayConfig
from models import CallPhase, EventKind, EventSource, RelayEvent, SessionState
from openai_service import OpenAIService
from openai_stream import OpenAIStreamAdapter
from twilio_stream import TwilioStreamAdapter
from utils import MalformedFrameError, parse_frame, safe_task

logger = logging.getLogger(__name__)

Connector = Callable[[RelayConfig], Awaitable]


class MediaStreamRelay:
    """
    Owns one call: both channels, the shared SessionState and the worker that
    applies events from both sockets in arrival order.

    Phases go CONNECTING -> ACTIVE (OpenAI socket open) -> CLOSED. Either
    socket ending closes the call.
    """

    def __init__(self, websocket: WebSocket, config: RelayConfig, connect: Optional[Connector] = None):
        self.websocket = websocket
        self.config = config
        self.phase = CallPhase.CONNECTING
        self.state = SessionState()
        self.twilio = ChannelHandle("twilio", config.outbound_queue_size)
        self.openai = ChannelHandle("openai", config.outbound_queue_size)
        self.twilio_adapter = TwilioStreamAdapter(self.state, self.twilio, self.openai)
        self.openai_adapter = OpenAIStreamAdapter(self.state, config, self.openai, self.twilio_adapter)
        self._connect = connect or OpenAIService.connect_realtime
        self._events: asyncio.Queue = asyncio.Queue()
        self._init_timer: Optional[asyncio.TimerHandle] = None

    async def run(self) -> None:
        self.twilio.open(self.websocket.send_text, self._close_twilio)
        tasks = {
            asyncio.create_task(safe_task(self._receive_from_twilio(), "twilio->relay"), name="twilio->relay"),
            asyncio.create_task(safe_task(self._receive_from_openai(), "openai->relay"), name="openai->relay"),
            asyncio.create_task(safe_task(self._process_events(), "relay-worker"), name="relay-worker"),
        }
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.close()

    async def _receive_from_twilio(self) -> None:
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    logger.error("Ignoring non-text frame from Twilio: %r", message.get("bytes"))
                    continue
                await self._events.put(RelayEvent(EventSource.TWILIO, raw=text))
        except WebSocketDisconnect:
            pass
        logger.info("Client disconnected.")

    async def _receive_from_openai(self) -> None:
        try:
            openai_ws = await self._connect(self.config)
        except Exception as e:
            logger.error("Could not connect to the OpenAI Realtime API: %s", e)
            return

        self.openai.open(openai_ws.send, openai_ws.close)
        self.phase = CallPhase.ACTIVE
        logger.info("Connected to the OpenAI Realtime API")
        self._init_timer = asyncio.get_running_loop().call_later(
            self.config.session_init_delay_ms / 1000,
            self._events.put_nowait,
            RelayEvent(EventSource.OPENAI, kind=EventKind.CONNECTED),
        )

        try:
            async for message in openai_ws:
                await self._events.put(RelayEvent(EventSource.OPENAI, raw=message))
        except ConnectionClosed as e:
            logger.warning("OpenAI Realtime connection closed unexpectedly: %s", e)
        logger.info("Disconnected from the OpenAI Realtime API")

    async def _process_events(self) -> None:
        while True:
            event = await self._events.get()
            self.dispatch(event)

    def dispatch(self, event: RelayEvent) -> None:
        """Apply one event to the session. Runs to completion before the next."""
        if self.phase is CallPhase.CLOSED:
            return
        if event.kind is EventKind.CONNECTED:
            self.openai_adapter.on_connected()
            return

        try:
            data = parse_frame(event.raw)
            if event.source is EventSource.TWILIO:
                self.twilio_adapter.handle(data)
            else:
                self.openai_adapter.handle(data)
        except MalformedFrameError as e:
            logger.error("Error parsing %s message: %s. Raw message: %.200r", event.source.value, e, event.raw)
        except Exception as e:
            # A bad frame is scoped to itself; the call keeps going.
            logger.error("Error processing %s message: %r. Raw message: %.200r", event.source.value, e, event.raw)

    async def _close_twilio(self) -> None:
        if self.websocket.client_state == WebSocketState.CONNECTED:
            await self.websocket.close()

    async def close(self) -> None:
        if self.phase is CallPhase.CLOSED:
            return
        self.phase = CallPhase.CLOSED
        if self._init_timer is not None:
            self._init_timer.cancel()
        await self.openai.close()
        await self.twilio.close()
        logger.info("Call closed (stream %s)", self.state.stream_sid)


class WebSocketHandler:
    """Entry point for the /media-stream websocket."""

    @staticmethod
    async def handle_media_stream(websocket: WebSocket, config: RelayConfig, connect: Optional[Connector] = None):
        await websocket.accept()
        logger.info("Client connected")
        await MediaStreamRelay(websocket, config, connect).run()
