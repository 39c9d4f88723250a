"""
Shared fixtures and fakes for relay tests.
"""
import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from config import RelayConfig, Settings, TwilioConfig
from models import SessionState
from openai_stream import OpenAIStreamAdapter
from twilio_stream import TwilioStreamAdapter


class RecordingChannel:
    """Stands in for a ChannelHandle and keeps every message sent while open."""

    def __init__(self, is_open: bool = True):
        self.is_open = is_open
        self.sent = []

    def send(self, message):
        if not self.is_open:
            return False
        self.sent.append(message)
        return True


class FakeTwilioSocket:
    """
    Minimal FastAPI WebSocket double fed from a queue. Strings arrive as text
    frames, bytes as binary frames, and None disconnects.
    """

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.client_state = WebSocketState.CONNECTED
        self.close_calls = 0

    async def receive(self):
        message = await self.incoming.get()
        if message is None:
            return {"type": "websocket.disconnect", "code": 1000}
        if isinstance(message, bytes):
            return {"type": "websocket.receive", "bytes": message}
        return {"type": "websocket.receive", "text": message}

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.close_calls += 1
        self.client_state = WebSocketState.DISCONNECTED


class FakeRealtimeSocket:
    """Minimal websockets client connection double; None ends iteration."""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self.incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message

    async def send(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.closed = True


def twilio_frame(event, **body):
    return json.dumps({"event": event, **body})


def start_frame(stream_sid="MZ123"):
    return twilio_frame("start", start={"streamSid": stream_sid})


def media_frame(timestamp, payload="AAAA"):
    return twilio_frame("media", media={"timestamp": str(timestamp), "payload": payload})


async def wait_until(predicate, timeout=1.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def relay_config():
    return RelayConfig(
        openai_api_key="sk-test",
        instructions="Keep answers short.",
        session_init_delay_ms=0,
    )


@pytest.fixture
def twilio_config():
    return TwilioConfig(
        account_sid="AC123",
        auth_token="token",
        phone_number="+15550000001",
        outgoing_phone_number="+15550000002",
        server_url="https://relay.example.com/",
    )


@pytest.fixture
def settings(relay_config, twilio_config):
    return Settings(relay=relay_config, twilio=twilio_config)


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def twilio_channel():
    return RecordingChannel()


@pytest.fixture
def openai_channel():
    return RecordingChannel()


@pytest.fixture
def twilio_adapter(state, twilio_channel, openai_channel):
    return TwilioStreamAdapter(state, twilio_channel, openai_channel)


@pytest.fixture
def openai_adapter(state, relay_config, openai_channel, twilio_adapter):
    return OpenAIStreamAdapter(state, relay_config, openai_channel, twilio_adapter)
