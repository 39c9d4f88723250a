"""
Twilio media stream side of the relay.
"""
import logging
from typing import Any, Dict

from channels import ChannelHandle
from models import SessionState
from openai_service import OpenAIService

logger = logging.getLogger(__name__)

MARK_NAME = "responsePart"


class TwilioStreamAdapter:
    """
    Handles frames from Twilio ('start', 'media', 'mark'), forwards caller
    audio to OpenAI and addresses playback commands back to the stream.
    """

    def __init__(self, state: SessionState, twilio: ChannelHandle, openai: ChannelHandle):
        self.state = state
        self.twilio = twilio
        self.openai = openai

    def handle(self, data: Dict[str, Any]) -> None:
        event = data.get("event")
        if event == "media":
            self.on_media(data["media"])
        elif event == "start":
            self.on_start(data["start"])
        elif event == "mark":
            self.state.pop_mark()
        else:
            logger.debug("Received non-media event: %s", event)

    def on_start(self, start: Dict[str, Any]) -> None:
        self.state.start_stream(start["streamSid"])
        logger.info("Incoming stream has started %s", self.state.stream_sid)

    def on_media(self, media: Dict[str, Any]) -> None:
        # Twilio's clock is authoritative for truncation math.
        timestamp = int(media["timestamp"])
        payload = media["payload"]
        self.state.latest_media_timestamp = timestamp
        if self.openai.is_open:
            self.openai.send(OpenAIService.audio_append(payload))

    def send_media(self, payload: str) -> None:
        self.twilio.send({
            "event": "media",
            "streamSid": self.state.stream_sid,
            "media": {"payload": payload},
        })

    def send_mark(self) -> bool:
        """Queue a playback mark; Twilio echoes it once the audio before it has played."""
        if not self.state.stream_sid:
            return False
        sent = self.twilio.send({
            "event": "mark",
            "streamSid": self.state.stream_sid,
            "mark": {"name": MARK_NAME},
        })
        if sent:
            self.state.push_mark(MARK_NAME)
        return sent

    def send_clear(self) -> None:
        self.twilio.send({"event": "clear", "streamSid": self.state.stream_sid})
