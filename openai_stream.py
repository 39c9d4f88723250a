"""
OpenAI Realtime side of the relay: audio deltas out to the caller, and
barge-in handling when the caller talks over playback.
"""
import logging
from typing import Any, Dict

from channels import ChannelHandle
from config import LOG_EVENT_TYPES, RelayConfig
from models import SessionState
from openai_service import OpenAIService
from twilio_stream import TwilioStreamAdapter

logger = logging.getLogger(__name__)


class OpenAIStreamAdapter:
    """Reacts to OpenAI Realtime events for one call."""

    def __init__(
        self,
        state: SessionState,
        config: RelayConfig,
        openai: ChannelHandle,
        twilio: TwilioStreamAdapter,
    ):
        self.state = state
        self.config = config
        self.openai = openai
        self.twilio = twilio

    def on_connected(self) -> None:
        """Configure the session once the socket has been open for the init delay."""
        session_update = OpenAIService.session_update(self.config)
        logger.info("Sending session update (voice=%s, temperature=%s)", self.config.voice, self.config.temperature)
        self.openai.send(session_update)
        if self.config.ai_speaks_first:
            for item in OpenAIService.initial_conversation_items():
                self.openai.send(item)

    def handle(self, response: Dict[str, Any]) -> None:
        t = response.get("type")

        if t in LOG_EVENT_TYPES:
            if t == "error":
                logger.error("OpenAI error event: %s", response.get("error"))
            else:
                logger.info("Received event: %s", t)
                logger.debug("Event payload: %s", response)

        if t == "response.audio.delta" and response.get("delta"):
            self.on_audio_delta(response)
        elif t == "input_audio_buffer.speech_started":
            self.on_speech_started()

    def on_audio_delta(self, response: Dict[str, Any]) -> None:
        self.twilio.send_media(response["delta"])

        # First delta of a new response starts the elapsed-time clock
        if self.state.response_start_timestamp is None:
            self.state.begin_response(self.state.latest_media_timestamp)
            if self.config.show_timing_math:
                logger.info("Setting start timestamp for new response: %sms", self.state.response_start_timestamp)

        if response.get("item_id"):
            self.state.last_assistant_item = response["item_id"]

        self.twilio.send_mark()

    def on_speech_started(self) -> None:
        """
        Caller started talking. If assistant audio is still scheduled, tell
        OpenAI how much of the item was heard and flush Twilio's playback.
        """
        if not self.state.is_playing:
            return

        elapsed = self.state.latest_media_timestamp - self.state.response_start_timestamp
        if self.config.show_timing_math:
            logger.info(
                "Calculating elapsed time for truncation: %s - %s = %sms",
                self.state.latest_media_timestamp,
                self.state.response_start_timestamp,
                elapsed,
            )

        if self.state.last_assistant_item:
            self.openai.send(OpenAIService.truncate(self.state.last_assistant_item, max(0, elapsed)))

        self.twilio.send_clear()
        self.state.reset_interruption()
