"""
OpenAI Realtime service: connection setup and outbound command payloads.
"""
from typing import Any, Dict, List

import websockets

from config import INITIAL_GREETING, RelayConfig


class OpenAIService:
    """Builds commands for the OpenAI Realtime API."""

    @staticmethod
    async def connect_realtime(config: RelayConfig):
        """
        Open a websocket to OpenAI Realtime with the auth headers.
        Returns an *open* websockets client connection.
        """
        return await websockets.connect(
            config.realtime_url,
            additional_headers=config.realtime_headers,
        )

    @staticmethod
    def session_update(config: RelayConfig) -> Dict[str, Any]:
        return {
            "type": "session.update",
            "session": {
                "turn_detection": {"type": "server_vad"},
                "input_audio_format": "g711_ulaw",
                "output_audio_format": "g711_ulaw",
                "voice": config.voice,
                "instructions": config.instructions,
                "modalities": ["text", "audio"],
                "temperature": config.temperature,
            },
        }

    @staticmethod
    def initial_conversation_items(text: str = INITIAL_GREETING) -> List[Dict[str, Any]]:
        """Greeting item plus response.create, so the assistant talks first."""
        return [
            {
                "type": "conversation.item.create",
                "item": {
                    "type": "message",
                    "role": "user",
                    "content": [{"type": "input_text", "text": text}],
                },
            },
            {"type": "response.create"},
        ]

    @staticmethod
    def audio_append(payload: str) -> Dict[str, Any]:
        return {"type": "input_audio_buffer.append", "audio": payload}

    @staticmethod
    def truncate(item_id: str, audio_end_ms: int) -> Dict[str, Any]:
        return {
            "type": "conversation.item.truncate",
            "item_id": item_id,
            "content_index": 0,
            "audio_end_ms": audio_end_ms,
        }
