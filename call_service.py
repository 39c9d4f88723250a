"""
Twilio call service: outbound call origination and the TwiML that points a
call's media stream at the relay.
"""
import logging
from typing import Optional

from twilio.rest import Client
from twilio.twiml.voice_response import Connect, VoiceResponse

from config import TwilioConfig

logger = logging.getLogger(__name__)


class CallService:
    """Service for placing calls and answering Twilio voice webhooks."""

    @staticmethod
    def start_outbound_call(config: TwilioConfig, client: Optional[Client] = None) -> str:
        """
        Dial OUTGOING_PHONE_NUMBER; Twilio fetches /outgoing-twiml once answered.
        Returns the call SID. Blocking: run it off the event loop.
        """
        client = client or Client(config.account_sid, config.auth_token)
        call = client.calls.create(
            url=config.twiml_url,
            to=config.outgoing_phone_number,
            from_=config.phone_number,
        )
        logger.info("Outgoing call initiated: %s", call.sid)
        return call.sid

    @staticmethod
    def connect_stream_twiml(host: str) -> str:
        response = VoiceResponse()
        connect = Connect()
        connect.stream(url=f"wss://{host}/media-stream")
        response.append(connect)
        return str(response)
