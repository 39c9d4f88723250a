"""
FastAPI routes: Twilio webhooks, call origination and the media stream socket.
"""
import logging

from fastapi import FastAPI, Request, WebSocket
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse

from call_service import CallService
from config import Settings
from websocket_handler import WebSocketHandler

logger = logging.getLogger(__name__)


class Routes:
    """Contains all FastAPI route handlers."""

    def __init__(self, app: FastAPI, settings: Settings):
        self.app = app
        self.settings = settings
        self._setup_routes()

    def _setup_routes(self):
        """Setup all route handlers."""
        self.app.get("/", response_class=JSONResponse)(self.index_page)
        self.app.get("/start-call", response_class=JSONResponse)(self.start_call)
        self.app.post("/outgoing-twiml", response_class=HTMLResponse)(self.handle_outgoing_twiml)
        self.app.api_route("/incoming-call", methods=["GET", "POST"])(self.handle_outgoing_twiml)
        self.app.websocket("/media-stream")(self.media_stream)

    async def index_page(self):
        """Root endpoint returning status information."""
        return {"message": "Twilio Media Stream Server is running!"}

    async def start_call(self):
        """Place an outbound call that streams to this server once answered."""
        if self.settings.twilio is None:
            return JSONResponse({"message": "Twilio is not configured"}, status_code=503)
        try:
            call_sid = await run_in_threadpool(CallService.start_outbound_call, self.settings.twilio)
        except Exception as e:
            logger.error("Error initiating outgoing call: %s", e)
            return JSONResponse({"message": "Failed to initiate call", "error": str(e)}, status_code=500)
        return {"message": "Call initiated successfully", "callSid": call_sid}

    async def handle_outgoing_twiml(self, request: Request):
        """TwiML telling Twilio to open a bidirectional stream to /media-stream."""
        host = request.headers.get("host") or request.url.hostname
        logger.info("Using WebSocket URL: wss://%s/media-stream", host)
        return HTMLResponse(content=CallService.connect_stream_twiml(host), media_type="application/xml")

    async def media_stream(self, websocket: WebSocket):
        await WebSocketHandler.handle_media_stream(websocket, self.settings.relay)
