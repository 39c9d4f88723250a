"""
Configuration and constants for the Twilio <-> OpenAI Realtime relay.
"""
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

# =============================
# Server Configuration
# =============================
HOST = "0.0.0.0"
PORT = 5050
LOG_LEVEL = "INFO"

# =============================
# OpenAI Configuration
# =============================
OPENAI_REALTIME_URL = "wss://api.openai.com/v1/realtime"
OPENAI_PREVIEW_MODEL = "gpt-4o-realtime-preview-2024-10-01"
VOICE = "alloy"
TEMPERATURE = 1.0

# Commands sent right after the socket opens can be dropped upstream.
SESSION_INIT_DELAY_MS = 100

# Upper bound on queued outbound frames per channel before new ones are dropped.
OUTBOUND_QUEUE_SIZE = 256

# Model event types passed to the observability hook.
# See https://platform.openai.com/docs/api-reference/realtime
LOG_EVENT_TYPES = [
    "error",
    "response.content.done",
    "rate_limits.updated",
    "response.done",
    "input_audio_buffer.committed",
    "input_audio_buffer.speech_stopped",
    "input_audio_buffer.speech_started",
    "session.created",
    "session.updated",
]

SYSTEM_MESSAGE = (
    "You're Sam, a friendly, easygoing sales rep from Transpire Wealth.\n"
    "You're having a natural, engaging chat with {client_name}: make them feel comfortable "
    "and schedule a follow-up call with one of our financial advisors.\n"
    "Keep it light and warm, maybe throw in a joke. You're not pushy, you're here to help.\n"
    "Call flow:\n"
    "1) Greet {client_name}, ask how their day is going and build a little rapport.\n"
    "2) Ask if they remember their inquiry about superannuation or financial services.\n"
    "3) Ask open questions about their goals, returns, fees and anything they'd like reviewed.\n"
    "4) Explain the free, no-obligation consultation: a review of returns, fees, insurance "
    "and retirement projections.\n"
    "5) Handle concerns with empathy; there's no pressure to change anything.\n"
    "6) Ask when would suit them to speak with an advisor and offer time slots if unsure.\n"
    "7) Confirm the time, thank {client_name} and end on a positive note.\n"
)

INITIAL_GREETING = (
    'Greet the user with "Hello there! I am an AI voice assistant powered by Twilio and the '
    'OpenAI Realtime API. You can ask me for facts, jokes, or anything you can imagine. '
    'How can I help you?"'
)

TRUTHY = {"1", "true", "yes", "on"}

TWILIO_KEYS = [
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
    "OUTGOING_PHONE_NUMBER",
    "NGROK_SERVER_URL",
]


@dataclass(frozen=True)
class RelayConfig:
    """Per-call settings injected into the relay at session creation."""
    openai_api_key: str
    model: str = OPENAI_PREVIEW_MODEL
    voice: str = VOICE
    temperature: float = TEMPERATURE
    instructions: str = ""
    ai_speaks_first: bool = False
    show_timing_math: bool = False
    session_init_delay_ms: int = SESSION_INIT_DELAY_MS
    outbound_queue_size: int = OUTBOUND_QUEUE_SIZE

    @property
    def realtime_url(self) -> str:
        return f"{OPENAI_REALTIME_URL}?model={self.model}"

    @property
    def realtime_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.openai_api_key}",
            "OpenAI-Beta": "realtime=v1",
        }


@dataclass(frozen=True)
class TwilioConfig:
    """Credentials and numbers used to originate outbound calls."""
    account_sid: str
    auth_token: str
    phone_number: str
    outgoing_phone_number: str
    server_url: str

    @property
    def twiml_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/outgoing-twiml"


@dataclass(frozen=True)
class Settings:
    relay: RelayConfig
    twilio: Optional[TwilioConfig] = None
    host: str = HOST
    port: int = PORT
    log_level: str = LOG_LEVEL


def build_instructions(client_name: str) -> str:
    return SYSTEM_MESSAGE.format(client_name=client_name)


def _env_flag(env: Dict[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() in TRUTHY


def _env_number(env: Dict[str, str], key: str, default, cast, errors: List[str]):
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        errors.append(f"{key} must be a number, got {raw!r}")
        return default


def load_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (``.env`` already loaded).
    Raises ValueError listing every missing or invalid variable.
    """
    env = dict(os.environ if env is None else env)
    errors: List[str] = []

    api_key = env.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        errors.append("Missing OPENAI_API_KEY")

    temperature = _env_number(env, "TEMPERATURE", TEMPERATURE, float, errors)
    if not 0.0 <= temperature <= 2.0:
        errors.append(f"TEMPERATURE must be 0.0-2.0, got {temperature}")
    delay_ms = _env_number(env, "SESSION_INIT_DELAY_MS", SESSION_INIT_DELAY_MS, int, errors)
    if delay_ms < 0:
        errors.append(f"SESSION_INIT_DELAY_MS must be >= 0, got {delay_ms}")
    queue_size = _env_number(env, "OUTBOUND_QUEUE_SIZE", OUTBOUND_QUEUE_SIZE, int, errors)
    if queue_size < 1:
        errors.append(f"OUTBOUND_QUEUE_SIZE must be >= 1, got {queue_size}")
    port = _env_number(env, "PORT", PORT, int, errors)
    if not 1 <= port <= 65535:
        errors.append(f"PORT must be 1-65535, got {port}")

    # Twilio is only needed to originate calls; set all of it or none of it.
    missing_twilio = [k for k in TWILIO_KEYS if not env.get(k, "").strip()]
    if len(missing_twilio) < len(TWILIO_KEYS):
        errors.extend(f"Missing {k}" for k in missing_twilio)

    if errors:
        raise ValueError("Configuration errors:\n  " + "\n  ".join(errors))

    relay = RelayConfig(
        openai_api_key=api_key,
        model=env.get("OPENAI_REALTIME_MODEL", OPENAI_PREVIEW_MODEL),
        voice=env.get("VOICE", VOICE),
        temperature=temperature,
        instructions=build_instructions(env.get("CLIENT_NAME") or "there"),
        ai_speaks_first=_env_flag(env, "AI_SPEAKS_FIRST"),
        show_timing_math=_env_flag(env, "SHOW_TIMING_MATH"),
        session_init_delay_ms=delay_ms,
        outbound_queue_size=queue_size,
    )
    twilio = None
    if not missing_twilio:
        twilio = TwilioConfig(
            account_sid=env["TWILIO_ACCOUNT_SID"],
            auth_token=env["TWILIO_AUTH_TOKEN"],
            phone_number=env["TWILIO_PHONE_NUMBER"],
            outgoing_phone_number=env["OUTGOING_PHONE_NUMBER"],
            server_url=env["NGROK_SERVER_URL"],
        )
    return Settings(
        relay=relay,
        twilio=twilio,
        host=env.get("HOST", HOST),
        port=port,
        log_level=env.get("LOG_LEVEL", LOG_LEVEL).upper(),
    )
