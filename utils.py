"""
Utility functions for the voice relay.
"""
import json
import logging
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


class MalformedFrameError(ValueError):
    """A websocket frame that is not a JSON object."""


def parse_frame(raw: Union[str, bytes, bytearray, Dict[str, Any]]) -> Dict[str, Any]:
    """Decode a JSON websocket frame into a dict."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode()
        except UnicodeDecodeError as e:
            raise MalformedFrameError(f"frame is not UTF-8: {e}") from e
    if not isinstance(raw, str):
        raise MalformedFrameError(f"unsupported frame type {type(raw).__name__}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedFrameError(f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedFrameError("JSON nested too deeply") from e
    if not isinstance(data, dict):
        raise MalformedFrameError(f"expected a JSON object, got {type(data).__name__}")
    return data


async def safe_task(coro, name: str = "task"):
    """Await a coroutine, logging instead of raising on failure."""
    try:
        await coro
    except Exception:
        logger.exception("Task error in %s", name)
