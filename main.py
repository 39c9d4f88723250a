# file: main.py
# Run with `uvicorn main:app` or `python main.py`.
import logging
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI

from config import Settings, load_settings
from routes import Routes


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Twilio OpenAI Realtime Relay")
    Routes(app, settings)
    return app


@lru_cache(maxsize=1)
def get_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)
    return create_app(settings)


def __getattr__(name):
    # `main.app` is built on first access so importing this module never needs the env.
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
