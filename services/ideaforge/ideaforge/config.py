import os
import logging
from typing import Optional
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("ideaforge.config")

# Either name is accepted; the first one set wins.
API_KEY_ENV_VARS = ("VITE_GEMINI_API_KEY", "REACT_APP_GEMINI_API_KEY")

MISSING_API_KEY_MESSAGE = (
    "API key not configured. Please set VITE_GEMINI_API_KEY or "
    "REACT_APP_GEMINI_API_KEY environment variable."
)


class Settings(BaseModel):
    api_key: Optional[str] = None
    model_name: str = "gemini-2.5-flash-image-preview"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: float = 120.0

    canvas_height: int = 400
    background_color: str = "#ffffff"
    device_scale: float = 1.0
    max_history: int = 50

    max_retries: int = 3
    initial_backoff_ms: int = 1000


def resolve_api_key() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def get_settings() -> Settings:
    """
    Reads the service settings from the environment (and .env, via dotenv).
    Called per use so tests can monkeypatch the environment.
    """
    settings = Settings(
        api_key=resolve_api_key(),
        model_name=os.getenv("IDEAFORGE_MODEL", Settings.model_fields["model_name"].default),
        api_base_url=os.getenv("IDEAFORGE_API_BASE_URL", Settings.model_fields["api_base_url"].default),
        request_timeout=float(os.getenv("IDEAFORGE_REQUEST_TIMEOUT", "120")),
        canvas_height=int(os.getenv("IDEAFORGE_CANVAS_HEIGHT", "400")),
        background_color=os.getenv("IDEAFORGE_BACKGROUND_COLOR", "#ffffff"),
        device_scale=float(os.getenv("IDEAFORGE_DEVICE_SCALE", "1.0")),
        max_history=int(os.getenv("IDEAFORGE_MAX_HISTORY", "50")),
        max_retries=int(os.getenv("IDEAFORGE_MAX_RETRIES", "3")),
        initial_backoff_ms=int(os.getenv("IDEAFORGE_INITIAL_BACKOFF_MS", "1000")),
    )
    if settings.api_key is None:
        logger.warning("Gemini API key missing; set one of %s to enable generation", ", ".join(API_KEY_ENV_VARS))
    return settings
