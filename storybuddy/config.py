"""
Runtime configuration for Story Buddy.

Settings come from the process environment, optionally seeded from a .env
file at the project root:

    OPENAI_API_KEY=sk-...
    OPENAI_BASE_URL=https://openrouter.ai/api/v1   # any OpenAI-compatible gateway
    FIREBASE_CREDENTIALS_PATH=./firebase-credentials.json

We use python-dotenv + os.getenv so secrets stay out of git.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .logger import logger

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TTS_MODEL = "tts-1"      # tts-1 for speed, tts-1-hd for quality
DEFAULT_STT_MODEL = "whisper-1"

DEFAULT_SPEECH_LANGUAGE = "de-DE"
DEFAULT_SPEECH_RATE = 0.8
DEFAULT_SPEECH_PITCH = 1.0
DEFAULT_CAPTURE_TIMEOUT_SECONDS = 10.0


@dataclass
class Settings:
    """Resolved configuration for one application run."""
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None     # None -> api.openai.com
    chat_model: str = DEFAULT_CHAT_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    stt_model: str = DEFAULT_STT_MODEL
    firebase_credentials_path: Optional[str] = None
    speech_language: str = DEFAULT_SPEECH_LANGUAGE   # BCP-47
    speech_rate: float = DEFAULT_SPEECH_RATE
    speech_pitch: float = DEFAULT_SPEECH_PITCH
    capture_timeout_seconds: float = DEFAULT_CAPTURE_TIMEOUT_SECONDS
    debug: bool = True

    @property
    def ai_configured(self) -> bool:
        return bool(self.openai_api_key)


def mask_secret(value: str) -> str:
    """Show the first 8 and last 4 characters of a secret."""
    if len(value) > 12:
        return f"{value[:8]}...{value[-4:]}"
    return "***"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load .env (if present) and build Settings from the environment."""
    logger.env("Loading environment variables from .env file...")
    if load_dotenv(dotenv_path):
        logger.env_success("dotenv file loaded successfully")
    else:
        logger.warning("No .env file found or file is empty")

    api_key = os.getenv("OPENAI_API_KEY") or None
    if api_key:
        logger.env_success(f"OPENAI_API_KEY found: {mask_secret(api_key)}")
    else:
        logger.env_error("OPENAI_API_KEY not found in environment!")
        logger.warning("Stories will use templates and word-by-word translations")

    settings = Settings(
        openai_api_key=api_key,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        chat_model=os.getenv("STORYBUDDY_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        tts_model=os.getenv("STORYBUDDY_TTS_MODEL", DEFAULT_TTS_MODEL),
        stt_model=os.getenv("STORYBUDDY_STT_MODEL", DEFAULT_STT_MODEL),
        firebase_credentials_path=os.getenv("FIREBASE_CREDENTIALS_PATH") or None,
        speech_language=os.getenv("STORYBUDDY_SPEECH_LANGUAGE", DEFAULT_SPEECH_LANGUAGE),
        speech_rate=_float_env("STORYBUDDY_SPEECH_RATE", DEFAULT_SPEECH_RATE),
        speech_pitch=_float_env("STORYBUDDY_SPEECH_PITCH", DEFAULT_SPEECH_PITCH),
        capture_timeout_seconds=_float_env("STORYBUDDY_CAPTURE_TIMEOUT", DEFAULT_CAPTURE_TIMEOUT_SECONDS),
        debug=os.getenv("STORYBUDDY_DEBUG", "1") not in ("0", "false", "False"),
    )
    logger.enabled = settings.debug

    logger.env(f"Chat model: {settings.chat_model}")
    if settings.openai_base_url:
        logger.env(f"Using OpenAI-compatible gateway: {settings.openai_base_url}")
    logger.env(f"Speech: {settings.speech_language} rate={settings.speech_rate} pitch={settings.speech_pitch}")
    return settings
