import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_TTS_SERVER_URL = "https://flask-tts-server.onrender.com/tts"
DEFAULT_PDF_SERVER_URL = "https://chatbot-tts-server.onrender.com/pdf"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    eleven_api_key: Optional[str] = None
    stt_model: str = "scribe_v1"
    voice_id: str = "JBFqnCBsd6RMkjVDRZzb"
    tts_model: str = "eleven_multilingual_v2"
    tts_provider: str = "remote"
    tts_server_url: str = DEFAULT_TTS_SERVER_URL
    pdf_server_url: str = DEFAULT_PDF_SERVER_URL
    http_timeout: float = 60.0
    max_image_bytes: int = 10 * 1024 * 1024
    min_voice_bytes: int = 1000
    force_https: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Build Settings from the environment.

    A local .env file is loaded first (no-op if variables are already set).
    """
    load_dotenv(dotenv_path)
    provider = os.environ.get("TTS_PROVIDER", "remote").strip().lower()
    if provider not in ("remote", "elevenlabs"):
        raise ValueError(f"TTS_PROVIDER must be 'remote' or 'elevenlabs', got {provider!r}")
    return Settings(
        gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
        gemini_model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
        # ELEVENLABS_API_KEY is accepted as an alias
        eleven_api_key=os.environ.get("ELEVEN_API_KEY") or os.environ.get("ELEVENLABS_API_KEY") or None,
        stt_model=os.environ.get("ELEVENLABS_STT_MODEL", "scribe_v1"),
        voice_id=os.environ.get("ELEVENLABS_VOICE_ID", "JBFqnCBsd6RMkjVDRZzb"),
        tts_model=os.environ.get("ELEVENLABS_TTS_MODEL", "eleven_multilingual_v2"),
        tts_provider=provider,
        tts_server_url=os.environ.get("TTS_SERVER_URL", DEFAULT_TTS_SERVER_URL),
        pdf_server_url=os.environ.get("PDF_SERVER_URL", DEFAULT_PDF_SERVER_URL),
        http_timeout=_env_float("HTTP_TIMEOUT", 60.0),
        max_image_bytes=_env_int("MAX_IMAGE_BYTES", 10 * 1024 * 1024),
        min_voice_bytes=_env_int("MIN_VOICE_BYTES", 1000),
        force_https=_env_bool("FORCE_HTTPS", False),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=_env_int("PORT", 5000),
    )


def client_base_url() -> str:
    load_dotenv()
    return os.environ.get("TRANSLATEHUB_URL", "http://127.0.0.1:5000").rstrip("/")
