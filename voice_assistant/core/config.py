"""
Settings for the assistant, read from the environment and an optional .env.

Defaults point at a backend proxy on localhost:3001 and the default input
device. ``get_settings()`` returns the shared instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Voice assistant settings loaded from environment / .env file.

    Every field can be set through the env var of the same name, in any case
    (e.g. ``BACKEND_URL``, ``GEMINI_API_KEY``).

    Attributes:
        backend_url: Base URL of the backend proxy serving /api/stt and /api/openai.
        gemini_api_key: API key appended to the Gemini generateContent URL.
        capture_device: Input device name or index; empty selects the default input.
        chunk_interval_ms: Cadence at which the recorder emits audio chunks.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Backend proxy ---
    # Hosts both the transcription and the answer endpoints
    backend_url: str = "http://localhost:3001"
    stt_path: str = "/api/stt"
    answer_path: str = "/api/openai"
    request_timeout: float = 60.0  # Seconds per HTTP round-trip

    # --- Refinement (Gemini) ---
    refinement_provider: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # --- Capture ---
    # Point capture_device at a loopback / monitor source to record tab audio
    capture_device: str = ""
    capture_sample_rate: int = 48000
    capture_channels: int = 2
    chunk_interval_ms: int = 1000

    # --- Application ---
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process; later calls share the instance."""
    return Settings()
