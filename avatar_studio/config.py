import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    api_key: str
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "info"

    @property
    def generate_endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    @property
    def models_endpoint(self) -> str:
        return f"{self.api_base}/models"


def load_settings() -> Settings:
    """Read settings from the environment. Called per request so changes apply without a restart."""
    try:
        timeout = float(os.getenv("GEMINI_TIMEOUT", str(DEFAULT_TIMEOUT)))
        if timeout <= 0:
            timeout = DEFAULT_TIMEOUT
    except ValueError:
        timeout = DEFAULT_TIMEOUT
    return Settings(
        api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        model=os.getenv("GEMINI_MODEL", "").strip() or DEFAULT_MODEL,
        api_base=(os.getenv("GEMINI_API_BASE", "").strip() or DEFAULT_API_BASE).rstrip("/"),
        timeout=timeout,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
