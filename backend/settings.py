import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_ROOT = Path(__file__).resolve().parent


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        # Image search proxy
        self.IMAGE_PROXY_BASE_URL: str = os.getenv("IMAGE_PROXY_BASE_URL", "http://localhost:5000")
        self.IMAGE_LOOKUP_TIMEOUT: float = _as_float(os.getenv("IMAGE_LOOKUP_TIMEOUT"), 8.0)
        self.IMAGE_LOOKUP_MAX_WORKERS: int = max(1, _as_int(os.getenv("IMAGE_LOOKUP_MAX_WORKERS"), 8))
        self.IMAGE_FETCH_TIMEOUT: float = _as_float(os.getenv("IMAGE_FETCH_TIMEOUT"), 10.0)
        self.PEXELS_API_KEY: str | None = os.getenv("PEXELS_API_KEY")

        # Itinerary generation (OpenAI-compatible chat completions)
        self.OPENROUTER_API_KEY: str | None = os.getenv("OPENROUTER_API_KEY")
        self.GENERATION_BASE_URL: str = os.getenv("GENERATION_BASE_URL", "https://openrouter.ai/api/v1")
        self.GENERATION_MODEL: str = os.getenv("GENERATION_MODEL", "openai/gpt-3.5-turbo")
        self.GENERATION_TEMPERATURE: float = _as_float(os.getenv("GENERATION_TEMPERATURE"), 0.7)
        self.GENERATION_REFERER: str = os.getenv("GENERATION_REFERER", "http://localhost:3000")

        # PDF output
        self.PDF_OUTPUT_DIR: str = os.getenv("PDF_OUTPUT_DIR", str(BACKEND_ROOT / "data" / "pdfs"))
        self.PDF_INCLUDE_IMAGES: bool = _as_bool(os.getenv("PDF_INCLUDE_IMAGES"), True)


settings = Settings()
