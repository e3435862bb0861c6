"""
Environment-driven settings shared by the API server and the CLI client.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_SERVER_URL = "http://localhost:8000"
DEFAULT_KEY_FILE = Path.home() / ".career_assistant" / "credentials.json"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE
    request_timeout: float = 60.0
    key_test_timeout: float = 10.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    server_url: str = DEFAULT_SERVER_URL
    key_file: Path = DEFAULT_KEY_FILE


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def get_settings() -> Settings:
    """Read settings from the environment (re-read on every call)."""
    api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY") or None
    origins = os.environ.get("CORS_ORIGINS", "*")
    key_file = os.environ.get("CAREER_ASSISTANT_KEY_FILE")

    return Settings(
        gemini_api_key=api_key.strip() if api_key else None,
        gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_api_base=os.environ.get("GEMINI_API_BASE", DEFAULT_GEMINI_API_BASE).rstrip("/"),
        request_timeout=_env_float("REQUEST_TIMEOUT", 60.0),
        key_test_timeout=_env_float("KEY_TEST_TIMEOUT", 10.0),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        server_url=os.environ.get("CAREER_ASSISTANT_SERVER", DEFAULT_SERVER_URL).rstrip("/"),
        key_file=Path(key_file).expanduser() if key_file else DEFAULT_KEY_FILE,
    )
