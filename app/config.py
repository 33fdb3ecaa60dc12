import os
from dataclasses import dataclass
from typing import List
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    MODEL_NAME: str
    DB_URI: str
    CORS_ORIGINS: List[str]
    # Seconds allowed between two upstream deltas before the stream is failed.
    STREAM_IDLE_TIMEOUT: float
    NARRATION_MAX_CHARS: int

def _required(name: str) -> str:
    v = os.getenv(name)
    if not v:
        raise ValueError(f"{name} required")
    return v

def _positive_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        v = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if v <= 0:
        raise ValueError(f"{name} must be positive")
    return v

def _load_settings() -> Settings:
    if not os.getenv("OPENAI_API_KEY"):
        raise ValueError("OPENAI_API_KEY required")

    cors_origins_str = _required("CORS_ORIGINS")
    cors_origins = [o.strip() for o in cors_origins_str.split(",") if o.strip()]

    if "*" in cors_origins:
        raise ValueError("CORS_ORIGINS must not contain '*' when using credentials")

    return Settings(
        MODEL_NAME=os.getenv("MODEL_NAME", "gpt-4o"),
        DB_URI=_required("DB_URI"),
        CORS_ORIGINS=cors_origins,
        STREAM_IDLE_TIMEOUT=_positive_number("STREAM_IDLE_TIMEOUT", "60", float),
        NARRATION_MAX_CHARS=_positive_number("NARRATION_MAX_CHARS", "16000", int),
    )

settings = _load_settings()
