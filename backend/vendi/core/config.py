"""Application configuration.

Environment variables override all defaults. A local `.env` next to the
backend directory is loaded for development.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if the file is absent)
from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./vendi.db")

    # Groq API Key (Must be set via .env, never in code)
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TIMEOUT_SECONDS: float = float(os.getenv("GROQ_TIMEOUT_SECONDS", "8"))
    GROQ_MAX_RETRIES: int = int(os.getenv("GROQ_MAX_RETRIES", "2"))

    # Agent engine
    # When disabled, the HTTP layer answers handled=false and another
    # handling path takes the message.
    AGENT_ENABLED: bool = _env_bool("AGENT_ENABLED", "true")
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "10"))
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "BOB")
    SESSION_TIMEOUT_MINUTES: int = int(os.getenv("SESSION_TIMEOUT_MINUTES", "30"))

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"


settings = Settings()
