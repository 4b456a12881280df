import os
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root (holds .env)
env_path = BASE_DIR / ".env"
load_dotenv(dotenv_path=env_path)


def _csv(value: str) -> list:
    return [part for part in (value or "").split(",") if part]


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chat_service.db")
    SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"
    RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "1") == "1"

    # "database" (SQLAlchemy) or "memory" (process-local, dev only)
    CHAT_STORE = os.getenv("CHAT_STORE", "database")

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", 60))

    # Chat configuration applied to every new chat
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    MODEL_MAX_TOKENS = int(os.getenv("MODEL_MAX_TOKENS", 128000))
    TEMPERATURE = float(os.getenv("TEMPERATURE", 0.1))
    TOP_P = float(os.getenv("TOP_P", 1.0))
    N = int(os.getenv("N", 1))
    STOP = _csv(os.getenv("STOP", ""))
    MAX_TOKENS = int(os.getenv("MAX_TOKENS", 500))
    PRESENCE_PENALTY = float(os.getenv("PRESENCE_PENALTY", 0.0))
    FREQUENCY_PENALTY = float(os.getenv("FREQUENCY_PENALTY", 0.0))
    INITIAL_SYSTEM_MESSAGE = os.getenv("INITIAL_SYSTEM_MESSAGE", "You are a helpful assistant.")

    # Shared token expected in the Authorization header; empty disables the check
    AUTH_TOKEN = os.getenv("AUTH_TOKEN", "")

settings = Settings()
