# config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Falls back to a local SQLite file so the API boots without any setup.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quiz.db")

GEMINI_API_KEY = (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip()
GEMINI_MODEL = (os.getenv("GEMINI_MODEL") or "gemini-2.5-flash").strip()
AI_ENABLED = _flag("AI_ENABLED", "true")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
AI_MAX_OUTPUT_TOKENS = int(os.getenv("AI_MAX_OUTPUT_TOKENS", "16384"))
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.5"))
AI_TOP_P = float(os.getenv("AI_TOP_P", "0.9"))
AI_TOP_K = int(os.getenv("AI_TOP_K", "40"))

# autoincrement | counter | redis | local
ID_STRATEGY = os.getenv("ID_STRATEGY", "autoincrement").strip().lower()
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

INSERT_WORKERS = int(os.getenv("INSERT_WORKERS", "8"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
