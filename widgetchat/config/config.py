import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))

# redis | memory
SESSION_STORE = os.getenv("SESSION_STORE", "redis")
SESSION_TTL_SEC = int(os.getenv("SESSION_TTL_SEC", str(60 * 60 * 24 * 30)))

AUTO_REPLY_TIMEOUT_SEC = float(os.getenv("AUTO_REPLY_TIMEOUT_SEC", "5"))
IDENTIFY_PROMPT_THRESHOLD = int(os.getenv("IDENTIFY_PROMPT_THRESHOLD", "5"))
PREVIEW_SCORE_CUTOFF = float(os.getenv("PREVIEW_SCORE_CUTOFF", "60"))
TYPING_EXPIRY_SEC = 3

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
WIDGET_LOADER_URL = os.getenv("WIDGET_LOADER_URL", "http://localhost:8000/widget-loader.js")
