# simpledo/config.py

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# --- Gemini ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-preview-09-2025")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", 60))

# --- Pipeline ---
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", 5))
OCR_PREPROCESS = _env_flag("OCR_PREPROCESS")

# --- To-do storage ---
TODO_STORAGE_PATH = os.getenv("TODO_STORAGE_PATH", "data/local_storage.json")
TODO_MAX_DAYS_AHEAD = int(os.getenv("TODO_MAX_DAYS_AHEAD", 30))

# --- Security ---
API_SECRET_KEY = os.getenv("API_SECRET_KEY")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
