import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Backend API
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# Session expiry is re-checked on this period independent of user actions
SESSION_CHECK_INTERVAL_SECONDS = int(os.getenv("SESSION_CHECK_INTERVAL_SECONDS", "60"))

# Durable local state (schedule mirror + persisted session fields)
DATA_DIR = Path(os.getenv("DATA_DIR", str(Path(__file__).resolve().parent.parent / "data")))
STATE_FILE = Path(os.getenv("STATE_FILE", str(DATA_DIR / "state.json")))

# Reminders
DUTY_SHIFT_START = os.getenv("DUTY_SHIFT_START", "20:00")  # HH:MM, local time
DEFAULT_REMINDER_HOURS = int(os.getenv("DEFAULT_REMINDER_HOURS", "2"))
REMINDER_WEBHOOK_URL = os.getenv("REMINDER_WEBHOOK_URL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

PHONE_DIGITS = 9
MIN_PASSWORD_LENGTH = 8
