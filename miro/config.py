import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Local .env first; deployed environments inject variables directly.
load_dotenv()

# ---------- CONFIG ----------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
MODEL = os.getenv("MIRO_MODEL", "gpt-4o-mini")
DB_PATH = os.getenv("MIRO_DB_PATH", "miro.db")
LOCALES_DIR = Path(os.getenv("MIRO_LOCALES_DIR", Path(__file__).parent / "locales"))
LOG_LEVEL = os.getenv("MIRO_LOG_LEVEL", "INFO")
CHAT_HISTORY_LIMIT = int(os.getenv("MIRO_CHAT_HISTORY_LIMIT", "10"))
REQUEST_TIMEOUT = float(os.getenv("MIRO_REQUEST_TIMEOUT", "30"))

# Negative journal entries are cleared after this many hours.
NEGATIVE_ENTRY_TTL_HOURS = 24

DEFAULT_LANGUAGE = "English"
LANGUAGES = ["English", "Hindi", "Kannada", "Bengali", "Tamil", "Telugu"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level=None):
    """Set up root logging once for the app process."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
