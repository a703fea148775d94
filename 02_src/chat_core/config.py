"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "tutoring_chat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Realtime broadcast (one fixed channel/event pair for every chat view)
REALTIME_CHANNEL = os.getenv("REALTIME_CHANNEL", "tutoring-chat")
REALTIME_EVENT = os.getenv("REALTIME_EVENT", "new-message")

# Attachments
ATTACHMENTS_DIR = Path(os.getenv("ATTACHMENTS_DIR", str(DATA_DIR / "attachments")))
ATTACHMENTS_BASE_URL = os.getenv("ATTACHMENTS_BASE_URL", "/attachments")
MAX_ATTACHMENT_BYTES = 1 * 1024 * 1024
ACCEPTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".heic", ".mp4", ".mov", ".pdf", ".docx")

# Read receipts: the viewer's own messages are marked read unless this is set
EXCLUDE_OWN_RECEIPTS = os.getenv("EXCLUDE_OWN_RECEIPTS", "false").lower() in ("1", "true", "yes")


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
