"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "chat_journal.db"
DEFAULT_LOG_PATH = LOGS_DIR / "chat.log"

# Accepted by the compose area's file picker
DEFAULT_ALLOWED_TYPES = (
    "image/*",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
DEFAULT_MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024  # 5 MB


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class MessagingSettings:
    """Tunables of the messaging core."""

    current_user_id: str = "me"
    max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES
    allowed_types: tuple[str, ...] = field(default=DEFAULT_ALLOWED_TYPES)
    typing_timeout: float = 5.0
    typing_debounce: float = 1.0
    send_timeout: float = 10.0
    auto_reply: bool = False
    reply_delay: float = 2.0

    @classmethod
    def from_env(cls) -> "MessagingSettings":
        """Build settings from environment variables, falling back to defaults."""
        allowed = os.getenv("ALLOWED_ATTACHMENT_TYPES")
        return cls(
            current_user_id=os.getenv("CURRENT_USER_ID", "me"),
            max_attachment_bytes=int(
                os.getenv("MAX_ATTACHMENT_BYTES", DEFAULT_MAX_ATTACHMENT_BYTES)
            ),
            allowed_types=(
                tuple(t.strip() for t in allowed.split(",") if t.strip())
                if allowed
                else DEFAULT_ALLOWED_TYPES
            ),
            typing_timeout=_env_float("TYPING_TIMEOUT_SECONDS", 5.0),
            typing_debounce=_env_float("TYPING_DEBOUNCE_SECONDS", 1.0),
            send_timeout=_env_float("SEND_TIMEOUT_SECONDS", 10.0),
            auto_reply=_env_bool("AUTO_REPLY", False),
            reply_delay=_env_float("REPLY_DELAY_SECONDS", 2.0),
        )
