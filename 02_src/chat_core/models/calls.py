"""Call-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CallType(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"


class CallStatus(str, Enum):
    """Lifecycle of a call."""

    CONNECTING = "connecting"
    RINGING = "ringing"
    ONGOING = "ongoing"
    ENDED = "ended"


class SignalEvent(str, Enum):
    """Events delivered by the call signaling channel."""

    RINGING = "ringing"
    ACCEPTED = "accepted"
    ENDED_BY_REMOTE = "ended_by_remote"


@dataclass
class Call:
    """An audio or video call between two participants."""

    id: str
    conversation_id: str
    type: CallType
    initiator: str
    recipient: str
    start_time: datetime
    status: CallStatus = CallStatus.CONNECTING
    answered_at: datetime | None = None  # when the call went ongoing
    end_time: datetime | None = None
    duration: float | None = None  # seconds, set once on end
    is_muted: bool = False
    is_video_off: bool = False

    @property
    def is_active(self) -> bool:
        return self.status is not CallStatus.ENDED

    def elapsed(self, now: datetime) -> float:
        """Seconds spent ongoing so far (final duration once ended)."""
        if self.duration is not None:
            return self.duration
        if self.answered_at is None:
            return 0.0
        return max((now - self.answered_at).total_seconds(), 0.0)


def format_duration(seconds: float) -> str:
    """Render a call duration as MM:SS."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"
