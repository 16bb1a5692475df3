"""Plain-dict views of the models, used in event payloads and API responses."""

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any

from .calls import Call
from .messages import Attachment, Message
from .sessions import ChatSession, Contact


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (frozenset, set)):
        return sorted(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def attachment_to_dict(attachment: Attachment) -> dict:
    return _plain(asdict(attachment))


def message_to_dict(message: Message) -> dict:
    return _plain(asdict(message))


def contact_to_dict(contact: Contact) -> dict:
    return _plain(asdict(contact))


def session_to_dict(session: ChatSession) -> dict:
    data = {
        "id": session.id,
        "participants": sorted(session.participants),
        "unread_count": session.unread_count,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "last_message": (
            message_to_dict(session.last_message) if session.last_message else None
        ),
    }
    return data


def call_to_dict(call: Call) -> dict:
    return _plain(asdict(call))
