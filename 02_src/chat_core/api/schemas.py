"""Request/response models of the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from ..models import (
    AttachmentType,
    CallStatus,
    CallType,
    ContactRole,
    MessageStatus,
    SignalEvent,
)


class AttachmentOut(BaseModel):
    id: str
    type: AttachmentType
    url: str
    name: str
    size: int | None = None
    content_type: str | None = None


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    text: str
    sender: str
    recipient: str
    timestamp: datetime
    status: MessageStatus
    attachments: list[AttachmentOut] = []


class ContactOut(BaseModel):
    id: str
    name: str
    role: ContactRole
    last_message: str | None = None
    avatar: str | None = None
    unread: int = 0
    is_online: bool = False


class SessionOut(BaseModel):
    id: str
    participants: list[str]
    unread_count: int
    created_at: datetime
    updated_at: datetime
    last_message: MessageOut | None = None


class CallOut(BaseModel):
    id: str
    conversation_id: str
    type: CallType
    status: CallStatus
    initiator: str
    recipient: str
    start_time: datetime
    answered_at: datetime | None = None
    end_time: datetime | None = None
    duration: float | None = None
    is_muted: bool = False
    is_video_off: bool = False


class RejectionOut(BaseModel):
    file_name: str
    reason: str
    detail: str


class StagingOut(BaseModel):
    staged: list[AttachmentOut]
    rejected: list[RejectionOut]


class SendMessageRequest(BaseModel):
    """Request model for sending a message."""

    recipient_id: str
    text: str = ""
    attachment_ids: list[str] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    """Receipt pushed by the conversation backend."""

    status: MessageStatus


class IncomingMessageRequest(BaseModel):
    """Message pushed by the conversation backend."""

    id: str
    sender: str
    text: str = ""
    timestamp: datetime | None = None


class AddContactRequest(BaseModel):
    id: str
    name: str
    role: ContactRole
    avatar: str | None = None
    is_online: bool = False


class StartCallRequest(BaseModel):
    contact_id: str
    type: CallType = CallType.AUDIO


class SignalRequest(BaseModel):
    event: SignalEvent


class StatusResponse(BaseModel):
    status: str
