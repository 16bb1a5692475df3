"""Messaging API routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, File, HTTPException, UploadFile

from ...app import Application
from ...errors import MessageNotFound
from ...models import Message, conversation_id_for
from ...models.serialization import attachment_to_dict, message_to_dict
from ...transport import FileUpload
from ..schemas import (
    IncomingMessageRequest,
    MessageOut,
    SendMessageRequest,
    StagingOut,
    StatusResponse,
    StatusUpdateRequest,
)


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageOut)
    async def send_message(request: SendMessageRequest) -> dict:
        """Send a message; status progresses asynchronously."""
        try:
            attachments = [
                app.attachments.get_staged(a) for a in request.attachment_ids
            ]
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e))

        try:
            message = await app.conversations.send_message(
                request.recipient_id, request.text, attachments
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return message_to_dict(message)

    @router.get("/conversations/{contact_id}/messages", response_model=list[MessageOut])
    async def list_messages(contact_id: str) -> list[dict]:
        """Messages exchanged with a contact, in append order."""
        conversation_id = conversation_id_for(app.settings.current_user_id, contact_id)
        return [message_to_dict(m) for m in app.store.get_messages(conversation_id)]

    @router.post("/conversations/{contact_id}/typing", response_model=StatusResponse)
    async def typing(contact_id: str) -> dict:
        """The local user is composing a message to ``contact_id``."""
        await app.conversations.notify_typing(contact_id)
        return {"status": "ok"}

    @router.post("/messages/{message_id}/resend", response_model=MessageOut)
    async def resend(message_id: str) -> dict:
        try:
            message = await app.conversations.resend(message_id)
        except MessageNotFound:
            raise HTTPException(status_code=404, detail="Message not found")
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return message_to_dict(message)

    @router.post("/messages/{message_id}/status", response_model=MessageOut)
    async def push_status(message_id: str, request: StatusUpdateRequest) -> dict:
        """Apply a delivery/read receipt reported by the backend; stale receipts are ignored."""
        try:
            message = await app.conversations.apply_receipt(message_id, request.status)
        except MessageNotFound:
            raise HTTPException(status_code=404, detail="Message not found")
        return message_to_dict(message)

    @router.post("/incoming", response_model=MessageOut)
    async def push_incoming(request: IncomingMessageRequest) -> dict:
        """Inject a message from a remote participant (backend webhook)."""
        user_id = app.settings.current_user_id
        session = await app.directory.create_session(request.sender)
        message = Message(
            id=request.id,
            conversation_id=session.id,
            text=request.text,
            sender=request.sender,
            recipient=user_id,
            timestamp=request.timestamp or datetime.now(timezone.utc),
        )
        stored = await app.conversations.receive(message)
        if stored is None:
            raise HTTPException(status_code=409, detail="Duplicate or own message")
        return message_to_dict(stored)

    @router.post("/attachments", response_model=StagingOut)
    async def stage_attachments(files: list[UploadFile] = File(...)) -> dict:
        """Validate and stage files; invalid ones are reported, not fatal."""
        uploads = [
            FileUpload(
                name=f.filename or "file",
                content_type=f.content_type or "",
                data=await f.read(),
            )
            for f in files
        ]
        result = app.attachments.stage(uploads)
        return {
            "staged": [attachment_to_dict(a) for a in result.staged],
            "rejected": [
                {
                    "file_name": r.file_name,
                    "reason": r.reason.value,
                    "detail": str(r),
                }
                for r in result.rejected
            ],
        }

    @router.delete("/attachments/{attachment_id}", response_model=StatusResponse)
    async def discard_attachment(attachment_id: str) -> dict:
        """Discard a draft attachment and free its preview."""
        try:
            attachment = app.attachments.get_staged(attachment_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Attachment not staged")
        app.attachments.release(attachment)
        return {"status": "ok"}

    return router
