"""Contact and session API routes."""

from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...errors import ContactNotFound
from ...models import Contact, ContactRole
from ...models.serialization import contact_to_dict, session_to_dict
from ..schemas import AddContactRequest, ContactOut, SessionOut


def create_contacts_router(app: Application) -> APIRouter:
    """Create contacts router."""
    router = APIRouter(prefix="/api", tags=["contacts"])

    @router.get("/contacts", response_model=list[ContactOut])
    async def list_contacts(
        role: ContactRole | None = Query(None, description="Filter by role"),
        q: str | None = Query(None, description="Name contains"),
    ) -> list[dict]:
        return [contact_to_dict(c) for c in app.directory.list_contacts(role, q)]

    @router.post("/contacts", response_model=SessionOut)
    async def add_contact(request: AddContactRequest) -> dict:
        """Start a chat with someone new."""
        contact = Contact(
            id=request.id,
            name=request.name,
            role=request.role,
            avatar=request.avatar,
            is_online=request.is_online,
        )
        try:
            session = await app.conversations.start_chat(contact)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return session_to_dict(session)

    @router.post("/contacts/{contact_id}/select", response_model=SessionOut)
    async def select_contact(contact_id: str) -> dict:
        """Open a conversation; resets its unread count."""
        try:
            session = await app.conversations.open_conversation(contact_id)
        except ContactNotFound:
            raise HTTPException(status_code=404, detail="Contact not found")
        return session_to_dict(session)

    @router.get("/sessions", response_model=list[SessionOut])
    async def list_sessions() -> list[dict]:
        return [session_to_dict(s) for s in app.directory.list_sessions()]

    return router
