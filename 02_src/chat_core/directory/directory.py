"""ChatSessionDirectory implementation."""

from datetime import datetime, timezone
from typing import Callable, Protocol

from ..errors import ContactNotFound, SessionNotFound
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import (
    ChatSession,
    Contact,
    ContactRole,
    Message,
    Topic,
    conversation_id_for,
)
from ..models.serialization import contact_to_dict, session_to_dict
from ..transport import IRoster

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IChatSessionDirectory(Protocol):
    """Contacts, their conversation threads and unread counters."""

    def list_contacts(
        self, role: ContactRole | None = None, query: str | None = None
    ) -> list[Contact]:
        """Contacts in insertion order, optionally filtered."""
        ...

    async def select_contact(self, contact_id: str) -> ChatSession:
        """Open a contact's thread and reset its unread count."""
        ...

    async def create_session(self, participant_id: str) -> ChatSession:
        """Return the session with ``participant_id``, creating it if needed."""
        ...


class ChatSessionDirectory:
    """Maps contacts to chat sessions for the current user."""

    def __init__(
        self,
        event_bus: IEventBus,
        user_id: str,
        roster: IRoster | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._event_bus = event_bus
        self._user_id = user_id
        self._roster = roster
        self._clock = clock

        self._contacts: dict[str, Contact] = {}
        self._sessions: dict[str, ChatSession] = {}  # session_id -> session
        self._selected: str | None = None

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def selected_contact_id(self) -> str | None:
        return self._selected

    async def load(self) -> list[Contact]:
        """Populate contacts from the roster."""
        if self._roster is None:
            return []
        contacts = await self._roster.list_known_contacts(self._user_id)
        for contact in contacts:
            await self.add_contact(contact)
        logger.info("Loaded %s contacts for %s", len(contacts), self._user_id)
        return contacts

    # Contacts
    async def add_contact(self, contact: Contact) -> Contact:
        """Register a contact (from search, expert directory or phone entry)."""
        if contact.id in self._contacts:
            return self._contacts[contact.id]
        if contact.id == self._user_id:
            raise ValueError("Cannot add the current user as a contact")

        contact.role = ContactRole(contact.role)
        self._contacts[contact.id] = contact
        await self._changed("contact_added", contact=contact)
        return contact

    def get_contact(self, contact_id: str) -> Contact:
        try:
            return self._contacts[contact_id]
        except KeyError:
            raise ContactNotFound(contact_id) from None

    def list_contacts(
        self, role: ContactRole | None = None, query: str | None = None
    ) -> list[Contact]:
        """Contacts in insertion order, filtered by role and name substring."""
        needle = (query or "").strip().lower()
        role = ContactRole(role) if role else None
        return [
            contact
            for contact in self._contacts.values()
            if (role is None or contact.role is role)
            and (not needle or needle in contact.name.lower())
        ]

    # Sessions
    async def create_session(self, participant_id: str) -> ChatSession:
        """Return the session with ``participant_id``, creating it if needed."""
        session_id = conversation_id_for(self._user_id, participant_id)
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        now = self._clock()
        contact = self._contacts.get(participant_id)
        session = ChatSession(
            id=session_id,
            participants=frozenset({self._user_id, participant_id}),
            created_at=now,
            updated_at=now,
            # Unread messages the roster already reported for this contact
            unread_count=contact.unread if contact else 0,
        )
        self._sessions[session_id] = session
        await self._changed("session_created", session=session)
        return session

    def get_session(self, session_id: str) -> ChatSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def session_for(self, participant_id: str) -> ChatSession | None:
        return self._sessions.get(conversation_id_for(self._user_id, participant_id))

    def list_sessions(self) -> list[ChatSession]:
        return list(self._sessions.values())

    async def select_contact(self, contact_id: str) -> ChatSession:
        """Open a contact's thread and reset its unread count.

        Selecting an already selected, already read contact changes nothing
        and publishes nothing.
        """
        contact = self.get_contact(contact_id)
        session = await self.create_session(contact_id)

        changed = self._selected != contact_id or session.unread_count or contact.unread
        self._selected = contact_id
        session.unread_count = 0
        contact.unread = 0

        if changed:
            await self._changed("selected", contact=contact, session=session)
        return session

    def deselect(self) -> None:
        self._selected = None

    async def record_incoming(self, message: Message) -> ChatSession:
        """Update thread preview and unread counters for a received message."""
        session = await self.create_session(message.sender)
        session.last_message = message
        session.updated_at = self._clock()

        contact = self._contacts.get(message.sender)
        if contact is not None:
            contact.last_message = message.text or _attachment_preview(message)

        if self._selected != message.sender:
            session.unread_count += 1
            if contact is not None:
                contact.unread += 1

        await self._changed("incoming", contact=contact, session=session)
        return session

    async def record_outgoing(self, message: Message) -> ChatSession:
        """Update thread preview for a message the current user sent."""
        session = await self.create_session(message.recipient)
        session.last_message = message
        session.updated_at = self._clock()

        contact = self._contacts.get(message.recipient)
        if contact is not None:
            contact.last_message = message.text or _attachment_preview(message)

        await self._changed("outgoing", contact=contact, session=session)
        return session

    def clear(self) -> None:
        self._contacts.clear()
        self._sessions.clear()
        self._selected = None

    async def _changed(
        self,
        change: str,
        contact: Contact | None = None,
        session: ChatSession | None = None,
    ) -> None:
        await self._event_bus.emit(
            Topic.CONTACTS,
            {
                "change": change,
                "contact": contact_to_dict(contact) if contact else None,
                "session": session_to_dict(session) if session else None,
            },
            source="chat_directory",
        )


def _attachment_preview(message: Message) -> str:
    names = ", ".join(a.name for a in message.attachments)
    return f"[attachment] {names}" if names else ""
