"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from chat_core.api import create_fastapi_app
from chat_core.app import Application
from chat_core.config import MessagingSettings
from chat_core.models import Contact, ContactRole
from chat_core.transport import InMemoryRoster


@pytest.fixture
def client():
    roster = InMemoryRoster(
        {
            "me": [
                Contact(id="teacher1", name="Dr. Fatima Khan", role=ContactRole.TEACHER),
                Contact(id="technician1", name="Usman Ali", role=ContactRole.TECHNICIAN),
            ]
        }
    )
    application = Application(
        db_path=":memory:",
        settings=MessagingSettings(max_attachment_bytes=1024),
        roster=roster,
    )
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


class TestMessagingRoutes:
    """Tests for /api/messages and conversations."""

    def test_send_and_list(self, client):
        response = client.post(
            "/api/messages", json={"recipient_id": "teacher1", "text": "Hello"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "sent"

        messages = client.get("/api/conversations/teacher1/messages").json()
        assert [m["text"] for m in messages] == ["Hello"]

    def test_empty_message(self, client):
        response = client.post("/api/messages", json={"recipient_id": "teacher1"})
        assert response.status_code == 400

    def test_unknown_attachment(self, client):
        response = client.post(
            "/api/messages",
            json={"recipient_id": "teacher1", "attachment_ids": ["missing"]},
        )
        assert response.status_code == 404

    def test_late_status_ignored(self, client):
        """A receipt older than the current status leaves the message as it is."""
        message = client.post(
            "/api/messages", json={"recipient_id": "teacher1", "text": "Hello"}
        ).json()

        read = client.post(f"/api/messages/{message['id']}/status", json={"status": "read"})
        assert read.json()["status"] == "read"

        late = client.post(f"/api/messages/{message['id']}/status", json={"status": "sent"})
        assert late.status_code == 200
        assert late.json()["status"] == "read"

        traces = client.get("/api/trace-events", params={"event_type": "message_read"})
        assert len(traces.json()) == 1

    def test_status_unknown_message(self, client):
        response = client.post("/api/messages/missing/status", json={"status": "sent"})
        assert response.status_code == 404

    def test_resend_requires_failure(self, client):
        message = client.post(
            "/api/messages", json={"recipient_id": "teacher1", "text": "Hello"}
        ).json()
        assert client.post(f"/api/messages/{message['id']}/resend").status_code == 409
        assert client.post("/api/messages/missing/resend").status_code == 404

    def test_incoming_updates_unread(self, client):
        response = client.post(
            "/api/incoming", json={"id": "r1", "sender": "teacher1", "text": "Any news?"}
        )
        assert response.json()["status"] == "delivered"

        duplicate = client.post(
            "/api/incoming", json={"id": "r1", "sender": "teacher1", "text": "Any news?"}
        )
        assert duplicate.status_code == 409

        contacts = {c["id"]: c for c in client.get("/api/contacts").json()}
        assert contacts["teacher1"]["unread"] == 1
        assert contacts["teacher1"]["last_message"] == "Any news?"

    def test_typing(self, client):
        response = client.post("/api/conversations/teacher1/typing")
        assert response.json() == {"status": "ok"}


class TestAttachmentRoutes:
    """Tests for /api/attachments."""

    def test_stage_and_send(self, client):
        response = client.post(
            "/api/attachments",
            files=[
                ("files", ("photo.png", b"x" * 100, "image/png")),
                ("files", ("big.pdf", b"x" * 2048, "application/pdf")),
                ("files", ("run.exe", b"x", "application/x-msdownload")),
            ],
        )
        body = response.json()
        assert [a["name"] for a in body["staged"]] == ["photo.png"]
        assert {r["file_name"]: r["reason"] for r in body["rejected"]} == {
            "big.pdf": "too_large",
            "run.exe": "invalid_type",
        }

        staged_id = body["staged"][0]["id"]
        message = client.post(
            "/api/messages",
            json={"recipient_id": "teacher1", "attachment_ids": [staged_id]},
        ).json()
        assert message["attachments"][0]["type"] == "image"

        # Sent attachments leave the compose area
        assert client.delete(f"/api/attachments/{staged_id}").status_code == 404

    def test_discard(self, client):
        body = client.post(
            "/api/attachments", files=[("files", ("a.png", b"x", "image/png"))]
        ).json()
        staged_id = body["staged"][0]["id"]

        assert client.delete(f"/api/attachments/{staged_id}").json() == {"status": "ok"}
        assert client.delete(f"/api/attachments/{staged_id}").status_code == 404


class TestContactRoutes:
    """Tests for contacts and sessions."""

    def test_filter_contacts(self, client):
        by_role = client.get("/api/contacts", params={"role": "technician"}).json()
        assert [c["id"] for c in by_role] == ["technician1"]

        by_name = client.get("/api/contacts", params={"q": "fatima"}).json()
        assert [c["id"] for c in by_name] == ["teacher1"]

    def test_add_and_select(self, client):
        session = client.post(
            "/api/contacts",
            json={"id": "student1", "name": "Imran Ahmed", "role": "student"},
        ).json()
        assert session["participants"] == ["me", "student1"]

        selected = client.post("/api/contacts/student1/select")
        assert selected.json()["unread_count"] == 0
        assert client.post("/api/contacts/nobody/select").status_code == 404

        sessions = client.get("/api/sessions").json()
        assert len(sessions) == 3


class TestCallRoutes:
    """Tests for /api/calls."""

    def test_call_lifecycle(self, client):
        call = client.post("/api/calls", json={"contact_id": "teacher1", "type": "video"}).json()
        assert call["status"] == "connecting"

        duplicate = client.post("/api/calls", json={"contact_id": "teacher1"})
        assert duplicate.status_code == 409

        ringing = client.post(f"/api/calls/{call['id']}/signal", json={"event": "ringing"})
        assert ringing.json()["status"] == "ringing"
        accepted = client.post(f"/api/calls/{call['id']}/signal", json={"event": "accepted"})
        assert accepted.json()["status"] == "ongoing"

        muted = client.post(f"/api/calls/{call['id']}/mute").json()
        assert muted["is_muted"] is True
        video = client.post(f"/api/calls/{call['id']}/video").json()
        assert video["is_video_off"] is True

        ended = client.post(f"/api/calls/{call['id']}/end").json()
        assert ended["status"] == "ended"
        assert ended["duration"] is not None

        assert client.post(f"/api/calls/{call['id']}/mute").status_code == 409

    def test_unknown_call(self, client):
        assert client.get("/api/calls/missing").status_code == 404


class TestObservabilityRoutes:
    """Tests for trace and change event journals."""

    def test_trace_events(self, client):
        client.post("/api/messages", json={"recipient_id": "teacher1", "text": "Hello"})

        traces = client.get("/api/trace-events", params={"event_type": "message_sent"})
        assert len(traces.json()) == 1

        changes = client.get("/api/change-events", params={"topic": "messages"}).json()
        assert changes[0]["payload"]["message"]["status"] == "sent"

    def test_invalid_after(self, client):
        response = client.get("/api/trace-events", params={"after": "yesterday"})
        assert response.status_code == 400


class TestControlRoutes:
    """Tests for /api/control."""

    def test_reset(self, client):
        client.post("/api/messages", json={"recipient_id": "teacher1", "text": "Hello"})

        assert client.post("/api/control/reset").json() == {"status": "ok"}
        assert client.get("/api/conversations/teacher1/messages").json() == []

    def test_sim_not_configured(self, client):
        assert client.post("/api/control/sim/start").status_code == 404
