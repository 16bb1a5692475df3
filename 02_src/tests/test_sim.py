"""Tests for the simulated remote side and the scripted scenario."""

import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from chat_core.calls import CallSessionManager
from chat_core.models import CallStatus, CallType
from sim import DEMO_CONTACTS, Sim, SimulatedSignaling
from sim.sim import SCRIPT


class TestSimulatedSignaling:
    """Tests for SimulatedSignaling."""

    def test_rejects_answer_before_ring(self):
        with pytest.raises(ValueError):
            SimulatedSignaling(ring_delay=2.0, answer_delay=1.0)

    @pytest.mark.asyncio
    async def test_rings_then_answers(self, event_bus):
        signaling = SimulatedSignaling(ring_delay=0.01, answer_delay=0.02)
        manager = CallSessionManager(signaling, event_bus, "me")
        await manager.start()

        call = await manager.initiate("conv:me:teacher1", "teacher1", CallType.AUDIO)
        await asyncio.sleep(0.1)

        assert call.status is CallStatus.ONGOING
        assert call.answered_at is not None
        await manager.stop()
        assert call.status is CallStatus.ENDED

    @pytest.mark.asyncio
    async def test_hang_up_before_answer(self, event_bus):
        signaling = SimulatedSignaling(ring_delay=0.01, answer_delay=0.05)
        manager = CallSessionManager(signaling, event_bus, "me")
        await manager.start()

        call = await manager.initiate("conv:me:teacher1", "teacher1", CallType.AUDIO)
        await asyncio.sleep(0.03)
        assert call.status is CallStatus.RINGING
        await manager.end(call.id)
        await asyncio.sleep(0.05)

        assert call.status is CallStatus.ENDED
        assert call.duration == 0.0
        await manager.stop()


class TestDemoContacts:
    """Tests for the demo roster."""

    def test_unique_ids(self):
        ids = [c.id for c in DEMO_CONTACTS]
        assert len(ids) == len(set(ids))

    def test_scripted_contacts_exist(self):
        ids = {c.id for c in DEMO_CONTACTS}
        assert set(SCRIPT) <= ids


class TestSim:
    """Tests for the scripted scenario."""

    @pytest.mark.asyncio
    async def test_scenario_posts_script(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path == "/api/calls":
                return httpx.Response(503)
            return httpx.Response(200, json={})

        tracker = Mock()
        tracker.track = AsyncMock()
        sim = Sim(tracker=tracker, pause=(0, 0))
        sim._running = True
        sim._client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test"
        )

        await sim._run_scenario()

        message_posts = paths.count("/api/messages")
        assert message_posts == sum(len(lines) for lines in SCRIPT.values())
        assert paths[0] == "/api/contacts/teacher1/select"
        assert paths[-1] == "/api/calls"
        event_types = [c.args[0] for c in tracker.track.call_args_list]
        assert event_types == ["sim_started", "sim_completed"]
        await sim.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        sim = Sim()
        await sim.stop()
