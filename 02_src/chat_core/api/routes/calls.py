"""Call API routes."""

from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import CallAlreadyActive, CallEnded, CallNotFound
from ...models import conversation_id_for
from ...models.serialization import call_to_dict
from ..schemas import CallOut, SignalRequest, StartCallRequest


def create_calls_router(app: Application) -> APIRouter:
    """Create calls router."""
    router = APIRouter(prefix="/api/calls", tags=["calls"])

    def _get(call_id: str):
        try:
            return app.calls.get_call(call_id)
        except CallNotFound:
            raise HTTPException(status_code=404, detail="Call not found")

    @router.post("", response_model=CallOut)
    async def start_call(request: StartCallRequest) -> dict:
        conversation_id = conversation_id_for(
            app.settings.current_user_id, request.contact_id
        )
        try:
            call = await app.calls.initiate(
                conversation_id, request.contact_id, request.type
            )
        except CallAlreadyActive as e:
            raise HTTPException(status_code=409, detail=str(e))
        return call_to_dict(call)

    @router.get("/{call_id}", response_model=CallOut)
    async def get_call(call_id: str) -> dict:
        return call_to_dict(_get(call_id))

    @router.post("/{call_id}/signal", response_model=CallOut)
    async def signal(call_id: str, request: SignalRequest) -> dict:
        """Feed a signaling event (ringing/accepted/ended_by_remote)."""
        call = _get(call_id)
        await app.calls.handle_signal(call.id, request.event)
        return call_to_dict(call)

    @router.post("/{call_id}/mute", response_model=CallOut)
    async def toggle_mute(call_id: str) -> dict:
        _get(call_id)
        try:
            return call_to_dict(await app.calls.toggle_mute(call_id))
        except CallEnded as e:
            raise HTTPException(status_code=409, detail=str(e))

    @router.post("/{call_id}/video", response_model=CallOut)
    async def toggle_video(call_id: str) -> dict:
        _get(call_id)
        try:
            return call_to_dict(await app.calls.toggle_video(call_id))
        except CallEnded as e:
            raise HTTPException(status_code=409, detail=str(e))

    @router.post("/{call_id}/end", response_model=CallOut)
    async def end_call(call_id: str) -> dict:
        _get(call_id)
        return call_to_dict(await app.calls.end(call_id))

    return router
