
from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Any, Callable, Dict, Optional
import asyncio, json, os

from loguru import logger

from core.errors import ConfigurationError, InvalidStateError, JoinError, JoinTimeout, SessionCreationError
from core.events import SessionEvent, event_dump
from recording.session_manager import SessionManager
from sdk import MixLayout

SessionFactory = Callable[[Dict[str, Any]], SessionManager]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    for session in list(app.state.sessions.values()):
        try:
            session.stop()
        except InvalidStateError as exc:
            logger.warning(f"shutdown: {session.session_id}: {exc}")
    app.state.sessions.clear()


app = FastAPI(title="Channel Recorder API", lifespan=lifespan)
app.state.sessions = {}


class StartRecording(BaseModel):
    channel: str = Field(..., min_length=1)
    user_account: Optional[str] = None
    join_timeout: Optional[float] = Field(None, ge=0)
    timeout_rejects: bool = False


def get_session_factory() -> SessionFactory:
    return SessionManager


def _credentials() -> Dict[str, str]:
    return {
        "app_id": os.getenv("CHANREC_APP_ID", ""),
        "certificate": os.getenv("CHANREC_CERTIFICATE", ""),
    }


def _describe(session: SessionManager) -> Dict[str, Any]:
    return {
        "id": session.session_id,
        "channel": session.channel,
        "record_path": str(session.record_path),
        "state": session.state.value,
        "started_at": session.started_at.isoformat(),
    }


def _lookup(session_id: str) -> SessionManager:
    session = app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="recording not found")
    return session


@app.post("/recordings", status_code=201)
async def start_recording(req: StartRecording, factory: SessionFactory = Depends(get_session_factory)):
    cfg = {
        **_credentials(),
        "channel": req.channel,
        "user_account": req.user_account,
        "join_timeout": req.join_timeout,
        "timeout_rejects": req.timeout_rejects,
    }
    try:
        session = factory(cfg)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except SessionCreationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    try:
        await session.start_async()
    except JoinError as exc:
        session.stop()
        return JSONResponse(status_code=502, content={"error": str(exc), "err": exc.err, "stat_code": exc.stat_code})
    except JoinTimeout as exc:
        session.stop()
        return JSONResponse(status_code=504, content={"error": str(exc)})
    except SessionCreationError as exc:
        session.stop()
        raise HTTPException(status_code=500, detail=str(exc))

    app.state.sessions[session.session_id] = session
    return _describe(session)


@app.get("/recordings")
def list_recordings():
    return {"recordings": [_describe(s) for s in app.state.sessions.values()]}


@app.get("/recordings/{session_id}")
def get_recording(session_id: str):
    return _describe(_lookup(session_id))


@app.put("/recordings/{session_id}/layout")
def set_layout(session_id: str, layout: MixLayout):
    session = _lookup(session_id)
    try:
        session.set_mix_layout(layout)
    except InvalidStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"ok": True, "regions": len(layout.regions)}


@app.delete("/recordings/{session_id}")
def stop_recording(session_id: str):
    session = _lookup(session_id)
    session.stop()
    app.state.sessions.pop(session_id, None)
    return {"ok": True, "record_path": str(session.record_path)}


@app.websocket("/ws/recordings/{session_id}/events")
async def ws_events(ws: WebSocket, session_id: str):
    session = app.state.sessions.get(session_id)
    if session is None:
        await ws.accept()
        await ws.send_text(json.dumps({"type": "error", "msg": "not found"}))
        await ws.close()
        return

    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[SessionEvent]" = asyncio.Queue()

    # Runs on the engine's thread; only hand the event over to the loop.
    def _forward(event: SessionEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _pump() -> None:
        while True:
            event = await queue.get()
            await ws.send_text(json.dumps(event_dump(event)))

    session.subscribe_all(_forward)
    await ws.accept()
    pump = asyncio.create_task(_pump())
    try:
        while True:
            await ws.receive_text()  # client messages are ignored; returns on disconnect
    except WebSocketDisconnect:
        pass
    finally:
        session.off(None, _forward)
        pump.cancel()
