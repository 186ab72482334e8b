from __future__ import annotations

import asyncio
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from walkthrough_core import __version__
from walkthrough_core.errors import InvalidInputError, StepOutOfRangeError, WalkthroughError

from .engine import WalkthroughService


app = FastAPI(title="Walkthrough API", version=__version__)

# Allow local dev frontends
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = WalkthroughService()


class ControlRequest(BaseModel):
    cmd: Literal["goto", "next", "prev", "clear", "autoplay", "stop", "resize", "move"]
    step: Optional[int] = None
    width: Optional[float] = None
    height: Optional[float] = None
    # base point name -> [x, y] in frame units, for "move"
    points: Optional[Dict[str, List[float]]] = None


def _session_or_404(name: str):
    try:
        return service.session(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown walkthrough: {name}")


@app.get("/walkthroughs")
async def list_walkthroughs():
    return {"walkthroughs": service.available()}


@app.get("/walkthroughs/{name}/state")
async def get_state(name: str):
    session = _session_or_404(name)
    return JSONResponse(jsonable_encoder(session.snapshot()))


@app.post("/walkthroughs/{name}/control")
async def post_control(name: str, body: ControlRequest):
    session = _session_or_404(name)
    try:
        if body.cmd == "goto":
            if body.step is None:
                raise HTTPException(status_code=422, detail="'goto' needs a step")
            session.request_step(body.step)
        elif body.cmd == "next":
            session.request_next()
        elif body.cmd == "prev":
            session.request_previous()
        elif body.cmd == "clear":
            session.request_clear()
        elif body.cmd == "autoplay":
            session.autoplay.start()
        elif body.cmd == "stop":
            session.autoplay.stop("manual")
        elif body.cmd == "resize":
            if body.width is None or body.height is None or body.width <= 0 or body.height <= 0:
                raise HTTPException(status_code=422, detail="'resize' needs positive width and height")
            session.notify_resize(body.width, body.height)
        elif body.cmd == "move":
            if not body.points:
                raise HTTPException(status_code=422, detail="'move' needs points")
            session.set_points(body.points)
    except (StepOutOfRangeError, InvalidInputError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except WalkthroughError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {
        "ok": True,
        "current_step": session.current_step,
        "auto_mode_active": session.auto_mode_active,
    }


@app.websocket("/walkthroughs/{name}/stream")
async def ws_stream(ws: WebSocket, name: str):
    await ws.accept()
    try:
        session = service.session(name)
    except KeyError:
        await ws.send_json({"type": "error", "detail": f"unknown walkthrough: {name}"})
        await ws.close(code=1008)
        return

    q = service.subscribe(name)
    try:
        # Immediately push current state to client
        await ws.send_json({"type": "state", "state": jsonable_encoder(session.snapshot())})

        while True:
            try:
                payload = await q.get()
            except asyncio.CancelledError:
                break
            await ws.send_json({"type": "event", "event": jsonable_encoder(payload)})
    except WebSocketDisconnect:
        pass
    finally:
        service.unsubscribe(name, q)


@app.get("/")
async def root():
    return {"service": "walkthroughs", "status": "ok", "version": __version__}


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("app.backend.main:app", host="127.0.0.1", port=8000)
