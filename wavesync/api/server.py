"""
FastAPI control surface for a headless wavesync player.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import PlayerConfig
from ..media import PlayerError
from ..runtime.headless import HeadlessEngine
from ..utils.profiles import load_profiles
from . import schemas
from .state import PlayerState

LOG = logging.getLogger(__name__)


def create_app(
    *,
    state: Optional[PlayerState] = None,
    config: Optional[PlayerConfig] = None,
    lifespan: Optional[Callable[..., object]] = None,
) -> FastAPI:
    player_state = state or PlayerState(config)

    app = FastAPI(title="wavesync control API", lifespan=lifespan)
    app.state.player = player_state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PlayerError)
    async def _player_error(_request: Request, exc: PlayerError) -> JSONResponse:
        LOG.warning("Rejected player command: %s", exc)
        return JSONResponse(status_code=422, content={"detail": str(exc), "error": type(exc).__name__})

    def _headless_engine() -> HeadlessEngine:
        engine = player_state.engine
        if not isinstance(engine, HeadlessEngine):
            raise HTTPException(status_code=409, detail="Engine is not simulated by this server")
        return engine

    # ------------------------------------------------------------------ read-only

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok", "profile": player_state.config.profile}

    @app.get("/profiles")
    async def list_profiles() -> dict:
        return {"profiles": load_profiles()}

    @app.get("/state")
    async def get_state() -> dict:
        return player_state.snapshot()

    @app.get("/events")
    async def list_events(limit: Optional[int] = Query(default=None, ge=0)) -> dict:
        return {"events": player_state.recent_events(limit)}

    # ------------------------------------------------------------------ declarative props

    @app.put("/props")
    async def put_props(payload: schemas.PlayerPropsModel) -> dict:
        data: Dict[str, Any] = payload.model_dump(by_alias=True, exclude_unset=True)
        regions = data.pop("regions", None)
        player_state.ensure_mounted()
        diff = player_state.player.update(
            props=data or None,
            regions={"regions": regions} if regions is not None else None,
        )
        result = player_state.snapshot()
        if diff is not None:
            result["regionDiff"] = diff.to_dict()
        return result

    @app.put("/regions")
    async def put_regions(payload: schemas.RegionsRequest) -> dict:
        data = payload.model_dump(exclude_unset=True)
        player_state.ensure_mounted()
        diff = player_state.player.update(regions={"regions": data.get("regions", {})})
        result = player_state.snapshot()
        result["regionDiff"] = diff.to_dict() if diff is not None else None
        return result

    # ------------------------------------------------------------------ simulation hooks

    @app.post("/engine/ready")
    async def engine_ready(payload: schemas.ReadyRequest) -> dict:
        engine = _headless_engine()
        player_state.ensure_mounted()
        engine.complete_load(payload.duration)
        return player_state.snapshot()

    @app.post("/engine/advance")
    async def engine_advance(payload: schemas.AdvanceRequest) -> dict:
        engine = _headless_engine()
        engine.advance(payload.seconds)
        return player_state.snapshot()

    @app.post("/resize")
    async def resize() -> dict:
        player_state.player.controller.resize_signal.emit()
        return {"status": "queued", "responsive": player_state.player.controller.resize_attached}

    # ------------------------------------------------------------------ event feed

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()

        def _enqueue(entry: Dict[str, Any]) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, entry)

        token = player_state.subscribe(_enqueue)
        try:
            await websocket.accept()
            await websocket.send_json({"type": "state", "state": player_state.snapshot()})

            async def _pump() -> None:
                while True:
                    entry = await queue.get()
                    await websocket.send_json({"type": "event", "event": entry})

            async def _receive() -> None:
                while True:
                    message = await websocket.receive_json()
                    kind = str(message.get("type") or "").lower() if isinstance(message, dict) else ""
                    if kind == "ping":
                        await websocket.send_json({"type": "pong"})
                    elif kind == "state":
                        await websocket.send_json({"type": "state", "state": player_state.snapshot()})
                    else:
                        await websocket.send_json({"type": "error", "detail": f"unknown message type '{kind}'"})

            tasks = [asyncio.create_task(_pump()), asyncio.create_task(_receive())]
            try:
                done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in tasks:
                    task.cancel()
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    raise exc
        except WebSocketDisconnect:
            LOG.debug("Event feed client disconnected")
        finally:
            player_state.unsubscribe(token)

    return app


__all__ = ["create_app"]
