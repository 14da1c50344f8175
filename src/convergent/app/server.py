from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig, load_config
from ..sim.core.orchestrator import TurnOrchestrator
from ..sim.core.presets import PRESETS
from ..sim.types.events import Failed, SimulationEvent
from .headless import build_provider
from .providers import OpenAIChatGenerator

logger = logging.getLogger(__name__)

PROVIDER_ENV = "CONVERGENT_PROVIDER"
BASE_URL_ENV = "CONVERGENT_BASE_URL"


class EventPump:
    """Runs an orchestrator in a background task and buffers its events.

    ``None`` on the queue marks the end of the stream, whether the run
    finished, failed or was stopped.
    """

    def __init__(self, orchestrator: TurnOrchestrator):
        self.orchestrator = orchestrator
        self.queue: asyncio.Queue[Optional[SimulationEvent]] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        stream = self.orchestrator.run()
        try:
            async for event in stream:
                self.queue.put_nowait(event)
                # let consumers drain between events even when no collaborator blocks
                await asyncio.sleep(0)
        finally:
            await stream.aclose()
            self.queue.put_nowait(None)

    async def events(self) -> AsyncIterator[SimulationEvent]:
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event

    def cancel(self) -> None:
        """Ask the run to stop after the current speaker."""
        self.orchestrator.cancel()

    async def stop(self) -> None:
        self.orchestrator.cancel()
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


def _config_from_message(message: str) -> SimulationConfig:
    payload = json.loads(message)
    if not isinstance(payload, dict):
        raise ValueError("expected a JSON object with the run configuration")
    raw = payload.get("config", payload)
    if not isinstance(raw, dict):
        raise ValueError("config must be a JSON object")
    return load_config({key: value for key, value in raw.items() if key != "type"})


async def _listen(websocket: WebSocket, pump: EventPump) -> None:
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict) and payload.get("type") == "cancel":
                logger.info("client requested cancel")
                pump.cancel()
    except WebSocketDisconnect:
        logger.info("client disconnected; stopping run")
        await pump.stop()


app = FastAPI(title="Convergent Discussion Simulation")


@app.get("/api/presets")
async def presets() -> JSONResponse:
    return JSONResponse(PRESETS)


@app.get("/api/config/defaults")
async def config_defaults() -> JSONResponse:
    return JSONResponse(SimulationConfig().clamped().to_dict())


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    try:
        message = await websocket.receive_text()
    except WebSocketDisconnect:
        return
    try:
        config = _config_from_message(message)
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError
        await websocket.send_text(json.dumps(Failed(message=f"invalid config: {exc}").to_payload()))
        await websocket.close()
        return

    provider = os.environ.get(PROVIDER_ENV, "scripted")
    generator = build_provider(provider, config, base_url=os.environ.get(BASE_URL_ENV))
    pump = EventPump(TurnOrchestrator(config, generator, embed=generator.embed))
    await pump.start()
    listener = asyncio.create_task(_listen(websocket, pump))
    try:
        async for event in pump.events():
            await websocket.send_text(json.dumps(event.to_payload()))
    except WebSocketDisconnect:
        logger.info("client went away mid-stream")
    finally:
        listener.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await listener
        await pump.stop()
        if isinstance(generator, OpenAIChatGenerator):
            await generator.aclose()
    logger.info("run finished in state %s", pump.orchestrator.state.value)
    with contextlib.suppress(RuntimeError):
        await websocket.close()


def run_app(host: str = "127.0.0.1", port: int = 8000) -> None:
    import uvicorn

    uvicorn.run(app, host=host, port=port)


__all__ = ["app", "EventPump", "run_app"]
