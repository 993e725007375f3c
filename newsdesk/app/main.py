"""
main.py
-------
FastAPI app exposing the topic lookup over a WebSocket (/ws) and a plain
/lookup endpoint. Includes /health for liveness checks and serves the static
front-end from STATIC_DIR when it exists.
"""
from __future__ import annotations
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..logging_config import configure_logging
from ..models import LookupRequest, LookupResponse
from ..graph.graph import FALLBACK_RESULT, Orchestrator, lookup_topic
from .deps import get_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    # Build the graph up front so wiring errors (unknown tools, bad table) fail at startup
    app.dependency_overrides.get(get_orchestrator, get_orchestrator)()
    yield


app = FastAPI(title="Newsdesk Multi-Agent Topic Reports", version="1.0.0", lifespan=lifespan)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/lookup", response_model=LookupResponse)
def lookup(req: LookupRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Run the workflow for one topic within the caller's session."""
    return lookup_topic(orchestrator, req.topic, req.session_id)


@app.websocket("/ws")
async def ws(socket: WebSocket, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """
    One request at a time per connection: the next message is not read until
    the current run has finished. Unknown commands are ignored.
    """
    await socket.accept()
    try:
        while True:
            raw = await socket.receive_text()
            try:
                payload = json.loads(raw)
                if not isinstance(payload, dict) or payload.get("command") != "lookup_topic":
                    logger.debug("Ignoring websocket message: %.100s", raw)
                    continue
                req = LookupRequest.model_validate(payload)
            except ValueError:
                logger.exception("Malformed websocket request")
                await socket.send_json({"result": FALLBACK_RESULT})
                continue

            response = await run_in_threadpool(lookup_topic, orchestrator, req.topic, req.session_id)
            await socket.send_json(response.model_dump())
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")


if Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")


def run() -> None:
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
