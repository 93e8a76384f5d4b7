"""
HTTP and WebSocket transport for the funding scanner.

Usage:
    funding-scanner serve

Or with uvicorn:
    uvicorn funding_scanner.server:create_app --factory --host 0.0.0.0 --port 8080

Endpoints:
    GET /api/funding-rates   pull the current snapshot
    WS  /api/socket          JSON messages {"event": ..., "data": ...}
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .connectors import HttpClient
from .engine import AggregationError, SnapshotDistributor
from .engine.factory import create_distributor
from .models.config import ScannerConfig, create_config
from .models.snapshot import FundingSnapshot

logger = logging.getLogger(__name__)

# Socket events
EVENT_CONNECTED = "connected"
EVENT_FUNDING_RATES = "funding-rates"
EVENT_GET_FUNDING_RATES = "get-funding-rates"
EVENT_ERROR = "error"


class SocketHub:
    """Open WebSocket connections, keyed by subscriber id"""

    def __init__(self):
        self._clients: Dict[str, WebSocket] = {}

    def __len__(self):
        return len(self._clients)

    def add(self, subscriber_id: str, websocket: WebSocket):
        self._clients[subscriber_id] = websocket

    def remove(self, subscriber_id: str):
        self._clients.pop(subscriber_id, None)

    async def broadcast(self, snapshot: FundingSnapshot) -> None:
        """Send the snapshot to every open socket, dropping the dead ones"""
        if not self._clients:
            return

        message = {"event": EVENT_FUNDING_RATES, "data": snapshot.to_payload()}
        disconnected = []
        for subscriber_id, websocket in list(self._clients.items()):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping subscriber {subscriber_id}: {e}")
                disconnected.append(subscriber_id)

        for subscriber_id in disconnected:
            self.remove(subscriber_id)


def create_app(config: Optional[ScannerConfig] = None,
               distributor: Optional[SnapshotDistributor] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Scanner configuration (loaded from the environment when None)
        distributor: Pre-built distributor; one over the configured
            exchanges is created when None
    """
    config = config or create_config()
    hub = SocketHub()

    http_client: Optional[HttpClient] = None
    if distributor is None:
        http_client = HttpClient()
        distributor = create_distributor(config, http_client)
    if distributor.broadcast is None:
        distributor.broadcast = hub.broadcast

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting funding scanner server...")
        distributor.start()

        yield

        logger.info("Shutting down funding scanner server...")
        await distributor.stop()
        if http_client is not None:
            await http_client.close()
        logger.info("Shutdown complete")

    app = FastAPI(title="Funding Scanner", version="1.0.0", lifespan=lifespan)
    app.state.config = config
    app.state.distributor = distributor
    app.state.hub = hub

    @app.get("/api/funding-rates")
    async def get_funding_rates():
        payload = await distributor.get_snapshot_payload()
        status_code = 200 if payload["success"] else 500
        return JSONResponse(content=payload, status_code=status_code)

    @app.websocket("/api/socket")
    async def socket_endpoint(websocket: WebSocket):
        await websocket.accept()
        subscriber_id = uuid.uuid4().hex
        hub.add(subscriber_id, websocket)

        try:
            snapshot = distributor.connect(subscriber_id)
            await websocket.send_json({
                "event": EVENT_CONNECTED,
                "data": {"id": subscriber_id, "subscribers": len(hub)}
            })
            if snapshot is not None:
                await websocket.send_json({"event": EVENT_FUNDING_RATES, "data": snapshot.to_payload()})

            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))

                text = frame.get("text")
                if text is None:
                    await websocket.send_json({
                        "event": EVENT_ERROR,
                        "data": {"message": "Invalid message", "error": "Binary frames are not supported"}
                    })
                    continue
                try:
                    message = json.loads(text)
                except ValueError:
                    await websocket.send_json({
                        "event": EVENT_ERROR,
                        "data": {"message": "Invalid message", "error": "Message is not valid JSON"}
                    })
                    continue
                await _handle_message(websocket, distributor, subscriber_id, message)

        except WebSocketDisconnect:
            pass
        finally:
            hub.remove(subscriber_id)
            distributor.disconnect(subscriber_id)

    return app


async def _handle_message(websocket: WebSocket,
                          distributor: SnapshotDistributor,
                          subscriber_id: str,
                          message: Any) -> None:
    """Answer one client message on the socket it came from"""
    event = message.get("event") if isinstance(message, dict) else None

    if event != EVENT_GET_FUNDING_RATES:
        logger.debug(f"Ignoring socket message from {subscriber_id}: {event}")
        return

    try:
        snapshot = await distributor.request_snapshot(subscriber_id)
    except AggregationError as e:
        await websocket.send_json({
            "event": EVENT_ERROR,
            "data": {"message": "Failed to fetch funding rates", "error": e.message}
        })
        return

    await websocket.send_json({"event": EVENT_FUNDING_RATES, "data": snapshot.to_payload()})
