"""Metrics API for the monitoring system.

Read-only HTTP endpoints for the admin panel and the desktop dashboard, plus a
WebSocket that pushes snapshots and alert transitions as they happen.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from salesmon.core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_HISTORY_PERIOD, HISTORY_PERIODS_MS
from salesmon.monitoring.events import MonitorEvent
from salesmon.monitoring.system import MonitoringSystem

logger = logging.getLogger(__name__)


class ConnectionHub:
    """Tracks WebSocket clients and broadcasts messages to them."""

    def __init__(self) -> None:
        self.active_connections: List[WebSocket] = []

    async def broadcast(self, data: dict) -> None:
        """Broadcast update to all connected WebSocket clients."""
        if not self.active_connections:
            return

        message = json.dumps(data, default=str)
        disconnected = []
        for connection in self.active_connections:
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.debug(f"Error sending to WebSocket client: {e}")
                disconnected.append(connection)

        # Remove disconnected clients
        for conn in disconnected:
            if conn in self.active_connections:
                self.active_connections.remove(conn)


def status_payload(monitor: MonitoringSystem) -> dict[str, Any]:
    """System status in the admin panel's shape."""
    metrics = monitor.get_metrics().to_wire()
    app_metrics = metrics["application"]
    return {
        "success": True,
        "data": {
            "system": metrics["system"],
            "application": {
                "messageCount": app_metrics["messageCount"],
                "errorCount": app_metrics["errorCount"],
                "queueSize": app_metrics["queueSize"],
                "activeChats": app_metrics["activeChats"],
            },
            "services": {
                "monitoring": "running" if monitor.is_running else "stopped",
            },
            "alerts": [alert.to_wire() for alert in monitor.get_active_alerts()],
        },
    }


def create_app(monitor: MonitoringSystem) -> FastAPI:
    """Create FastAPI application exposing the monitor.

    Event pushes to WebSocket clients are wired for the lifetime of the
    application and unsubscribed on shutdown.
    """
    hub = ConnectionHub()

    async def push_metrics(snapshot) -> None:
        await hub.broadcast({"type": MonitorEvent.METRICS.value, "data": snapshot.to_wire()})

    async def push_alert(alert) -> None:
        await hub.broadcast({"type": MonitorEvent.ALERT.value, "data": alert.to_wire()})

    async def push_resolved(alert) -> None:
        await hub.broadcast({"type": MonitorEvent.ALERT_RESOLVED.value, "data": alert.to_wire()})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        unsubscribers = [
            monitor.on(MonitorEvent.METRICS, push_metrics),
            monitor.on(MonitorEvent.ALERT, push_alert),
            monitor.on(MonitorEvent.ALERT_RESOLVED, push_resolved),
        ]
        try:
            yield
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()
            logger.debug("Metrics API shut down, event pushes unsubscribed")

    app = FastAPI(title="Sales Assistant Monitoring", lifespan=lifespan)
    app.state.monitor = monitor
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/status")
    async def get_status():
        """Current metrics summary, service state and open alerts."""
        try:
            return status_payload(monitor)
        except Exception as e:
            logger.error(f"Error building status: {e}", exc_info=True)
            return JSONResponse(
                {"success": False, "message": "Error getting system status", "error": str(e)},
                status_code=500,
            )

    @app.get("/api/metrics")
    async def get_metrics():
        """Last collected snapshot."""
        return monitor.get_metrics().to_wire()

    @app.get("/api/alerts")
    async def get_alerts():
        """Open alerts."""
        return [alert.to_wire() for alert in monitor.get_active_alerts()]

    @app.get("/api/metrics/history")
    async def get_history(
        period: str = Query(DEFAULT_HISTORY_PERIOD, description="1h|24h|7d|30d"),
        limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=10000),
    ):
        """Persisted snapshots for a period, most recent first."""
        span = HISTORY_PERIODS_MS.get(period, HISTORY_PERIODS_MS[DEFAULT_HISTORY_PERIOD])
        now = monitor.clock()
        history = await monitor.get_metrics_history(limit=limit, start_time=now - span, end_time=now)
        return {"success": True, "data": {"metrics": [s.to_wire() for s in history]}}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for real-time updates."""
        await websocket.accept()
        hub.active_connections.append(websocket)

        try:
            # Send initial state
            await websocket.send_text(json.dumps({
                "type": "update",
                "data": status_payload(monitor)["data"],
            }, default=str))

            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text('{"type": "pong"}')

        except WebSocketDisconnect:
            if websocket in hub.active_connections:
                hub.active_connections.remove(websocket)
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            if websocket in hub.active_connections:
                hub.active_connections.remove(websocket)

    return app


async def run_dashboard_server(
    monitor: MonitoringSystem,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: Optional[str] = "info",
):
    """Run the metrics API together with the monitor.

    Args:
        monitor: Monitoring system to expose (started here if not running)
        host: Server host
        port: Server port
        log_level: uvicorn log level
    """
    import uvicorn

    app = create_app(monitor)

    if not monitor.is_running:
        started = await monitor.start()
        if not started:
            logger.warning("Monitoring system failed to start; serving last known metrics")

    config = uvicorn.Config(app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        monitor.stop()
        # Let the cancelled collection loop unwind
        await asyncio.sleep(0)
