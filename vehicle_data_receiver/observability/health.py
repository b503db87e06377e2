"""
Health Check System
Reports the health of the failed event store over a small /health endpoint
"""

import asyncio
import json
import threading
import time
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, Tuple

import structlog

from vehicle_data_receiver import __version__
from vehicle_data_receiver.observability.metrics import set_store_depth
from vehicle_data_receiver.store.base import BaseFailedEventStore, StorageError

logger = structlog.get_logger(__name__)


class HealthStatus:
    """
    Tracks health status of all dependencies
    """

    def __init__(self):
        self.dependencies: Dict[str, Dict[str, Any]] = {}
        self.start_time = datetime.now(timezone.utc)
        self.version = __version__
        self._lock = threading.Lock()

    def update_dependency(self, name: str, status: str, latency_ms: float, **details: Any) -> None:
        """
        Update health status for a dependency

        Args:
            name: Dependency name
            status: Status ("up" or "down")
            latency_ms: Latency in milliseconds
            **details: Extra values reported with the dependency
        """
        with self._lock:
            self.dependencies[name] = {
                "status": status,
                "latency_ms": round(latency_ms, 2),
                "last_check": datetime.now(timezone.utc).isoformat(),
                **details,
            }

    def get_overall_status(self) -> str:
        """
        Get overall health status

        Returns:
            "healthy" if all dependencies are up, "unhealthy" otherwise
        """
        with self._lock:
            if not self.dependencies:
                return "unhealthy"
            all_up = all(dep["status"] == "up" for dep in self.dependencies.values())
        return "healthy" if all_up else "unhealthy"

    def get_uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert health status to dictionary for JSON response

        Returns:
            Dict with status, dependencies, uptime, version
        """
        status = self.get_overall_status()
        with self._lock:
            dependencies = {name: dict(dep) for name, dep in self.dependencies.items()}
        return {
            "status": status,
            "uptime_seconds": round(self.get_uptime_seconds(), 2),
            "version": self.version,
            "dependencies": dependencies,
        }


# Global health status instance
_health_status = HealthStatus()


async def check_store_health(store: BaseFailedEventStore) -> Tuple[bool, float, Dict[str, int]]:
    """
    Check failed event store health and read its depth

    Args:
        store: Store to check

    Returns:
        Tuple of (is_healthy, latency_ms, depth) where depth holds pending and
        quarantined record counts
    """
    start_time = time.time()

    if not await store.health_check():
        return (False, 0.0, {})

    try:
        depth = {
            "pending": await store.count_pending(),
            "quarantined": await store.count_quarantined(),
        }
    except StorageError as e:
        logger.warning("Failed event store depth check failed", error=str(e))
        return (False, 0.0, {})

    latency_ms = (time.time() - start_time) * 1000
    logger.debug("Failed event store health check passed", latency_ms=latency_ms)
    return (True, latency_ms, depth)


async def update_health_status(store: BaseFailedEventStore) -> Dict[str, int]:
    """
    Update global health status by checking the store

    Returns:
        Store depth (empty if the store is down)
    """
    is_healthy, latency_ms, depth = await check_store_health(store)
    _health_status.update_dependency(
        name="failed_event_store",
        status="up" if is_healthy else "down",
        latency_ms=latency_ms,
        **depth,
    )
    return depth


def get_health_status() -> Dict[str, Any]:
    """
    Get current health status as dict
    """
    return _health_status.to_dict()


class HealthHTTPHandler(BaseHTTPRequestHandler):
    """
    HTTP handler for /health endpoint
    """

    def do_GET(self):
        """Handle GET requests"""
        if self.path == "/health":
            health_data = get_health_status()

            status_code = 200 if health_data["status"] == "healthy" else 503

            self.send_response(status_code)
            self.send_header("Content-Type", "application/json")
            self.end_headers()
            self.wfile.write(json.dumps(health_data, indent=2).encode())

        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        """Suppress default logging"""
        pass


def start_health_server(port: int = 8080) -> HTTPServer:
    """
    Start HTTP server for /health endpoint

    Args:
        port: HTTP port to expose /health endpoint

    Returns:
        The running server (call shutdown() to stop it)
    """
    server = HTTPServer(("0.0.0.0", port), HealthHTTPHandler)

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    logger.info("Health check server started", port=port)
    return server


async def run_periodic_health_checks(
    store: BaseFailedEventStore,
    interval_seconds: int = 30,
) -> None:
    """
    Run health checks periodically in the background

    Args:
        store: Store to check
        interval_seconds: Interval between health checks
    """
    logger.info("Starting periodic health checks", interval_seconds=interval_seconds)

    while True:
        depth = await update_health_status(store)
        if depth:
            set_store_depth(depth["pending"], depth["quarantined"])

        await asyncio.sleep(interval_seconds)
