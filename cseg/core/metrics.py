"""Prometheus metrics for the CSEG game server.

Covers HTTP traffic, WebSocket observers, round actions and the code judge.
The engine runs in a single process, so the default registry is used.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

from cseg.config import settings


# Application info
APP_INFO = Info("cseg", "CSEG game server information")
APP_INFO.info({
    "version": "0.1.0",
    "environment": settings.environment,
})


# HTTP Request Metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


# WebSocket Metrics
WEBSOCKET_CONNECTIONS = Gauge(
    "websocket_connections_active",
    "Active WebSocket observers",
)

STATE_BROADCASTS_TOTAL = Counter(
    "state_broadcasts_total",
    "Full-state broadcasts sent after accepted mutations",
)


# Game Metrics
GAME_ACTIONS_TOTAL = Counter(
    "game_actions_total",
    "Round actions dispatched",
    ["action", "outcome"],  # outcome: "accepted", "rejected"
)

PHASE_TRANSITIONS_TOTAL = Counter(
    "phase_transitions_total",
    "Phase transitions by target phase",
    ["phase"],
)


# Judge Metrics
JUDGE_RUNS_TOTAL = Counter(
    "judge_runs_total",
    "Code judge invocations",
    ["language", "result"],  # result: "passed", "failed", "error"
)

JUDGE_DURATION = Histogram(
    "judge_duration_seconds",
    "Wall-clock time of a full judge invocation",
    ["language"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)


def normalize_endpoint(path: str) -> str:
    """Replace player ids and numeric ids with placeholders."""
    path = re.sub(r"/p_[0-9a-f]+", "/{player}", path)
    return re.sub(r"/\d+(/|$)", "/{id}\\1", path)


def record_action(action: str, accepted: bool) -> None:
    outcome = "accepted" if accepted else "rejected"
    GAME_ACTIONS_TOTAL.labels(action=action, outcome=outcome).inc()


def record_phase_transition(phase: str) -> None:
    PHASE_TRANSITIONS_TOTAL.labels(phase=phase).inc()


def record_judge_run(language: str, result: str, duration: float) -> None:
    """Record a judge invocation."""
    JUDGE_RUNS_TOTAL.labels(language=language, result=result).inc()
    JUDGE_DURATION.labels(language=language).observe(duration)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to automatically track HTTP metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        normalized = normalize_endpoint(request.url.path)
        start_time = time.perf_counter()
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            duration = time.perf_counter() - start_time
            HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=normalized, status=status).inc()
            HTTP_REQUEST_DURATION.labels(method=method, endpoint=normalized).observe(duration)

        return response


async def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
