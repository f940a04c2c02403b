"""
Structured JSON Request Logging
===============================
Request IDs, one JSON line per request, size-based rotation, and the
in-memory counters behind /metrics.
"""

import json
import logging
import os
import time
import uuid
from logging.handlers import RotatingFileHandler

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from xmpcube.api.config import LOG_DIR


def _json_logger(name: str, filename: str, level: int, max_bytes: int, backups: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    path = os.path.join(LOG_DIR, filename)
    if not any(getattr(h, "baseFilename", None) == os.path.abspath(path) for h in logger.handlers):
        handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger


# Every request: 10MB max, 5 backups
_logger = _json_logger("xmpcube.requests", "requests.jsonl", logging.INFO, 10 * 1024 * 1024, 5)
# Failures only, for quick scanning
_error_logger = _json_logger("xmpcube.errors", "errors.jsonl", logging.ERROR, 5 * 1024 * 1024, 3)

QUIET_PATHS = ("/health", "/favicon.ico")

_metrics = {
    "total_requests": 0,
    "errors_4xx": 0,
    "errors_5xx": 0,
    "by_endpoint": {},
    "latencies": [],  # last 1000 request durations in ms
    "started_at": time.time(),
}
_MAX_LATENCIES = 1000


def _percentile(sorted_values, fraction: float) -> float:
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return round(sorted_values[index], 1)


def get_metrics() -> dict:
    """Request counts, latency percentiles and the busiest endpoints."""
    latencies = sorted(_metrics["latencies"]) or [0]
    return {
        "total_requests": _metrics["total_requests"],
        "errors_4xx": _metrics["errors_4xx"],
        "errors_5xx": _metrics["errors_5xx"],
        "uptime_seconds": round(time.time() - _metrics["started_at"]),
        "latency_ms": {
            "p50": _percentile(latencies, 0.5),
            "p95": _percentile(latencies, 0.95),
            "p99": _percentile(latencies, 0.99),
        },
        "top_endpoints": dict(
            sorted(_metrics["by_endpoint"].items(), key=lambda x: x[1], reverse=True)[:10]
        ),
    }


def _entry(request: Request, request_id: str, status: int, duration_ms: float) -> dict:
    return {
        "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "rid": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": status,
        "ms": duration_ms,
        "ip": request.client.host if request.client else "unknown",
    }


def _record(method: str, path: str, status: int, duration_ms: float) -> None:
    _metrics["total_requests"] += 1
    if 400 <= status < 500:
        _metrics["errors_4xx"] += 1
    elif status >= 500:
        _metrics["errors_5xx"] += 1

    key = f"{method} {path}"
    _metrics["by_endpoint"][key] = _metrics["by_endpoint"].get(key, 0) + 1

    _metrics["latencies"].append(duration_ms)
    if len(_metrics["latencies"]) > _MAX_LATENCIES:
        _metrics["latencies"] = _metrics["latencies"][-_MAX_LATENCIES:]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request as JSON and tags the response with its ID and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        start = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.time() - start) * 1000, 1)
            entry = _entry(request, request_id, 500, duration_ms)
            entry["error"] = str(exc)[:200]
            _logger.info(json.dumps(entry))
            _error_logger.error(json.dumps(entry))
            _record(request.method, request.url.path, 500, duration_ms)
            raise

        duration_ms = round((time.time() - start) * 1000, 1)
        status = response.status_code
        path = request.url.path

        if path not in QUIET_PATHS:
            entry = _entry(request, request_id, status, duration_ms)
            _logger.info(json.dumps(entry))
            if status >= 500:
                _error_logger.error(json.dumps(entry))

        _record(request.method, path, status, duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response
