"""
FastAPI application factory.

Usage:
    python -m api.app                    # Dev server on port 8000
    APP_DB_PATH=/data/tracker.sqlite python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

APP-001: Client IP taken from X-Forwarded-For only behind TRUSTED_PROXIES.
APP-002: Per-app rate limiter: one-minute window per client and limit
         bucket; idle clients are pruned every few minutes.
APP-003: Structured JSON logging when APP_LOG_FORMAT=json.
APP-004: CORS middleware with configurable origins via APP_CORS_ORIGINS.
"""

import json
import logging
import os
import sqlite3
import time
import uuid
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.database import get_db_path
from api.routes import accomplishments, records, reference, transfer
from store.schema import KINDS
from utils.config import AppConfig
from utils.database import get_table_count, table_exists

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── APP-003: Structured JSON logging ─────────────────────────────────────────

_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "client_ip", "request_id")


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; request fields passed via ``extra`` become keys."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update({k: getattr(record, k) for k in _REQUEST_FIELDS if hasattr(record, k)})
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("funding_tracker_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

# ── APP-002: Rate limiting ────────────────────────────────────────────────────
# Imports have their own budget (RATE_LIMIT_IMPORT); every other path shares
# RATE_LIMIT_DEFAULT.  /health is never limited.
_RATE_LIMITS: dict[str, int] = {
    "/api/v1/imports": _cfg.rate_limit_import,
}
_DEFAULT_RATE_LIMIT = _cfg.rate_limit_default
_WINDOW_SECONDS = 60.0
_PRUNE_INTERVAL = 300.0


def _bucket_for(path: str) -> tuple[str, int]:
    for prefix, limit in _RATE_LIMITS.items():
        if path.startswith(prefix):
            return prefix, limit
    return "*", _DEFAULT_RATE_LIMIT


def _rate_limit_for(path: str) -> int:
    return _bucket_for(path)[1]


class _RateLimiter:
    """Request times per ``(client_ip, bucket)`` over a sliding window."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[tuple[str, str], deque] = {}
        self._last_prune = clock()
        self.blocked = 0

    def allow(self, client_ip: str, path: str) -> bool:
        """Record a request; False when the client's bucket is already full."""
        bucket, limit = _bucket_for(path)
        now = self._clock()
        self._prune(now)
        hits = self._hits.setdefault((client_ip, bucket), deque())
        while hits and hits[0] <= now - _WINDOW_SECONDS:
            hits.popleft()
        if len(hits) >= limit:
            self.blocked += 1
            return False
        hits.append(now)
        return True

    def _prune(self, now: float) -> None:
        if now - self._last_prune < _PRUNE_INTERVAL:
            return
        self._last_prune = now
        cutoff = now - _WINDOW_SECONDS
        self._hits = {k: v for k, v in self._hits.items() if v and v[-1] > cutoff}

    @property
    def tracked_clients(self) -> int:
        return len({ip for ip, _ in self._hits})


# ── APP-001: Client IP ────────────────────────────────────────────────────────

def _get_client_ip(request: Request) -> str:
    """Direct peer address, or the leftmost X-Forwarded-For entry from a trusted proxy."""
    direct_ip = request.client.host if request.client else "unknown"
    if direct_ip not in _cfg.trusted_proxies:
        return direct_ip
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return forwarded or direct_ip


# ── Metrics ───────────────────────────────────────────────────────────────────

_RESPONSE_TIME_WINDOW = 100


@dataclass
class _Metrics:
    """In-memory counters for /health/detailed; reset with the process."""

    started: float = field(default_factory=time.time)
    requests: int = 0
    errors: int = 0
    response_times_ms: deque = field(
        default_factory=lambda: deque(maxlen=_RESPONSE_TIME_WINDOW))

    def record(self, status: int, duration_ms: float) -> None:
        self.requests += 1
        if status >= 500:
            self.errors += 1
        self.response_times_ms.append(duration_ms)

    @property
    def avg_response_ms(self) -> float:
        rts = self.response_times_ms
        return round(sum(rts) / len(rts), 2) if rts else 0.0


def _check_database(db_path: Path) -> dict[str, int] | JSONResponse:
    """Record counts per table, or the 503 response saying why there are none."""
    if not db_path.exists():
        return JSONResponse(
            status_code=503,
            content={"status": "no_database", "database": str(db_path)},
        )
    try:
        conn = sqlite3.connect(str(db_path))
        try:
            if not table_exists(conn, "subprojects"):
                return JSONResponse(
                    status_code=503,
                    content={"status": "no_schema", "database": str(db_path)},
                )
            return {kind.table: get_table_count(conn, kind.table) for kind in KINDS.values()}
        finally:
            conn.close()
    except sqlite3.Error as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "error": str(exc)},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn at startup when the database file is missing."""
    db_path = get_db_path()
    if not db_path.exists():
        _logger.warning(
            "Database not found at %s. Run 'python init_tracker_db.py' first.", db_path
        )
    yield


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).

    Returns:
        Configured FastAPI application instance.
    """
    if db_path is not None:
        import api.database as _db_mod
        _db_mod._DB_PATH = db_path

    app = FastAPI(
        title="Program Funding Tracker API",
        summary="Record management and financial/physical accomplishment tracking.",
        description=(
            "## Program Funding Tracker API\n\n"
            "Manages subprojects, activities and program management records "
            "(office, staffing and other expenses) and rolls them up into "
            "financial and physical accomplishment worksheets.\n\n"
            "### Key concepts\n"
            "- **Amounts** are in pesos.\n"
            "- **Financial worksheet** groups budget lines by object type "
            "(MOOE, CO, PS), then UACS budget code, then category.\n"
            "- **Sessions** hold a loaded worksheet so edits survive between "
            "requests; nothing is written until an item is confirmed or saved.\n"
            "- **Roles**: send `X-User-Role` and `X-Operating-Unit`; a role "
            "that cannot view all units only sees its own.\n\n"
            "### Rate limits\n"
            f"- `/api/v1/imports`: {_cfg.rate_limit_import} req/min per IP\n"
            f"- All other endpoints: {_cfg.rate_limit_default} req/min per IP\n\n"
            "Returns `429 Too Many Requests` with `Retry-After: 60` when exceeded."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "records",
                "description": "List, filter, create, update and delete tracker records.",
            },
            {
                "name": "accomplishments",
                "description": "Financial and physical accomplishment worksheets.",
            },
            {
                "name": "transfer",
                "description": "Spreadsheet templates, reports and imports (.xlsx).",
            },
            {
                "name": "reference",
                "description": "UACS budget codes, option lists and role permissions.",
            },
            {
                "name": "meta",
                "description": "Health check and API metadata.",
            },
        ],
    )

    # ── APP-004: CORS middleware ───────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def cache_control_middleware(request: Request, call_next):
        """Add Cache-Control headers by endpoint category."""
        path = request.url.path
        response = await call_next(request)
        if path.startswith("/api/v1/reference") and request.method == "GET":
            response.headers.setdefault("Cache-Control", "public, max-age=3600")
        elif path.startswith(("/api/v1/accomplishments", "/api/v1/records",
                              "/api/v1/reports")):
            response.headers.setdefault("Cache-Control", "private, no-cache")
        return response

    # ── Request logging + rate limiting middleware ────────────────────────────

    app.state.rate_limiter = _RateLimiter()
    app.state.metrics = _Metrics()

    @app.middleware("http")
    async def log_and_rate_limit(request: Request, call_next):
        """Log each request, enforce per-client rate limits, and record metrics."""
        path = request.url.path
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = _get_client_ip(request)
        if path != "/health" and not app.state.rate_limiter.allow(client_ip, path):
            _logger.warning("rate_limited ip=%s path=%s limit=%d",
                            client_ip, path, _rate_limit_for(path))
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "status_code": 429},
                headers={"Retry-After": str(int(_WINDOW_SECONDS))},
            )

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        app.state.metrics.record(response.status_code, duration_ms)
        response.headers["X-Request-ID"] = request_id
        _logger.info(
            "%s %s %d %.1fms ip=%s rid=%s",
            request.method, path, response.status_code, duration_ms, client_ip, request_id,
            extra={
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 1),
                "client_ip": client_ip,
                "request_id": request_id,
            },
        )
        return response

    # ── Security headers ──────────────────────────────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add X-Content-Type-Options and X-Frame-Options."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "status_code": 500,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content={"error": "Bad request", "detail": str(exc), "status_code": 400},
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK if the API is running and can reach the database."""
        db_path = get_db_path()
        counts = _check_database(db_path)
        if isinstance(counts, JSONResponse):
            return counts
        return {"status": "ok", "database": str(db_path), "subprojects": counts["subprojects"]}

    @app.get(
        "/health/detailed",
        tags=["meta"],
        summary="Detailed health metrics",
        response_description="Operational metrics for monitoring dashboards",
    )
    def health_detailed():
        """Return uptime, request/error counters and per-table record counts.

        Counters reset on process restart.
        """
        db_path = get_db_path()
        counts = _check_database(db_path)
        if isinstance(counts, JSONResponse):
            return counts
        metrics: _Metrics = app.state.metrics
        return {
            "status": "ok",
            "uptime_seconds": round(time.time() - metrics.started, 2),
            "request_count": metrics.requests,
            "error_count": metrics.errors,
            "db_size_bytes": os.path.getsize(str(db_path)),
            "record_counts": counts,
            "open_worksheets": accomplishments._store.stats(),
            "avg_response_time_ms": metrics.avg_response_ms,
            "rate_limiter_stats": {
                "tracked_clients": app.state.rate_limiter.tracked_clients,
                "blocked_requests": app.state.rate_limiter.blocked,
            },
        }

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(records.router,         prefix=prefix)
    app.include_router(accomplishments.router, prefix=prefix)
    app.include_router(transfer.router,        prefix=prefix)
    app.include_router(reference.router,       prefix=prefix)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
