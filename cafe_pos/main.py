"""Cafe POS application: logging, middleware, error handlers and health probes."""

import json
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from cafe_pos import __version__
from cafe_pos.api.routes import api_router
from cafe_pos.core.config import settings
from cafe_pos.core.exceptions import CafePosError
from cafe_pos.core.metrics import MetricsMiddleware, metrics
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import Permission, TokenData, require_permission
from cafe_pos.db.base import Base
from cafe_pos.db.session import SessionLocal, engine
from cafe_pos.services.events import EventBus, EventLog, RedisEventRelay

# Plain text logs while debugging, one JSON object per line otherwise
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            entry = {
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info:
                entry["exc"] = self.formatException(record.exc_info)
            return json.dumps(entry)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("cafe_pos.requests")

QUIET_PATHS = frozenset({"/", "/health", "/docs", "/openapi.json"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and latency for every API call."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        client = request.client.host if request.client else "-"
        route = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            request_logger.exception(f"{route} failed after {elapsed_ms:.1f}ms (client {client})")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(level, f"{route} -> {response.status_code} in {elapsed_ms:.1f}ms (client {client})")
        return response


# Order events: every published event lands in the polling log
event_bus = EventBus()
event_log = EventLog(maxlen=settings.event_log_size)
event_bus.subscribe_all(event_log)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create SQLite tables and attach the redis relay for the app's lifetime."""
    logger.info("Starting Cafe POS")

    # Production schemas come from alembic
    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)
        logger.info("SQLite schema ensured")

    relay = None
    if settings.redis_url:
        relay = RedisEventRelay.from_url(settings.redis_url, settings.event_channel)
        if relay is not None:
            app.state.event_bus.subscribe_all(relay)
    app.state.event_relay = relay

    yield

    if relay is not None:
        app.state.event_bus.unsubscribe(relay)
    logger.info("Shutting down Cafe POS")


app = FastAPI(
    title="Cafe POS",
    description="Order lifecycle backend for a role-based cafe point of sale",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.state.event_bus = event_bus
app.state.event_log = event_log
app.state.event_relay = None

# Rate limits
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(CafePosError)
async def cafe_pos_error_handler(request: Request, exc: CafePosError):
    """Domain errors become ``{"detail", "error", "field"}`` with their status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Starlette runs middleware in reverse order of registration
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Liveness: the process is up."""
    return {"status": "healthy", "version": __version__}


@app.get("/health/ready")
def readiness_check(request: Request):
    """Readiness: database reachable and, when configured, the redis relay attached."""
    checks = {"database": "unknown", "redis": "not configured"}

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Readiness probe could not reach the database: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    if settings.redis_url:
        relay = getattr(request.app.state, "event_relay", None)
        checks["redis"] = "healthy" if relay is not None else "unavailable"

    all_healthy = checks["database"] == "healthy" and checks["redis"] != "unavailable"
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Service banner."""
    return {
        "message": "Cafe POS API",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/metrics")
@limiter.limit("30/minute")
def prometheus_metrics(
    request: Request,
    current_user: Annotated[TokenData, Depends(require_permission(Permission.ANALYTICS_OVERVIEW))],
):
    """Request and order counters in Prometheus text format."""
    return PlainTextResponse(metrics.get_prometheus_metrics(), media_type="text/plain")
