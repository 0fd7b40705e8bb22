# presence/main.py
"""
FastAPI application entry point.
Includes security middleware, domain/global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import DBAPIError, IntegrityError
from presence.routers import facilities, occupancy, events, identities, access_events, alerts, health
from presence.database import create_tables
from presence.exceptions import PresenceError
from presence.config import settings
from presence.utils.logger import get_logger
import time

logger = get_logger(__name__)

# SQLSTATE for serialization_failure / deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}
UNIQUE_VIOLATION = "23505"   # two racing taps both opening a session

app = FastAPI(
    title="Presence Tracker API",
    description="RFID facility occupancy and event attendance.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth. Readers and dashboards send X-API-Key.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(PresenceError)
async def presence_error_handler(request: Request, exc: PresenceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    unique_violation = sqlstate == UNIQUE_VIOLATION or (
        getattr(exc.orig, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_UNIQUE"
    )
    if sqlstate in RETRYABLE_SQLSTATES or (isinstance(exc, IntegrityError) and unique_violation):
        logger.warning(f"Concurrent update conflict on {request.url.path}: {sqlstate}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "Concurrent update, retry the scan", "code": "CONCURRENT_UPDATE"},
        )
    if isinstance(exc, IntegrityError):
        logger.warning(f"Constraint violation on {request.url.path}: {exc.orig}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Request violates a data constraint", "code": "INVALID_INPUT"},
        )
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(facilities.router,    prefix="/api/v1", tags=["Facilities"])
app.include_router(occupancy.router,     prefix="/api/v1", tags=["Occupancy"])
app.include_router(events.router,        prefix="/api/v1", tags=["Events & Attendance"])
app.include_router(identities.router,    prefix="/api/v1", tags=["Identities"])
app.include_router(access_events.router, prefix="/api/v1", tags=["Access Log"])
app.include_router(alerts.router,        prefix="/api/v1", tags=["Alerts"])
app.include_router(health.router,        prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Presence backend starting up...")
    create_tables()
    logger.info("Database tables ready")
    logger.info(f"Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Presence backend shutting down...")
