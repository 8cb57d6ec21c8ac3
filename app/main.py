"""
Main FastAPI application for the Tally backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import admin, assistant, events, health, reports
from app.routers import settings as settings_router

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_llm() -> bool:
    """Log whether the assistant can reach an LLM.  Never raises."""
    if settings.llm_configured:
        logger.info("✓ LLM configured: model '%s' at %s", settings.LLM_MODEL, settings.LLM_BASE_URL)
        return True
    logger.warning(
        "⚠ LLM_API_KEY is not set; assistant chat, stats narration and "
        "message parsing will be unavailable"
    )
    return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Tally backend …")
    logger.info("=" * 60)

    # Database is required; raises on failure
    await _check_database()

    # LLM is optional
    _check_llm()

    if settings.get_admin_emails():
        logger.info("✓ %d admin email(s) configured", len(settings.get_admin_emails()))

    logger.info("=" * 60)
    logger.info("  Tally backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Tally backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Tally API",
    description=(
        "**Tally** - meetings and income tracking.\n\n"
        "Record client meetings, follow payments, browse monthly reports and "
        "ask the AI assistant about your data.\n\n"
        "Key endpoints:\n"
        "- `GET  /api/events` - list meetings\n"
        "- `POST /api/events` - record a meeting\n"
        "- `GET  /api/reports/dashboard` - KPI cards\n"
        "- `GET  /api/reports/monthly` - monthly report data\n"
        "- `POST /api/assistant/chat` - AI assistant\n"
        "- `POST /api/assistant/parse-message` - WhatsApp text to meeting\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,          prefix="/api/health",    tags=["Health"])
app.include_router(events.router,          prefix="/api/events",    tags=["Events"])
app.include_router(reports.router,         prefix="/api/reports",   tags=["Reports"])
app.include_router(settings_router.router, prefix="/api/settings",  tags=["Settings"])
app.include_router(admin.me_router,        prefix="/api",           tags=["Profile"])
app.include_router(admin.router,           prefix="/api/admin",     tags=["Admin"])
app.include_router(assistant.router,       prefix="/api/assistant", tags=["Assistant"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root - returns basic service info."""
    return {
        "name": "Tally API",
        "version": "0.1.0",
        "description": "Meetings and income tracking backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "events": "/api/events",
            "reports": "/api/reports",
            "settings": "/api/settings",
            "me": "/api/me",
            "admin": "/api/admin",
            "assistant": "/api/assistant",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
