from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from vitatrack.db.base import get_db
from vitatrack.core.config import settings
from vitatrack.core.logging import setup_logging
from vitatrack.routers import tracking as tracking_router
from vitatrack.routers import reports as reports_router
from vitatrack.routers import profile as profile_router
from vitatrack.services import events
from vitatrack.core.errors import (
    VitaTrackException,
    vitatrack_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logger = setup_logging()
events.bus.subscribe(events.log_event)

app = FastAPI(
    title="VitaTrack API",
    description=(
        "**Daily health tracking with history**\n\n"
        "Tracks meals, water, exercise minutes and calories per user and day. "
        "A new day starts lazily on the first request: the previous day is archived "
        "and fresh records are created with the user's current goals.\n\n"
        "Identify the caller with the `X-User-Id` header. "
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error envelope ---
app.add_exception_handler(VitaTrackException, vitatrack_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(tracking_router.router)
app.include_router(reports_router.router)
app.include_router(profile_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """Liveness plus a `SELECT 1` round trip; 503 when the store is unreachable."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        logger.warning("Health check could not reach the database")
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
