# portal/backend/main.py
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from typing import Optional
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from fastapi.middleware.cors import CORSMiddleware

from .config.config import Config, settings as default_settings
from .logging.logging_config import setup_logging
from .api import auth, catalog, attendance
from .api.utilities.limiter import limiter
from .db.store import AttendanceStore, ConfigurationMissingError
from .db.factory import build_store
from .services.attendance_engine import SheetRegistry
from .services.credentials import get_verifier, PlaintextVerifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the storage backend on startup and closes it on shutdown.

    A missing or broken backend does not stop the application: the reason is kept
    on app.state and every route that needs storage answers 503 with it.
    """
    settings = app.state.settings
    setup_logging(settings.LOG_DIR)
    logger.info("Application starting...")

    injected = app.state.store is not None
    if not injected and app.state.store_error is None:
        try:
            app.state.store = await build_store(settings)
        except ConfigurationMissingError as e:
            logger.error(f"Storage is not configured; write paths are disabled: {e}")
            app.state.store_error = f"Attendance storage is not configured: {e}"
        except Exception as e:
            logger.error(f"ERROR: storage backend could not be reached at startup: {e}", exc_info=True)
            app.state.store_error = "Attendance storage is unreachable. Please contact the portal administrator."

    yield

    logger.info("Application shutting down...")
    if app.state.store is not None and not injected:
        await app.state.store.close()
        app.state.store = None
        logger.info("Storage backend closed.")


def create_app(store: Optional[AttendanceStore] = None, settings: Optional[Config] = None) -> FastAPI:
    """
    Builds the API. Passing ``store`` injects a backend (tests use MemoryStore);
    otherwise the backend named in ``settings`` is created at startup.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Lecturer Attendance Portal API",
        description="Course attendance sheets for lecturers: login, catalog navigation and session records.",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.store_error = None
    app.state.registry = SheetRegistry()
    app.state.limiter = limiter

    try:
        app.state.verifier = get_verifier(settings.CREDENTIAL_SCHEME)
    except ConfigurationMissingError as e:
        # Without a usable verifier nobody can register or log in safely.
        logger.error(str(e))
        app.state.verifier = PlaintextVerifier()
        app.state.store = None
        app.state.store_error = f"Attendance storage is not configured: {e}"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(catalog.router, prefix="/api/v1")
    app.include_router(attendance.router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    def health_check(request: Request):
        """Reports whether the storage backend is usable."""
        if request.app.state.store is None:
            return {"status": "degraded", "message": request.app.state.store_error or "Storage backend is not ready."}
        return {"status": "ok", "message": "Attendance portal API is running."}

    return app


app = create_app()
