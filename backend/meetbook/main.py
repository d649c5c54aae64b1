# meetbook/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meetbook import __version__
from meetbook.api.v1 import availability, documents, meetings, schedule
from meetbook.calendar import CalendarExporter, DocumentCache
from meetbook.core.config import Settings, get_settings
from meetbook.core.logging import setup_logging
from meetbook.scheduling import AvailabilityService, BookingEngine, HostLockRegistry
from meetbook.stores import SchedulingStore, resolve_store

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[SchedulingStore] = None) -> FastAPI:
    """Build the API. ``store`` overrides the configured backend (tests)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        active_store = store or resolve_store(settings)
        await active_store.open()

        locks = HostLockRegistry()
        app.state.settings = settings
        app.state.store = active_store
        app.state.locks = locks
        app.state.booking_engine = BookingEngine(
            active_store,
            locks,
            CalendarExporter(uid_domain=settings.ics_uid_domain),
            cache=DocumentCache(settings.ics_dir),
            public_base_url=settings.public_base_url,
            slot_minutes=settings.slot_minutes,
            default_meeting_minutes=settings.default_meeting_minutes,
        )
        app.state.availability_service = AvailabilityService(active_store)
        logger.info(f"Meetbook started with {active_store.name} storage ({settings.app_env})")
        try:
            yield
        finally:
            await active_store.close()
            locks.clear()
            logger.info("Meetbook stopped")

    app = FastAPI(
        title="Meetbook API",
        description="Public booking pages for hosts' weekly availability",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(schedule.router, prefix="/api", tags=["schedule"])
    app.include_router(availability.router, prefix="/api/hosts", tags=["availability"])
    app.include_router(meetings.router, prefix="/api", tags=["meetings"])
    app.include_router(documents.router, prefix="/ics", tags=["documents"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Meetbook API",
            "version": __version__,
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "storage": settings.storage_backend,
            "environment": settings.app_env,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "meetbook.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=True,
    )
