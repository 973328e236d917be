"""
Inquiry Board - Main Application
================================

Support inquiry board with an automated triage pipeline.

Modules:
- Workflow: Ticket steps, guarded transitions and the process log
- Triage: Server diagnostics, reasoning-service analysis and the worker

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, credential vault, LLM, remote shell, notifications
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from inquiry_board.bootstrap import Services, build_services
from inquiry_board.config import Settings, get_settings
from inquiry_board.shared.api.middleware import install_middleware
from inquiry_board.shared.infrastructure.logging import get_logger, setup_logging
from inquiry_board.triage.infrastructure import WorkerScheduler
from inquiry_board.triage.interfaces import router as triage_router
from inquiry_board.workflow.interfaces import router as workflow_router

logger = get_logger(__name__)


def attach_services(app: FastAPI, services: Services) -> None:
    """Store services in app state for dependency injection."""
    app.state.settings = services.settings
    app.state.services = services
    app.state.store_provider = services.store_provider
    app.state.state_machine = services.state_machine
    app.state.analysis_service = services.analysis_service
    app.state.triage_worker = services.triage_worker


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    ``services`` lets callers supply pre-wired collaborators; otherwise they
    are built from settings at startup.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        STARTUP:
        1. Setup structured logging
        2. Wire services
        3. Create database tables
        4. Start the embedded worker scheduler (when enabled)

        SHUTDOWN:
        1. Stop the scheduler
        2. Close notifier and database
        """
        # === STARTUP ===
        setup_logging(settings.log_level, settings.environment)
        logger.info("Starting Inquiry Board", extra={
            "version": settings.app_version,
            "environment": settings.environment
        })

        wired = services or build_services(settings)
        attach_services(app, wired)

        # For development - production schemas are managed by migrations
        logger.info("Creating database tables")
        try:
            await wired.database.create_tables()
        except Exception as e:
            logger.warning(f"Database not available - running in degraded mode: {e}")

        scheduler = None
        if settings.run_worker_in_api and wired.triage_worker:
            scheduler = WorkerScheduler(settings.worker_interval_seconds)
            await scheduler.start(wired.triage_worker.run_tick)
        app.state.worker_scheduler = scheduler

        logger.info("Inquiry Board started successfully")

        yield  # Application runs here

        # === SHUTDOWN ===
        logger.info("Shutting down Inquiry Board")
        if scheduler:
            await scheduler.stop()
        await wired.close()
        logger.info("Inquiry Board shutdown complete")

    app = FastAPI(
        title="Inquiry Board API",
        description="""
    ## Support Inquiry Board with Automated Triage

    ### Workflow Module
    - `POST /process/transitions` - Move a ticket to another step (guarded)
    - `POST /process/{id}/reanalysis` - Send a ticket back for analysis with feedback
    - `POST /process/{id}/requeue` - Clear a parked ticket's failure counter
    - `GET /process/{id}/logs` - Process log, oldest first

    ### Triage Module
    - `POST /triage/ask` - Answer a question under a ticket
    - `POST /triage/run` - Run one worker tick now

    Steps: registered → ai_review → pending_approval → ai_processing → completed / admin_confirm / rework
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    install_middleware(app)

    # === Include Module Routers ===
    app.include_router(workflow_router)
    app.include_router(triage_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        wired: Optional[Services] = getattr(request.app.state, "services", None)
        scheduler = getattr(request.app.state, "worker_scheduler", None)
        checks = {
            "database": "configured" if wired else "not_initialized",
            "credential_vault": "available" if wired and wired.vault else "not_configured",
            "llm_client": "available" if wired and wired.analysis_service else "not_configured",
            "notifier": type(wired.notifier).__name__ if wired else "not_initialized",
            "worker_scheduler": "running" if scheduler and scheduler.is_running else "external",
        }
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Inquiry Board",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "workflow": {
                    "prefix": "/process",
                    "endpoints": [
                        "POST /process/transitions - Guarded step change",
                        "POST /process/{id}/reanalysis - Re-analysis with feedback",
                        "POST /process/{id}/requeue - Unpark a ticket",
                        "GET /process/{id}/logs - Process log"
                    ]
                },
                "triage": {
                    "prefix": "/triage",
                    "endpoints": [
                        "POST /triage/ask - Ask AI",
                        "POST /triage/run - Run one worker tick"
                    ]
                }
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "inquiry_board.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.environment == "development",
        log_level="info"
    )
