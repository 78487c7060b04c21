"""
Helpdesk Service - Main Application
===================================

Customer support ticketing backend.

Modules:
- Tickets: ticket lifecycle, first-response tracking
- Routing: classification, assignment rules, round-robin rotation
- SLA: policies, deadlines, breach detection and notifications

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, domain services
- Infrastructure: Database, keyword file watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk.config import settings
from helpdesk.core import ApplicationException

# Infrastructure
from helpdesk.infrastructure.database import (
    init_database, close_database, create_tables, get_session_maker
)

# Module services
from helpdesk.routing.infrastructure import keyword_manager
from helpdesk.sla.infrastructure import SLAScheduler
from helpdesk.sla.services import SLAMonitor

# Module Routers
from helpdesk.tickets.interfaces import tickets_router
from helpdesk.routing.interfaces import routing_router
from helpdesk.sla.interfaces import sla_router

# Shared
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from helpdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)

sla_scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load classifier keywords and watch the keyword file
    4. Start the SLA breach sweep scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop keyword file watcher
    3. Close database connections
    """
    global sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment, settings.app_name)
    logger.info("Starting Helpdesk Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use migrations in production)
    logger.info("Creating database tables")
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Loading classifier keywords")
    keyword_manager.load(settings.classifier_keywords_path)
    keyword_manager.start_watching()

    if settings.sla_monitoring_enabled:
        monitor = SLAMonitor(get_session_maker())
        sla_scheduler = SLAScheduler(interval_minutes=settings.sla_sweep_interval_minutes)
        await sla_scheduler.start(monitor.run_scheduled)
    else:
        logger.info("SLA monitoring disabled")

    logger.info("Helpdesk Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Service")

    if sla_scheduler:
        await sla_scheduler.stop()
        sla_scheduler = None

    keyword_manager.stop_watching()

    await close_database()

    logger.info("Helpdesk Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk API",
    description="""
    ## Customer Support Ticketing

    ### Tickets
    - `POST /tickets` - Submit a ticket (classified, routed, SLA attached)
    - `PATCH /tickets/{id}/status` - Change status
    - `POST /tickets/{id}/messages` - Reply or add a note

    ### Routing
    - Teams, members and assignment rules under `/routing`
    - Rules of all teams are evaluated together, highest priority first
    - Members are picked round-robin, rotation reconstructed from history

    ### SLA
    - Policies under `/sla/policies`
    - Deadlines computed when a policy is attached
    - Breaches logged once per ticket and clock, team notified
    - Background sweep every few minutes, or `POST /sla/sweep`

    The acting user is taken from the `X-User-ID` header.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(tickets_router)
app.include_router(routing_router)
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.
    """
    checks = {
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
        "classifier": "loaded",
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
        "service": settings.app_name,
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {"prefix": "/tickets"},
            "routing": {"prefix": "/routing"},
            "sla": {"prefix": "/sla"},
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
