"""
Community Event Scheduler - Main Application Entry Point

Members propose, browse and attend events inside a single shared post:
- One canonical event list per post, stored as a JSON document
- A tagged message protocol over WebSocket, full-list responses
- Optimistic versioned writes (or per-key locks) against lost updates
- Structured logging and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import setup_logging, get_logger
from event_scheduler.core.metrics import metrics_endpoint
from event_scheduler.api.router import api_router
from event_scheduler.api.middleware import RequestLoggingMiddleware
from event_scheduler.infrastructure.kv_backend import get_backend, close_backend
from event_scheduler.services.strategy_factory import get_write_strategy

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        kv_backend=settings.KV_BACKEND,
        write_strategy=settings.WRITE_STRATEGY,
    )

    # Fail fast on bad configuration
    get_backend()
    get_write_strategy()

    yield

    await close_backend()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event store and sync protocol for community event scheduler posts",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "kv_backend": settings.KV_BACKEND,
        "write_strategy": settings.WRITE_STRATEGY,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
