# orderflow/main.py
"""
Order Pipeline Service - Main API Entry Point
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.endpoints import events
from .api.v1.router import api_router
from .config.database import SessionLocal, check_database_health, cleanup_database, init_database
from .config.logging import get_logger, setup_logging
from .config.settings import settings
from .core.exceptions import (
    custom_exception_handler, request_validation_exception_handler, unhandled_exception_handler,
)
from .core.middleware import LoggingMiddleware, RequestIDMiddleware
from .repositories.counter_repo import CounterRepository
from .utils.date_utils import utc_now

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION}...")

    init_database()
    db = SessionLocal()
    try:
        CounterRepository().ensure(db)
    finally:
        db.close()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    cleanup_database()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Sales order intake and fulfillment pipeline",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Add exception handlers
app.add_exception_handler(StarletteHTTPException, custom_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include routers
app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(events.router, tags=["Events"])


@app.get("/health")
def health_check():
    """Health check endpoint"""
    database_ok = check_database_health()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "timestamp": utc_now().isoformat(),
        "version": settings.VERSION
    }


if __name__ == "__main__":
    uvicorn.run(
        "orderflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
