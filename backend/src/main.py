# pyright: reportMissingTypeStubs=false
"""
Clinic Allocation Backend API

A FastAPI application exposing the multiphase allocation engine of a clinic.

Features:
- Availability search (day, lookahead and single-slot check)
- Appointment booking, reschedule and cancellation
- SQLAlchemy ORM persistence (PostgreSQL or SQLite)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api import appointments, availability
from core.config import LOG_LEVEL
from core.constants import CORS_ORIGINS
from core.database import create_tables
from core.errors import AllocationErrorCode, LedgerConflictError

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Clinic Allocation Backend API")
    create_tables()

    yield

    logger.info("Shutting down Clinic Allocation Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Allocation Backend",
    description="Multiphase appointment allocation for clinics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    availability.router,
    prefix="/api/v1",
    tags=["availability"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    appointments.router,
    prefix="/api/v1",
    tags=["appointments"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Allocation Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "detail": {
                "code": AllocationErrorCode.INTERNAL.value,
                "message": "Internal server error",
            }
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Storage failures are server errors, never "not available"."""
    logger.exception(f"Database error: {exc}")
    return _internal_error_response()


@app.exception_handler(LedgerConflictError)
async def ledger_conflict_handler(request: Request, exc: LedgerConflictError):
    """Handle concurrent modification of allocation records."""
    logger.exception(f"Ledger conflict: {exc}")
    return _internal_error_response()
