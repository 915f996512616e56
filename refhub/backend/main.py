"""
FastAPI application for the reference library.

Provides endpoints for:
- Extracting bibliographic metadata from PDFs with an AI gateway
- Uploading PDFs and saving references
- Public browsing, profiles and the personal dashboard
- Administrator listing and export
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .models import HealthResponse
from .routers import admin, extraction, profiles, references
from .services.ai import AIServiceError, get_metadata_extractor
from .services.storage_service import StorageError, get_storage_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting reference library service...")
    # Initialize services on startup
    get_metadata_extractor()
    get_storage_service()
    # Note: In production, use migrations instead of init_db()
    # init_db()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down reference library service...")


# Create FastAPI application
app = FastAPI(
    title="Reference Library API",
    description="Bibliographic reference management with AI metadata extraction",
    version="1.0.0",
    lifespan=lifespan,
)

# Browser clients on any origin call the API directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="healthy", message="Reference Library API is running")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(extraction.router)
app.include_router(references.router)
app.include_router(profiles.router)
app.include_router(admin.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(StorageError)
async def storage_error_handler(request, exc: StorageError):
    """Handle object storage errors."""
    logger.error("Storage error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request, exc: AIServiceError):
    """Handle AI service errors."""
    logger.error("AI service error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )
