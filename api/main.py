"""FastAPI application main entry point

Runs the configurator session in-process. The session keeps its state in
memory, so the service must run with a single worker:
    uvicorn api.main:app --workers 1
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings, setup_logging
from core.resources import ObjectUrlRegistry
from core.session import ConfiguratorSession
from core.utils.exceptions import BaseAPIException
from core.viewer import DocumentViewer

from .routers import blobs, customization, models, system

logger = logging.getLogger(__name__)


# Configure CORS
def configure_cors(app: FastAPI, settings):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Product Configurator Backend...")

    settings = get_settings()
    setup_logging(settings.logging)

    registry = ObjectUrlRegistry(settings.ingestion.object_url_prefix)
    session = ConfiguratorSession(DocumentViewer(registry), registry, settings.ingestion)
    app.state.registry = registry
    app.state.session = session

    logger.info("Application startup completed successfully")

    try:
        yield
    finally:
        logger.info("Shutting down Product Configurator Backend...")
        session.close()
        logger.info(f"Application shutdown completed ({len(registry)} object URLs left)")


# Create FastAPI application
app = FastAPI(
    title="Product Configurator API",
    description="3D asset ingestion, resource resolution and material customization",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

settings = get_settings()
configure_cors(app, settings)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests"""
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url}")

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(
        f"Response: {response.status_code} - "
        f"{request.method} {request.url} - "
        f"Time: {process_time:.3f}s"
    )

    return response


# Exception handlers
@app.exception_handler(BaseAPIException)
async def base_api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    return JSONResponse(
        status_code=400,
        content={
            "error": exc.error_code or "API_ERROR",
            "message": exc.message,
            "detail": str(exc),
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle value errors"""
    return JSONResponse(
        status_code=400,
        content={
            "error": "INVALID_VALUE",
            "message": "Invalid input value",
            "detail": str(exc),
        },
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    """Handle 404 errors"""
    return JSONResponse(
        status_code=404,
        content={
            "error": "NOT_FOUND",
            "message": "Resource not found",
            "detail": str(exc.detail)
            if hasattr(exc, "detail")
            else "The requested resource was not found",
        },
    )


# Include routers
app.include_router(system.router, prefix="/api/v1/system", tags=["System"])

app.include_router(models.router, prefix="/api/v1", tags=["Models"])

app.include_router(customization.router, prefix="/api/v1", tags=["Customization"])

app.include_router(blobs.router, prefix="/api/v1", tags=["Blobs"])


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": time.time(), "version": "1.0.0"}


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "name": "Product Configurator API",
        "version": "1.0.0",
        "description": "3D asset ingestion and material customization",
        "docs_url": "/docs",
        "health_url": "/health",
    }
