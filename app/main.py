"""
Hack-a-Problem - FastAPI Application Entry Point

A community issue-reporting service: residents post local problems with a
photo and location, the problem gets AI-generated suggestions and a severity
in the background, the authority gets an SMS, and the community votes,
comments and proposes solutions.

DESIGN PRINCIPLES:
- Submission never waits for the AI call or the SMS
- AI output is advisory; a fixed fallback replaces it on timeout or failure
- Only the owner changes status or details
- Simple, demo-safe (mock database, sample data on an empty store)
"""

import asyncio
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from app.core.errors import ServiceError
from app.core.logging_config import configure_logging
from app.core.settings import settings
from app.config.firebase import initialize_firestore
from app.routes import ai_suggestions, auth, health, problems
from app.services import background
from app.services.sample_data import seed_on_startup
from app.services.upload_service import PUBLIC_UPLOAD_PREFIX, ensure_upload_dir

configure_logging()
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Community problem reporting with AI suggestions and SMS alerts",
    debug=settings.DEBUG
)


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled exceptions with full traceback and hide details from clients."""
    logger.error(
        f"🔥 Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Domain errors that escape a route keep their status code."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every invalid field in a single 400 message."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))

    logger.warning(f"Validation error on {request.method} {request.url.path}: {messages}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": ", ".join(messages)}
    )


# CORS configuration - explicit origins from settings (comma-separated)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    max_age=settings.SESSION_MAX_AGE_SECONDS,
    same_site="lax",
    https_only=False,
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Firestore connection, then sample data off the event loop.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except Exception as e:
        logger.warning(f"Firestore initialization failed: {e}")
        logger.warning("The app will start but database operations may fail.")
        return

    # Sample data on an empty store; never blocks startup
    loop = asyncio.get_running_loop()
    loop.run_in_executor(None, seed_on_startup)


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    Pending enrichment and SMS jobs are abandoned.
    """
    logger.info(f"Shutting down {settings.APP_NAME}")
    background.shutdown(wait=False)


# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(problems.router)
app.include_router(ai_suggestions.router)

# Uploaded photos
app.mount(
    PUBLIC_UPLOAD_PREFIX,
    StaticFiles(directory=ensure_upload_dir()),
    name="uploads"
)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "problems": "/api/problems"
    }
