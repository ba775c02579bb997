"""
Kavach Zone Engine - FastAPI Application Entry Point

Users report safety incidents; administrators approve them; approved reports
aggregate into unsafe zones whose report count and risk level are derived.

DESIGN PRINCIPLES:
- Zone counts and risk levels are derived data, never set by callers
- Zone listing always recomputes from approved reports
- Routes stay thin; services hold the logic
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kavach.core.errors import KavachError
from kavach.core.log_config import configure_logging
from kavach.core.settings import settings
from kavach.routes import health, reports, zones

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Incident reporting with geographically clustered unsafe zones",
    debug=settings.DEBUG
)


@app.exception_handler(KavachError)
async def domain_exception_handler(request: Request, exc: KavachError):
    """Map the domain error taxonomy onto HTTP status codes."""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")

    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log Pydantic validation errors before returning them."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": exc.errors()})
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """
    Initialize logging and the configured store on startup.
    """
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    from kavach.services.storage import get_zone_store
    try:
        get_zone_store()
    except RuntimeError as e:
        logger.warning(f"Store initialization failed: {e}")
        logger.warning("The app will start but store operations will fail.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


app.include_router(health.router)
app.include_router(reports.router)
app.include_router(zones.router)


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
        "zones": "/zones",
    }
