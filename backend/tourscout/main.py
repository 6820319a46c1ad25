"""TourScout Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tourscout.api.v1.router import api_v1_router
from tourscout.config import settings
from tourscout.core.exceptions import NotFoundError, ScraperError, TourScoutException
from tourscout.db.session import engine
from tourscout.models import Base
from tourscout.schemas import ErrorDetail, ErrorResponse
from tourscout.scrapers.factory import ScraperFactory

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting TourScout API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    # One factory per process: its per-site rate limiters pace every scan
    if getattr(app.state, "scraper_factory", None) is None:
        app.state.scraper_factory = ScraperFactory.from_settings(settings)

    yield

    # Shutdown
    logger.info("Shutting down TourScout API server...")
    await engine.dispose()


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message), details=details or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are a 400 with one detail per offending field."""
    details = [
        ErrorDetail(
            code=error.get("type", "invalid"),
            message=error.get("msg", "Invalid value"),
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body") or None,
        )
        for error in exc.errors()
    ]
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", "Invalid request data", details)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, "not_found", exc.message)


async def scraper_error_handler(request: Request, exc: ScraperError) -> JSONResponse:
    return _error_response(status.HTTP_502_BAD_GATEWAY, "scrape_failed", exc.message)


async def tourscout_exception_handler(request: Request, exc: TourScoutException) -> JSONResponse:
    logger.error(f"Unhandled application error: {exc.message}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", exc.message)


app = FastAPI(
    title="TourScout API",
    description="Tour content scanning and discovery API",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(NotFoundError, not_found_handler)
app.add_exception_handler(ScraperError, scraper_error_handler)
app.add_exception_handler(TourScoutException, tourscout_exception_handler)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "TourScout API",
        "version": "0.1.0",
        "description": "Tour content scanning and discovery",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
