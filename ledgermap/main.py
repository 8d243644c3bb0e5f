"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
import traceback

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledgermap.api.routes import classify
from ledgermap.config import get_settings
from ledgermap.exceptions import LedgerMapError
from ledgermap.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        add_correlation_id_processor,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

settings = get_settings()

app = FastAPI(
    title="LedgerMap API",
    description="""
## Trial Balance Ledger Classification API

Maps trial balance ledgers onto the Schedule III reporting hierarchy
(Major Head, Minor Head, Grouping, Line Item).

- **Suggest**: classify one ledger and see the external and local candidates
- **Batch**: classify many ledgers with bounded external concurrency and local fallback
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Classification", "description": "Ledger classification"},
        {"name": "Health", "description": "Health checks"},
    ],
)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(classify.router, prefix="/api/v1", tags=["Classification"])


@app.exception_handler(LedgerMapError)
async def ledgermap_exception_handler(request: Request, exc: LedgerMapError):
    """Handle all LedgerMap custom exceptions."""
    logger.error(
        "ledgermap_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "LMP-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


def run() -> None:
    """Run the API server."""
    uvicorn.run("ledgermap.main:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())
