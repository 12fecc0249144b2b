from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import api_router
from app.core.exceptions import GSTErrorKind, GSTServiceError
from app.database import init_db, async_session_factory


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Provider rejections are reported as client errors, like validation failures
ERROR_STATUS = {
    GSTErrorKind.VALIDATION: 400,
    GSTErrorKind.NOT_FOUND: 404,
    GSTErrorKind.PROVIDER: 400,
    GSTErrorKind.CONFLICT: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create the GST tables if they do not exist
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "GST Returns", "description": "GSTR-1, GSTR-3B and GSTR-4 generation with report caching"},
    {"name": "GSTR-2A/2B Reconciliation", "description": "Supplier statement import and purchase matching"},
    {"name": "E-Invoice", "description": "IRN generation and cancellation via the configured GSP"},
    {"name": "E-Way Bill", "description": "E-way bill generation, Part-B update and cancellation"},
    {"name": "GST Settings", "description": "Per-business GST regime, GSP provider and credentials"},
    {"name": "Validation", "description": "GSTIN and HSN/SAC format checks"},
]

FULL_API_DESCRIPTION = """
## GST Compliance Service

GST return preparation and registration workflows for Indian businesses.

### GST Compliance Features

- **GSTR-1**: Outward supplies (B2B, B2C, exports, notes, HSN summary)
- **GSTR-3B**: Summary return with ITC, reverse charge and late fee
- **GSTR-4**: Quarterly return for composition dealers
- **GSTR-2A/2B**: Supplier statement reconciliation
- **E-Invoice**: IRN generation via the GSP
- **E-Way Bill**: Generation for consignments of 50,000 and above

### Authentication

All business endpoints require the caller's bearer token, which is forwarded
to the invoice, party and business services.

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Validation failed or GSP rejected the request |
| 401 | Missing bearer token |
| 404 | Business, invoice or record not found |
| 409 | Operation not allowed in the current state |
| 502 | Invoice, party or business service error |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(GSTServiceError)
async def gst_error_handler(request: Request, exc: GSTServiceError):
    """Map the error kind to a status code."""
    status_code = ERROR_STATUS.get(exc.kind, 400)
    if exc.kind == GSTErrorKind.PROVIDER:
        logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.error_code})")

    content = {
        "detail": exc.message,
        "error_code": exc.error_code,
        "kind": exc.kind.value,
    }
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(httpx.HTTPError)
async def upstream_error_handler(request: Request, exc: httpx.HTTPError):
    """Invoice, party or business service failed or was unreachable."""
    logger.error(f"{request.method} {request.url.path}: upstream error {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": f"Upstream service error: {exc}", "kind": "UPSTREAM"},
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status
