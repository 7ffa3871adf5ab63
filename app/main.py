from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import api_router
from app.database import init_db, async_session_factory
from app.jobs.scheduler import start_scheduler, shutdown_scheduler
from app.middleware.company_context import company_context_middleware
from app.services.errors import InventoryMovementError


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables that do not exist yet
    - Start background scheduler
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "WMS (Putaway/Picking/Inventory)", "description": "ASN receiving, putaway, picking and inventory views"},
    {"name": "Health", "description": "Service health"},
]

API_DESCRIPTION = """
## Warehouse Inventory Engine

Moves stock between holding and storage locations for inbound (ASN putaway)
and outbound (sales order picking) documents, keeping the inventory ledger,
location capacity and line progress consistent.

### Company Context

Every `/api/v1` request carries:

- `X-Company-ID`: company the request acts for (required)
- `X-User-ID`: acting user
- `X-User-Permissions`: comma separated permission codes, e.g. `wms:putaway,wms:picking`

### Error Codes

| Code | HTTP | Retry |
|------|------|-------|
| INVALID_QUANTITY | 400 | no |
| NOT_FOUND | 404 | no |
| OWNERSHIP_MISMATCH | 409 | no |
| OVER_FULFILLMENT | 409 | no |
| INVALID_LOCATION | 400 | no |
| CAPACITY_EXCEEDED | 409 | no |
| INSUFFICIENT_STOCK | 409 | no |
| CONCURRENCY_CONFLICT | 409 | yes, resubmit the same request |
| INVALID_DOCUMENT_STATE | 409 | no |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Company/user context from gateway headers
app.middleware("http")(company_context_middleware)

# Include API router
app.include_router(api_router)


@app.exception_handler(InventoryMovementError)
async def inventory_movement_exception_handler(request: Request, exc: InventoryMovementError):
    """Render a rejected inventory movement with its code and context."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
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
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
