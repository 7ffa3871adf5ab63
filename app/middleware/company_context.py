"""
Company context middleware for multi-company request handling
"""
import uuid
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.permissions import parse_permissions

logger = logging.getLogger(__name__)


COMPANY_HEADER = "X-Company-ID"
USER_HEADER = "X-User-ID"
PERMISSIONS_HEADER = "X-User-Permissions"

# Routes that need no company context
public_routes = [
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/",
]


def _parse_uuid(value):
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        return None


async def company_context_middleware(request: Request, call_next):
    """
    Middleware to inject company and user context into request

    Identity is resolved upstream; this middleware only reads:
    1. X-Company-ID (required) -> request.state.company_id
    2. X-User-ID (optional) -> request.state.user_id
    3. X-User-Permissions (comma separated) -> request.state.permissions
    """
    if request.method == "OPTIONS" or request.url.path in public_routes:
        return await call_next(request)

    company_id = _parse_uuid(request.headers.get(COMPANY_HEADER))
    if company_id is None:
        logger.warning(f"Missing or invalid {COMPANY_HEADER} for {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"A valid {COMPANY_HEADER} header is required"},
        )

    raw_user = request.headers.get(USER_HEADER)
    user_id = _parse_uuid(raw_user)
    if raw_user and user_id is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": f"Invalid {USER_HEADER} header"},
        )

    request.state.company_id = company_id
    request.state.user_id = user_id
    request.state.permissions = parse_permissions(request.headers.get(PERMISSIONS_HEADER))

    return await call_next(request)
