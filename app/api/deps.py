from dataclasses import dataclass, field
from typing import Annotated, Optional, Set
import uuid
import logging

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.permissions import PermissionChecker


logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """Company and user the request acts for."""
    company_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    permissions: Set[str] = field(default_factory=set)


async def get_request_context(request: Request) -> RequestContext:
    """
    Dependency to get the company/user context set by company_context_middleware.
    """
    company_id = getattr(request.state, "company_id", None)
    if company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Company context is missing"
        )
    return RequestContext(
        company_id=company_id,
        user_id=getattr(request.state, "user_id", None),
        permissions=getattr(request.state, "permissions", set()),
    )


async def get_permission_checker(
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> PermissionChecker:
    """
    Get a PermissionChecker instance for the current user.
    """
    return PermissionChecker(context.user_id, context.permissions)


def require_permissions(*required_permissions: str):
    """
    Dependency factory to require specific permissions.

    Usage:
        @router.post("/putaway", dependencies=[Depends(require_permissions("wms:putaway"))])
        async def putaway():
            ...
    """
    async def permission_dependency(
        permission_checker: Annotated[PermissionChecker, Depends(get_permission_checker)]
    ):
        for permission in required_permissions:
            if not permission_checker.has_permission(permission):
                logger.warning(f"Permission {permission} denied for user {permission_checker.user_id}")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission denied. Required: {permission}"
                )
        return True

    return permission_dependency


# Type aliases for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
Context = Annotated[RequestContext, Depends(get_request_context)]
Permissions = Annotated[PermissionChecker, Depends(get_permission_checker)]
