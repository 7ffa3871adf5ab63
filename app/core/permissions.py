from typing import List, Set, Optional
import uuid


# Grants every permission
SUPER_PERMISSION = "*"


class PermissionChecker:
    """
    Permission checker for codes supplied by the upstream gateway.

    Codes look like 'module:action'. 'module:*' grants every action of a
    module and '*' grants everything.
    """

    def __init__(self, user_id: Optional[uuid.UUID], user_permissions: Set[str]):
        """
        Initialize permission checker.

        Args:
            user_id: The acting user
            user_permissions: Set of permission codes the user has
        """
        self.user_id = user_id
        self.permissions = user_permissions

    def is_super_admin(self) -> bool:
        return SUPER_PERMISSION in self.permissions

    def has_permission(self, permission_code: str) -> bool:
        """
        Check if user has a specific permission.

        Args:
            permission_code: The permission code to check (e.g., 'wms:putaway')

        Returns:
            True if user has the permission
        """
        if self.is_super_admin():
            return True

        if permission_code in self.permissions:
            return True

        module = permission_code.split(":", 1)[0]
        return f"{module}:*" in self.permissions

    def has_any_permission(self, permission_codes: List[str]) -> bool:
        """Check if user has any of the specified permissions."""
        return any(self.has_permission(code) for code in permission_codes)

    def has_all_permissions(self, permission_codes: List[str]) -> bool:
        """Check if user has all of the specified permissions."""
        return all(self.has_permission(code) for code in permission_codes)


def parse_permissions(raw: Optional[str]) -> Set[str]:
    """Parse a comma separated permission header."""
    if not raw:
        return set()
    return {code.strip() for code in raw.split(",") if code.strip()}
