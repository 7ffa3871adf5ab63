# tests/api/test_permissions.py
import uuid

from app.core.permissions import PermissionChecker, parse_permissions


def test_parse_permissions_header():
    assert parse_permissions(" wms:putaway, ,inventory:view ") == {"wms:putaway", "inventory:view"}
    assert parse_permissions(None) == set()


def test_module_wildcard_and_super_permission():
    user = uuid.uuid4()

    picker = PermissionChecker(user, {"wms:*"})
    assert picker.has_permission("wms:picking")
    assert not picker.has_permission("inventory:view")
    assert picker.has_any_permission(["inventory:view", "wms:receive"])
    assert not picker.has_all_permissions(["inventory:view", "wms:receive"])

    admin = PermissionChecker(user, {"*"})
    assert admin.is_super_admin()
    assert admin.has_all_permissions(["inventory:view", "wms:receive"])
