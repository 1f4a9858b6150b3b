"""FastAPI permission guards."""

from authz.presentation.api.authorization_dependencies import (
    get_current_principal,
    require_all_permissions,
    require_any_permission,
    require_permission,
    require_resource_permission,
)

__all__ = [
    "get_current_principal",
    "require_all_permissions",
    "require_any_permission",
    "require_permission",
    "require_resource_permission",
]
