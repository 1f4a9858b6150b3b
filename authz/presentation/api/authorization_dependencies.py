"""Permission dependencies for host FastAPI applications.

This package defines no routes. Hosts authenticate requests themselves and
supply the caller by overriding `get_current_principal`; the guards below
then check permissions through the permission services.

Architecture:
    - Host authentication: resolves the caller into a PrincipalRef
    - Permission guards (this file): allow or raise 403

Usage:
    app.dependency_overrides[get_current_principal] = my_current_principal

    @router.post("/listings/{listing_id}/approve")
    async def approve_listing(
        listing_id: str,
        _: None = Depends(require_permission("listings:approve")),
    ):
        ...

    @router.patch("/listings/{listing_id}")
    async def edit_listing(
        listing_id: str,
        _: None = Depends(
            require_resource_permission(
                "listings:edit_own", "listing", resource_id_param="listing_id"
            )
        ),
    ):
        ...
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from authz.application.services import PermissionService, ResourcePermissionService
from authz.core.container import (
    get_permission_service,
    get_resource_permission_service,
)
from authz.domain.value_objects import PrincipalRef


async def get_current_principal() -> PrincipalRef:
    """Resolve the authenticated caller.

    Hosts MUST override this dependency with their own authentication.

    Raises:
        HTTPException 401: Always, until overridden.
    """
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
    )


def require_permission(permission: str) -> Callable[..., Awaitable[None]]:
    """Create a dependency that requires one permission.

    Args:
        permission: Permission identifier (e.g., "listings:approve").

    Returns:
        Dependency function that raises 403 unless the permission is held.

    Raises:
        HTTPException 403: If the caller does not hold the permission (or the
            permission stores are unavailable).
    """

    async def permission_checker(
        principal: Annotated[PrincipalRef, Depends(get_current_principal)],
        permissions: Annotated[PermissionService, Depends(get_permission_service)],
    ) -> None:
        if not await permissions.has_permission(principal, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission}",
            )

    return permission_checker


def require_all_permissions(*required: str) -> Callable[..., Awaitable[None]]:
    """Create a dependency that requires every listed permission.

    Args:
        *required: Permission identifiers the caller must all hold.

    Raises:
        HTTPException 403: If any permission is missing.
    """

    async def permission_checker(
        principal: Annotated[PrincipalRef, Depends(get_current_principal)],
        permissions: Annotated[PermissionService, Depends(get_permission_service)],
    ) -> None:
        if not await permissions.has_all_permissions(principal, required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: requires all of [{', '.join(required)}]",
            )

    return permission_checker


def require_any_permission(*candidates: str) -> Callable[..., Awaitable[None]]:
    """Create a dependency that requires at least one listed permission.

    Raises:
        HTTPException 403: If the caller holds none of them.
    """

    async def permission_checker(
        principal: Annotated[PrincipalRef, Depends(get_current_principal)],
        permissions: Annotated[PermissionService, Depends(get_permission_service)],
    ) -> None:
        if not await permissions.has_any_permission(principal, candidates):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: requires one of [{', '.join(candidates)}]",
            )

    return permission_checker


def require_resource_permission(
    permission: str,
    resource_type: str,
    *,
    resource_id_param: str = "resource_id",
) -> Callable[..., Awaitable[None]]:
    """Create a dependency that requires a permission on one resource.

    The resource id is read from the route's path parameters.

    Args:
        permission: Permission identifier.
        resource_type: Resource kind (e.g., "listing").
        resource_id_param: Name of the path parameter holding the id.

    Raises:
        HTTPException 403: If the caller holds the permission neither
            role-wide nor on this resource.
    """

    async def resource_permission_checker(
        request: Request,
        principal: Annotated[PrincipalRef, Depends(get_current_principal)],
        resources: Annotated[
            ResourcePermissionService, Depends(get_resource_permission_service)
        ],
    ) -> None:
        resource_id = request.path_params.get(resource_id_param)
        if resource_id is None or not await resources.has_resource_permission(
            principal, permission, resource_type, str(resource_id)
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission} on {resource_type}",
            )

    return resource_permission_checker
