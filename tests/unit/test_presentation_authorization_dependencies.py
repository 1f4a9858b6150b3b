"""Tests for the FastAPI permission guards.

Architecture:
- Small host app with routes protected by the guards
- Host authentication and services replaced through dependency_overrides
- Permission services backed by the in-memory identity provider
"""

from unittest.mock import AsyncMock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from authz.application.services import PermissionService, ResourcePermissionService
from authz.core.container import get_permission_service, get_resource_permission_service
from authz.domain.value_objects import IdOnly
from authz.presentation.api import (
    get_current_principal,
    require_all_permissions,
    require_any_permission,
    require_permission,
    require_resource_permission,
)


def build_app() -> FastAPI:
    app = FastAPI()

    @app.post(
        "/listings/{listing_id}/approve",
        dependencies=[Depends(require_permission("listings:approve"))],
    )
    async def approve(listing_id: str):
        return {"approved": listing_id}

    @app.get(
        "/reports",
        dependencies=[Depends(require_all_permissions("reports:generate", "reports:export"))],
    )
    async def reports():
        return {"ok": True}

    @app.get(
        "/inbox",
        dependencies=[Depends(require_any_permission("messages:view_all", "messages:view_own"))],
    )
    async def inbox():
        return {"ok": True}

    @app.patch(
        "/listings/{listing_id}",
        dependencies=[
            Depends(
                require_resource_permission(
                    "listings:edit_any", "listing", resource_id_param="listing_id"
                )
            )
        ],
    )
    async def edit(listing_id: str):
        return {"edited": listing_id}

    return app


@pytest.fixture
def grant_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.has_effective_grant.return_value = False
    return repo


@pytest.fixture
def client(identity_provider, permission_cache, mock_audit, mock_logger, clock, grant_repo):
    """TestClient with an agent caller and in-memory services."""
    identity_provider.add_user("user_agent", public_metadata={"role": "agent"})
    permissions = PermissionService(
        identity_provider=identity_provider,
        principal_repository=AsyncMock(),
        cache=permission_cache,
        audit=mock_audit,
        logger=mock_logger,
        clock=clock,
    )
    resources = ResourcePermissionService(
        repository=grant_repo,
        permission_service=permissions,
        audit=mock_audit,
        logger=mock_logger,
        clock=clock,
    )

    app = build_app()
    app.dependency_overrides[get_current_principal] = lambda: IdOnly(principal_id="user_agent")
    app.dependency_overrides[get_permission_service] = lambda: permissions
    app.dependency_overrides[get_resource_permission_service] = lambda: resources
    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.unit
class TestPermissionGuards:
    """Test permission guard dependencies."""

    def test_missing_authentication_is_401(self):
        """Should reject every request until the host overrides authentication."""
        app = build_app()
        app.dependency_overrides[get_permission_service] = lambda: AsyncMock()

        with TestClient(app) as test_client:
            response = test_client.post("/listings/lst_1/approve")

        assert response.status_code == 401

    def test_permission_denied_is_403(self, client):
        """Should return 403 when the caller lacks the permission."""
        response = client.post("/listings/lst_1/approve")

        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: listings:approve"

    def test_permission_granted(self, client, identity_provider):
        """Should let the request through when the permission is held."""
        identity_provider.add_user(
            "user_agent",
            public_metadata={"role": "agent", "permissions": ["listings:approve"]},
        )

        response = client.post("/listings/lst_1/approve")

        assert response.status_code == 200
        assert response.json() == {"approved": "lst_1"}

    def test_require_all(self, client):
        """Should deny when only some permissions are held."""
        response = client.get("/reports")

        assert response.status_code == 403

    def test_require_any(self, client):
        """Should allow when one permission is held."""
        response = client.get("/inbox")

        assert response.status_code == 200

    def test_resource_guard_reads_path_param(self, client, grant_repo, clock):
        """Should check the grant for the resource named in the path."""
        grant_repo.has_effective_grant.return_value = True

        response = client.patch("/listings/lst_42")

        assert response.status_code == 200
        grant_repo.has_effective_grant.assert_awaited_once_with(
            "user_agent", "listings:edit_any", "listing", "lst_42", clock.now()
        )

    def test_resource_guard_denies_without_grant(self, client):
        """Should return 403 without a role-wide or resource grant."""
        response = client.patch("/listings/lst_42")

        assert response.status_code == 403
