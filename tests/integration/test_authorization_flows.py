"""End-to-end authorization flows on SQLite and the in-memory identity provider.

Tests cover:
- Cache coherence: a check after any write reflects that write
- Resource grant idempotence: one active row per tuple
- Bundle application preserving existing provenance
- Reconciler runs: expiry cleanup, audit, and idempotent re-runs
- Role changes through both stores and verification afterwards
"""

from dataclasses import dataclass
from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from authz.application.jobs import (
    ResourcePermissionExpirationJob,
    TemporaryPermissionExpirationJob,
)
from authz.application.services import (
    PermissionBundleService,
    PermissionService,
    ResourcePermissionService,
    RoleConsistencyVerifier,
)
from authz.core.result import Success
from authz.domain.entities import PrincipalRecord
from authz.domain.enums import PermissionSource
from authz.domain.value_objects import IdOnly
from authz.infrastructure.audit import DatabaseAuditAdapter
from authz.infrastructure.persistence.models import ResourcePermission
from authz.infrastructure.persistence.repositories import (
    PermissionBundleRepository,
    PrincipalRepository,
    ResourcePermissionRepository,
)


@dataclass
class Stack:
    permissions: PermissionService
    resources: ResourcePermissionService
    bundles: PermissionBundleService
    verifier: RoleConsistencyVerifier
    temporary_job: TemporaryPermissionExpirationJob
    resource_job: ResourcePermissionExpirationJob
    audit: DatabaseAuditAdapter
    principals: PrincipalRepository


@pytest_asyncio.fixture
async def stack(test_database, identity_provider, permission_cache, mock_logger, clock):
    """Services wired the way the container wires them, on a test database."""
    async with test_database.get_session() as session, test_database.get_session() as audit_session:
        audit = DatabaseAuditAdapter(session=audit_session, clock=clock)
        principals = PrincipalRepository(session=session)
        grants = ResourcePermissionRepository(session=session)
        permissions = PermissionService(
            identity_provider=identity_provider,
            principal_repository=principals,
            cache=permission_cache,
            audit=audit,
            logger=mock_logger,
            clock=clock,
        )
        common = {"audit": audit, "logger": mock_logger, "clock": clock}
        yield Stack(
            permissions=permissions,
            resources=ResourcePermissionService(
                repository=grants, permission_service=permissions, locks=permissions.locks, **common
            ),
            bundles=PermissionBundleService(
                repository=PermissionBundleRepository(session=session),
                identity_provider=identity_provider,
                permission_service=permissions,
                **common,
            ),
            verifier=RoleConsistencyVerifier(
                principal_repository=principals,
                identity_provider=identity_provider,
                permission_service=permissions,
                **common,
            ),
            temporary_job=TemporaryPermissionExpirationJob(
                identity_provider=identity_provider,
                permission_service=permissions,
                batch_size=2,
                **common,
            ),
            resource_job=ResourcePermissionExpirationJob(
                repository=grants, permission_service=permissions, batch_size=2, **common
            ),
            audit=audit,
            principals=principals,
        )


@pytest_asyncio.fixture
async def agent(stack, identity_provider) -> IdOnly:
    """An agent present in both stores."""
    identity_provider.add_user("user_agent", email="agent@example.com", public_metadata={"role": "agent"})
    await stack.principals.save(
        PrincipalRecord(id=uuid4(), external_id="user_agent", email="agent@example.com", role="agent")
    )
    return IdOnly(principal_id="user_agent")


async def audit_actions(stack: Stack, principal_id: str) -> list[str]:
    result = await stack.audit.list_permission_audit_log(principal_id)
    return sorted(entry.action for entry in result.value)


@pytest.mark.integration
class TestCacheCoherence:
    """A check that follows a write must observe it."""

    @pytest.mark.asyncio
    async def test_principal_wide_grant_and_revoke(self, stack, agent):
        """Should reflect grants and revocations immediately."""
        assert await stack.permissions.has_permission(agent, "finance:issue_refunds") is False

        await stack.permissions.grant_permissions(
            "user_agent", ["finance:issue_refunds"], granted_by="user_admin"
        )
        assert await stack.permissions.has_permission(agent, "finance:issue_refunds") is True

        await stack.permissions.revoke_permissions(
            "user_agent", ["finance:issue_refunds"], revoked_by="user_admin"
        )
        assert await stack.permissions.has_permission(agent, "finance:issue_refunds") is False

    @pytest.mark.asyncio
    async def test_resource_grant_and_revoke(self, stack, agent):
        """Should reflect resource grants and revocations immediately."""
        args = ("listings:edit_any", "listing", "lst_42")
        assert await stack.resources.has_resource_permission(agent, *args) is False

        await stack.resources.grant_resource_permission("user_agent", *args, granted_by="user_admin")
        assert await stack.resources.has_resource_permission(agent, *args) is True
        assert await stack.resources.has_resource_permission(
            agent, "listings:edit_any", "listing", "lst_other"
        ) is False

        await stack.resources.revoke_resource_permission("user_agent", *args, revoked_by="user_admin")
        assert await stack.resources.has_resource_permission(agent, *args) is False

    @pytest.mark.asyncio
    async def test_role_change(self, stack, agent, identity_provider):
        """Should apply the new role's defaults and leave stores consistent."""
        assert await stack.permissions.has_permission(agent, "listings:approve") is False

        result = await stack.permissions.change_user_role(
            "user_agent", "moderator", changed_by="user_admin"
        )

        assert result.value.mirror_synced is True
        assert await stack.permissions.has_permission(agent, "listings:approve") is True
        record = await stack.principals.find_by_external_id("user_agent")
        assert record.role == "moderator"
        assert record.last_role_sync["source"] == "role_change"
        check = await stack.verifier.check_user_role_consistency("user_agent")
        assert check.value.consistent is True
        assert await audit_actions(stack, "user_agent") == ["role_changed"]


@pytest.mark.integration
class TestResourceGrantIdempotence:
    """Repeated grants keep one active row."""

    @pytest.mark.asyncio
    async def test_regrant_updates_single_row(self, stack, agent, test_database, clock):
        """Should update the existing grant instead of inserting another."""
        args = ("user_agent", "listings:edit_any", "listing", "lst_42")
        first = await stack.resources.grant_resource_permission(*args, granted_by="a", reason="one")
        second = await stack.resources.grant_resource_permission(
            *args, granted_by="b", reason="two", expires_at=clock.now() + timedelta(days=1)
        )

        assert second.value.id == first.value.id
        assert second.value.reason == "two"
        async with test_database.get_session() as session:
            count = await session.scalar(
                select(func.count()).select_from(ResourcePermission).where(
                    ResourcePermission.active.is_(True)
                )
            )
        assert count == 1
        assert await audit_actions(stack, "user_agent") == [
            "resource_permission_granted",
            "resource_permission_updated",
        ]

    @pytest.mark.asyncio
    async def test_role_wide_holder_lists_all(self, stack, identity_provider):
        """Should return the ALL sentinel for a role-wide holder and ids otherwise."""
        identity_provider.add_user("user_mod", public_metadata={"role": "moderator"})
        identity_provider.add_user("user_plain", public_metadata={"role": "user"})
        await stack.resources.grant_resource_permission(
            "user_plain", "listings:edit_any", "listing", "lst_7", granted_by="a"
        )

        moderator = await stack.resources.list_resources_with_permission(
            IdOnly(principal_id="user_mod"), "listings:edit_any", "listing"
        )
        plain = await stack.resources.list_resources_with_permission(
            IdOnly(principal_id="user_plain"), "listings:edit_any", "listing"
        )

        assert moderator.value == "*"
        assert plain.value == {"lst_7"}


@pytest.mark.integration
class TestBundleProvenance:
    """Bundle application keeps provenance of already-held permissions."""

    @pytest.mark.asyncio
    async def test_apply_after_direct_grant(self, stack, agent, identity_provider):
        """Should keep the direct provenance and stamp the rest as bundle."""
        await stack.permissions.grant_permissions(
            "user_agent", ["listings:approve"], granted_by="user_admin", reason="trial"
        )
        created = await stack.bundles.create_bundle(
            "Moderation", ["listings:approve", "listings:flag"], description="mods"
        )

        applied = await stack.bundles.apply_bundle_to_user(
            "user_agent", created.value.id, applied_by="user_lead"
        )

        assert applied.value.added == ["listings:flag"]
        profile = (await identity_provider.get_profile("user_agent")).value
        assert profile.permission_metadata["listings:approve"].source == PermissionSource.DIRECT
        assert profile.permission_metadata["listings:approve"].reason == "trial"
        assert profile.permission_metadata["listings:flag"].bundle_name == "Moderation"
        assert await stack.permissions.has_permission(agent, "listings:flag") is True

    @pytest.mark.asyncio
    async def test_default_bundles_seed_once(self, stack):
        """Should create the defaults once and nothing on re-run."""
        first = await stack.bundles.initialize_default_bundles()
        second = await stack.bundles.initialize_default_bundles()
        listed = await stack.bundles.list_bundles()

        assert first == Success(value=4)
        assert second == Success(value=0)
        assert len(listed.value) == 4


@pytest.mark.integration
class TestReconcilers:
    """Expiration reconcilers against real stores."""

    @pytest.mark.asyncio
    async def test_resource_expiry(self, stack, agent, clock, test_database):
        """Should deny at once, deactivate on run, and do nothing on re-run."""
        args = ("listings:edit_any", "listing", "lst_42")
        for resource_id in ("lst_42", "lst_43", "lst_44"):
            await stack.resources.grant_resource_permission(
                "user_agent",
                "listings:edit_any",
                "listing",
                resource_id,
                granted_by="a",
                expires_at=clock.now() + timedelta(hours=1),
            )
        assert await stack.resources.has_resource_permission(agent, *args) is True

        clock.advance(timedelta(hours=2))
        assert await stack.resources.has_resource_permission(agent, *args) is False

        first = await stack.resource_job.run()
        second = await stack.resource_job.run()

        assert (first.processed, first.updated, first.errors) == (3, 3, 0)
        assert (second.processed, second.updated, second.errors) == (0, 0, 0)
        async with test_database.get_session() as session:
            rows = (await session.scalars(select(ResourcePermission))).all()
        assert all(row.active is False for row in rows)
        assert {row.revoked_by for row in rows} == {"system"}
        assert {row.revocation_reason for row in rows} == {"Automatic expiration"}
        actions = await audit_actions(stack, "user_agent")
        assert actions.count("resource_permission_expired") == 3

    @pytest.mark.asyncio
    async def test_temporary_expiry(self, stack, agent, identity_provider, clock):
        """Should stop authorizing at expiry and clean the profile on run."""
        await stack.permissions.grant_temporary_permission(
            "user_agent", "listings:approve", granted_by="a", duration=timedelta(hours=1)
        )
        assert await stack.permissions.has_permission(agent, "listings:approve") is True

        clock.advance(timedelta(hours=2))
        assert await stack.permissions.has_permission(agent, "listings:approve") is False

        first = await stack.temporary_job.run()
        second = await stack.temporary_job.run()

        assert (first.updated, first.errors) == (1, 0)
        assert (second.updated, second.errors) == (0, 0)
        assert identity_provider.raw_metadata("user_agent")["temporaryPermissions"] == {}
        assert "temporary_permissions_expired" in await audit_actions(stack, "user_agent")

    @pytest.mark.asyncio
    async def test_verifier_heals_to_database(self, stack, agent, identity_provider):
        """Should copy the provider role into the database and then report consistency."""
        identity_provider.add_user("user_agent", public_metadata={"role": "moderator"})

        report = await stack.verifier.verify_role_consistency(
            auto_fix=True, fix_direction="toDb"
        )
        rerun = await stack.verifier.verify_role_consistency()

        assert (report.value.inconsistent, report.value.fixed) == (1, 1)
        assert (rerun.value.consistent, rerun.value.inconsistent) == (1, 0)
        record = await stack.principals.find_by_external_id("user_agent")
        assert record.role == "moderator"
