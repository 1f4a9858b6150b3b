"""Integration tests for DatabaseAuditAdapter against SQLite.

Tests cover:
- Recording entries with action, actor and JSON context
- Querying newest first, per principal, with a limit
- Default wall-clock timestamps
"""

from datetime import UTC, datetime, timedelta

import pytest

from authz.core.result import Success
from authz.domain.enums import AuditAction
from authz.infrastructure.audit import DatabaseAuditAdapter


@pytest.mark.integration
class TestDatabaseAuditAdapter:
    """Test the permission audit trail."""

    @pytest.mark.asyncio
    async def test_record_and_list(self, db_session, clock):
        """Should store the entry and read it back."""
        adapter = DatabaseAuditAdapter(session=db_session, clock=clock)

        recorded = await adapter.record(
            action=AuditAction.RESOURCE_PERMISSION_GRANTED,
            principal_id="user_1",
            actor="user_admin",
            context={"permission": "listings:edit_any", "resource_id": "lst_42"},
        )
        listed = await adapter.list_permission_audit_log("user_1")

        assert recorded == Success(value=None)
        assert isinstance(listed, Success)
        [entry] = listed.value
        assert entry.action == "resource_permission_granted"
        assert entry.actor == "user_admin"
        assert entry.context == {"permission": "listings:edit_any", "resource_id": "lst_42"}
        assert entry.created_at == clock.now()

    @pytest.mark.asyncio
    async def test_list_newest_first_with_filter_and_limit(self, db_session, clock):
        """Should order by time descending and honor principal and limit."""
        adapter = DatabaseAuditAdapter(session=db_session, clock=clock)
        for action in (
            AuditAction.PERMISSIONS_GRANTED,
            AuditAction.ROLE_CHANGED,
            AuditAction.PERMISSIONS_REVOKED,
        ):
            await adapter.record(action=action, principal_id="user_1", actor="a")
            clock.advance(timedelta(minutes=1))
        await adapter.record(action=AuditAction.BUNDLE_APPLIED, principal_id="user_2")

        mine = await adapter.list_permission_audit_log("user_1")
        latest_two = await adapter.list_permission_audit_log("user_1", limit=2)
        everyone = await adapter.list_permission_audit_log()

        assert [e.action for e in mine.value] == [
            "permissions_revoked",
            "role_changed",
            "permissions_granted",
        ]
        assert len(latest_two.value) == 2
        assert len(everyone.value) == 4
        assert everyone.value[0].principal_id == "user_2"

    @pytest.mark.asyncio
    async def test_default_clock_is_wall_clock(self, db_session):
        """Should stamp entries with the current UTC time."""
        adapter = DatabaseAuditAdapter(session=db_session)
        before = datetime.now(UTC) - timedelta(seconds=1)

        await adapter.record(
            action=AuditAction.TEMPORARY_PERMISSIONS_EXPIRED, principal_id="user_1", actor="system"
        )

        [entry] = (await adapter.list_permission_audit_log("user_1")).value
        assert before <= entry.created_at <= datetime.now(UTC) + timedelta(seconds=1)
        assert entry.context == {}
