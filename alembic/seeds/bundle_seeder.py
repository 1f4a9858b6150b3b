"""Default permission bundle seeder.

Seeds the default bundles into permission_bundles. Idempotent via
ON CONFLICT (name) DO NOTHING - safe to run on every migration.

After initial seeding, bundle changes should be made through the bundle
service (validated against the permission catalog).
"""

from uuid import uuid4

import structlog
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.permissions.catalog import DEFAULT_BUNDLES
from authz.infrastructure.persistence.models import PermissionBundle

logger = structlog.get_logger(__name__)


async def seed_default_bundles(session: AsyncSession) -> None:
    """Seed default permission bundles. Idempotent via ON CONFLICT DO NOTHING.

    Args:
        session: Async database session.
    """
    seeded_count = 0
    skipped_count = 0

    for definition in DEFAULT_BUNDLES:
        stmt = (
            insert(PermissionBundle)
            .values(
                id=uuid4(),
                name=definition.name,
                description=definition.description,
                permissions=list(definition.permissions),
            )
            .on_conflict_do_nothing(index_elements=["name"])
        )
        result = await session.execute(stmt)
        if result.rowcount:
            seeded_count += 1
        else:
            skipped_count += 1

    logger.info(
        "bundle_seeding_completed",
        seeded=seeded_count,
        skipped=skipped_count,
        total=len(DEFAULT_BUNDLES),
    )
