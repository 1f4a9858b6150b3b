"""Database seeding package.

Provides idempotent seeders that run automatically after Alembic migrations.
All seeders use ON CONFLICT DO NOTHING to be safe for repeated runs.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from seeds.bundle_seeder import seed_default_bundles

logger = structlog.get_logger(__name__)


async def run_all_seeders(session: AsyncSession) -> None:
    """Run all database seeders. Called after Alembic migrations.

    Args:
        session: Async database session.
    """
    logger.info("seeding_started")

    await seed_default_bundles(session)

    logger.info("seeding_completed")


__all__ = ["run_all_seeders", "seed_default_bundles"]
