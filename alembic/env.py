"""Alembic environment for the authorization tables (async SQLAlchemy).

The database URL comes from `authz.core.config.settings`, never alembic.ini.
After an online `alembic upgrade` the idempotent seeders in `seeds/` install
the default permission bundles; pass `-x seed=false` to skip them.
"""

import asyncio
import os
import sys
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncSession, async_engine_from_config

from alembic import context
from authz.core.config import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", settings.database_url)

# Models must be imported before reading the metadata
from authz.infrastructure.persistence.models import BaseModel  # noqa: E402

target_metadata = BaseModel.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


def _seeding_enabled() -> bool:
    """Seed on `upgrade` only, unless disabled with `-x seed=false`."""
    flag = context.get_x_argument(as_dictionary=True).get("seed", "true")
    if flag.strip().lower() in {"0", "false", "no", "n"}:
        return False
    cmd_opts = getattr(config, "cmd_opts", None)
    return getattr(cmd_opts, "cmd", None) is not None and "upgrade" in str(cmd_opts.cmd)


async def run_async_migrations() -> None:
    """Run migrations on an async engine, then the seeders."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    if _seeding_enabled():
        # seeds/ lives next to this file, outside the installed package
        alembic_dir = os.path.dirname(__file__)
        if alembic_dir not in sys.path:
            sys.path.insert(0, alembic_dir)
        from seeds import run_all_seeders  # noqa: E402

        async with AsyncSession(connectable, expire_on_commit=False) as session:
            await run_all_seeders(session)
            await session.commit()

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
