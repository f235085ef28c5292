"""Alembic environment: schema from sniket.models, URL from Settings."""
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.append(str(Path(__file__).resolve().parents[1]))

from sniket.core.config import settings  # noqa: E402
from sniket.models import Base  # noqa: E402

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

# alembic.ini leaves sqlalchemy.url empty unless a caller sets it
DATABASE_URL = context.config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL


def _options(**extra):
    return dict(target_metadata=Base.metadata, compare_type=True, **extra)


def migrate_offline() -> None:
    """Emit SQL for DATABASE_URL without connecting."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            # sqlite has no ALTER COLUMN
            context.configure(
                connection=connection,
                **_options(render_as_batch=connection.dialect.name == "sqlite"),
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
