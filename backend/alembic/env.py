import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Migrations import the application modules the same way uvicorn does, from backend/
sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), '..')))

from config import settings
from database import Base, normalize_url
import models.catalog  # noqa: F401
import models.product  # noqa: F401
import models.variant  # noqa: F401
import models.coupon  # noqa: F401
import models.stock  # noqa: F401
import models.order  # noqa: F401
import models.log  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# DATABASE_URL from the settings wins over alembic.ini
config.set_main_option("sqlalchemy.url", normalize_url(settings.DATABASE_URL))
target_metadata = Base.metadata


def _batch(dialect_name: str) -> bool:
    # SQLite has no ALTER CONSTRAINT; batch mode copies the table instead
    return dialect_name == "sqlite"


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_batch(url.split(":", 1)[0]),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_batch(connection.dialect.name),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
