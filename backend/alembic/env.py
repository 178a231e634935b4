"""Alembic environment configuration.

Migrations run against ``settings.DATABASE_URL`` through the same engine
factory as the service, so SQLite gets WAL and foreign keys here too.
"""
from logging.config import fileConfig
from alembic import context

from soulpass.config import settings
from soulpass.database import Base, make_engine

# Import all models so they register with Base.metadata
from soulpass.models.profile import Profile  # noqa: F401
from soulpass.models.event import Event      # noqa: F401
from soulpass.models.rsvp import RSVP        # noqa: F401

config = context.config
# configparser treats % as interpolation
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# SQLite cannot ALTER constraints in place
render_as_batch = settings.DATABASE_URL.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=render_as_batch,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = make_engine(settings.DATABASE_URL)
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=render_as_batch,
                compare_type=True,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
