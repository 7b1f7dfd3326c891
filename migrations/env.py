import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from app import create_app
from models import db

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)
logger = logging.getLogger('alembic.env')

# The recipe schema is owned by the Flask app: read the database URL from its
# config so `flask db upgrade` and the running service agree on the target.
recipe_app = create_app()
config.set_main_option('sqlalchemy.url', str(recipe_app.config.get('SQLALCHEMY_DATABASE_URI')).replace('%', '%%'))

target_metadata = db.metadata


def _is_sqlite(url):
    return url.startswith('sqlite')


def run_migrations_offline() -> None:
    """Emit the recipe schema migrations as SQL without a database connection."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=_is_sqlite(url),
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the recipe schema migrations against the configured database."""
    connectable = engine_from_config(
        config.get_section(config.config_main_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == 'sqlite',
        )

        with context.begin_transaction():
            logger.info("Running recipe schema migrations on %s", connection.dialect.name)
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
