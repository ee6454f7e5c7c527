import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from flask import current_app

# Alembic Config object
config = context.config

# Logging setup
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger('alembic.env')

# Point Alembic at the database the Barangay Connect app is configured for
config.set_main_option(
    'sqlalchemy.url',
    current_app.config.get('SQLALCHEMY_DATABASE_URI').replace('%', '%%'),
)

# Model metadata registered by Flask-Migrate, used by 'flask db migrate'
target_metadata = current_app.extensions['migrate'].db.metadata


def run_migrations_offline():
    """Emit the migration SQL without a database connection."""
    url = config.get_main_option('sqlalchemy.url')
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'},
        compare_type=True,
        render_as_batch=url.startswith('sqlite'),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Apply migrations over a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == 'sqlite',
        )

        with context.begin_transaction():
            context.run_migrations()
    logger.info('Barangay Connect schema is up to date.')


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
