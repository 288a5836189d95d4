import logging
import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

from fleetvmrs.core.config import settings
from fleetvmrs.db.base import Base
from fleetvmrs.db.models import *  # noqa: F401,F403

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

# Allow the migration user to differ from the application user.
mysql_user = os.getenv("MYSQL_USER", settings.mysql_user)
mysql_password = os.getenv("MYSQL_PASSWORD", settings.mysql_password)
mysql_host = os.getenv("MYSQL_HOST", settings.mysql_host)
mysql_port = os.getenv("MYSQL_PORT", str(settings.mysql_port))
mysql_db = os.getenv("MYSQL_DB", settings.mysql_db)

# localhost would make PyMySQL use the Unix socket
if mysql_host == "localhost":
    mysql_host = "127.0.0.1"

sqlalchemy_url = (
    f"mysql+pymysql://{mysql_user}:{mysql_password}"
    f"@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"
)
logger.info("Connecting to MySQL: %s@%s:%s/%s", mysql_user, mysql_host, mysql_port, mysql_db)

config.set_main_option("sqlalchemy.url", sqlalchemy_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL without a DBAPI connection."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    try:
        with connectable.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata)

            with context.begin_transaction():
                context.run_migrations()
    except Exception:
        logger.error(
            "Database connection failed for %s@%s:%s/%s; check that MySQL is running "
            "and MYSQL_HOST/MYSQL_USER/MYSQL_PASSWORD are correct.",
            mysql_user,
            mysql_host,
            mysql_port,
            mysql_db,
        )
        raise


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
