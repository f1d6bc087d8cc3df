"""
Alembic environment.

Reads the database settings through the application's own config loader,
then swaps the async driver for its sync counterpart: Alembic runs
migrations over a plain sync engine.
"""

import os
import sys
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from dotenv import load_dotenv

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.db.models import DbBaseModel
from common.config import DatabaseConfig, DbDriver
from common.config.initialize_config import (
    get_config,
    initialize_config,
    ConfigurationError,
)

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

config = context.config
app_config = get_config()

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = DbBaseModel.metadata

SYNC_SCHEMES: dict[DbDriver, str] = {
    DbDriver.ASYNCPG: "postgresql",  # psycopg2
    DbDriver.PSYCOPG: "postgresql+psycopg",
    DbDriver.AIOSQLITE: "sqlite",
}


def _db_config() -> DatabaseConfig:
    if not app_config.database:
        raise RuntimeError("Database configuration not found in environment")
    return app_config.database


def get_sync_url() -> str:
    db_config = _db_config()
    url = db_config.get_connection_url(include_password=True)
    async_scheme = db_config.driver.url_scheme
    return SYNC_SCHEMES[db_config.driver] + url[len(async_scheme):]


def get_connect_args() -> dict:
    """libpq-style SSL arguments mirroring the app's asyncpg SSL context."""
    db_config = _db_config()
    if db_config.driver.is_sqlite or not db_config.ssl_mode:
        return {}

    connect_args = {"sslmode": db_config.ssl_mode.value}
    if db_config.requires_ssl():
        if db_config.ssl_ca_path:
            connect_args["sslrootcert"] = str(db_config.ssl_ca_path)
        if db_config.ssl_cert_path:
            connect_args["sslcert"] = str(db_config.ssl_cert_path)
        if db_config.ssl_key_path:
            connect_args["sslkey"] = str(db_config.ssl_key_path)
    return connect_args


def run_migrations_offline() -> None:
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_db_config().driver.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_sync_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=get_connect_args(),
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
