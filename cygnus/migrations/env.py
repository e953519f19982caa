"""Alembic environment for the cygnus cache file."""

from __future__ import annotations

from alembic import context
from sqlalchemy import Engine, engine_from_config, event, pool

config = context.config


def _take_over_transactions(engine: Engine) -> None:
    # pysqlite commits before every DDL statement unless BEGIN is issued by hand
    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    _take_over_transactions(engine)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, transactional_ddl=True)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    raise RuntimeError("The cache schema can only be upgraded against a live database")

run_migrations_online()
