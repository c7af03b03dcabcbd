"""
Alembic environment configuration for the account ledger.
Migrations run through the synchronous driver for the configured database.
"""

from logging.config import fileConfig
import os
import sys

from sqlalchemy import pool, create_engine
from sqlalchemy.engine import Connection

from alembic import context

# Make account_ledger importable when alembic runs from the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from account_ledger.db.models import Base
from account_ledger.config import settings

# Settings from alembic.ini
config = context.config

# Logger setup comes from alembic.ini; the service itself uses basicConfig
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The service runs on aiosqlite/asyncpg; migrations use the matching sync driver
# (sqlite3, or psycopg2 from the postgres extra)
sync_url = settings.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
config.set_main_option("sqlalchemy.url", sync_url)

# users, credits, packages, transactions
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the ledger migration SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply ledger migrations over a short-lived sync connection."""
    url = config.get_main_option("sqlalchemy.url")
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        do_run_migrations(connection)

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
