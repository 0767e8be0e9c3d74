"""Alembic environment for the fixed elementkit tables.

Content tables of matrix fields and the ``field_*`` columns are created by the
application when fields are saved, so autogenerate is told to leave them alone.
"""

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context  # type: ignore
from sqlalchemy import engine_from_config, pool

SRC_DIR = str(Path(__file__).resolve().parent.parent / "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from elementkit.domain import entities  # noqa: E402,F401  (registers every record on Base)
from elementkit.infra.db import Base  # noqa: E402
from elementkit.infra.schema import CONTENT_TABLE, content_table  # noqa: E402
from elementkit.infra.settings import settings  # noqa: E402

content_table(CONTENT_TABLE)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

RUNTIME_TABLE_PREFIX = "matrixcontent_"
RUNTIME_COLUMN_PREFIX = "field_"


def include_object(object, name, type_, reflected, compare_to):
    if type_ == "table":
        return name != "alembic_version" and not name.startswith(RUNTIME_TABLE_PREFIX)
    if type_ == "column":
        return not name.startswith(RUNTIME_COLUMN_PREFIX)
    return True


def database_url() -> str:
    """``DATABASE_URL``, or ``TEST_DATABASE_URL`` when ``ALEMBIC_USE_TEST_DB=1``."""
    if os.getenv("ALEMBIC_USE_TEST_DB") == "1" and settings.test_database_url:
        return settings.test_database_url
    return settings.database_url


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "include_object": include_object,
        # SQLite can only alter tables by copying them
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = database_url()
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **_configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = database_url()
    config.set_main_option("sqlalchemy.url", url)
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
