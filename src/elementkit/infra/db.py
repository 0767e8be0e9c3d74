"""
Engine, declarative base and session factories.

One process-wide engine is built from ``DATABASE_URL``. Other URLs (``--db-url`` on
the CLI, ``TEST_DATABASE_URL``) get their own engine, built once per URL.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import MetaData

from elementkit.infra.settings import settings

# Stable constraint names keep autogenerated revisions quiet
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _enable_sqlite_foreign_keys(dbapi_conn, _):
    # Element deletes rely on ON DELETE CASCADE reaching the locale, content and structure rows
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(url: str, *, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            # One shared connection, or every checkout would see an empty database
            options["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, echo=echo, future=True, **options)
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_engine(
        url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        connect_args={"connect_timeout": settings.connect_timeout} if "postgresql" in url else {},
    )


engine = _build_engine(settings.database_url, echo=settings.echo_sql)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

_engines: dict[str, Engine] = {}


def get_engine(db_url: str | None = None, for_test: bool = False) -> Engine:
    """Return the engine for ``db_url``, the test database, or the default database.

    ``for_test`` only has an effect when ``TEST_DATABASE_URL`` is set.
    """
    url = settings.test_database_url if for_test and settings.test_database_url else db_url
    if not url or url == settings.database_url:
        return engine
    if url not in _engines:
        _engines[url] = _build_engine(url, echo=settings.echo_sql)
    return _engines[url]


def get_sessionmaker(for_test: bool = False, bind: Engine | None = None) -> sessionmaker:
    """``SessionLocal``, or a factory bound to ``bind`` / the test database."""
    if bind is None and not for_test:
        return SessionLocal
    return sessionmaker(
        bind=bind if bind is not None else get_engine(for_test=True),
        autoflush=False,
        autocommit=False,
        future=True,
    )

