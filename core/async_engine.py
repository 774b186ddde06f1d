from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from core.settings import settings


def build_engine_kwargs(database_uri: str) -> dict:
    if database_uri.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.POSTGRES_POOL_SIZE,
        "max_overflow": settings.POSTGRES_MAX_OVERFLOW,
        "pool_recycle": 600,
        "pool_use_lifo": True,
    }


def enable_sqlite_foreign_keys(engine) -> None:
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_engine = create_async_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    **build_engine_kwargs(settings.SQLALCHEMY_DATABASE_URI),
)
enable_sqlite_foreign_keys(async_engine)
AsyncSessionLocal = async_sessionmaker(async_engine, autocommit=False, expire_on_commit=False)
