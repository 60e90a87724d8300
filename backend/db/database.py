from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def _configure_sqlite(engine: AsyncEngine) -> None:
    """SQLite has no row locks: take the database write lock at BEGIN instead,
    so two ledger transactions on the same file queue up rather than interleave.

    Connections carrying the `sqlite_begin="DEFERRED"` execution option (the
    read sessions) start a plain transaction and never wait on a writer.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "IMMEDIATE")
        conn.exec_driver_sql(f"BEGIN {mode}")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _configure_sqlite(engine)
    return engine


def read_only(engine: AsyncEngine) -> AsyncEngine:
    """Same pool, but SQLite transactions begin DEFERRED. No effect on Postgres."""
    return engine.execution_options(sqlite_begin="DEFERRED")


engine = build_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)
read_session_maker = async_sessionmaker(read_only(engine), expire_on_commit=False)


async def create_db_and_tables(bind: AsyncEngine = engine):
    # Register every table on Base.metadata before create_all
    from db.category import Category  # noqa: F401
    from db.product import Product  # noqa: F401
    from db.inventory.stock import InventoryState  # noqa: F401
    from db.inventory.movement import StockMovement  # noqa: F401
    from db.migrations import add_user_id_column_if_missing

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await add_user_id_column_if_missing(bind)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_read_session() -> AsyncGenerator[AsyncSession, None]:
    async with read_session_maker() as session:
        yield session
