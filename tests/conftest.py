import asyncio
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./stock_ledger_test.db")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from db.database import build_engine, create_db_and_tables, get_async_session, get_read_session, read_only  # noqa: E402
from db.inventory.movement import StockMovement  # noqa: E402
from db.inventory.stock import InventoryState  # noqa: E402
from services.catalog import register_category, register_product  # noqa: E402
from services.ledger import LedgerEngine  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path):
    # A file database so concurrent ledger transactions use separate connections
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
async def db_engine(anyio_backend, database_url):
    engine = build_engine(database_url, poolclass=NullPool)
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def read_session_maker(db_engine):
    return async_sessionmaker(read_only(db_engine), expire_on_commit=False)


@pytest.fixture
def ledger(session_maker):
    return LedgerEngine(session_maker, timeout=5)


@pytest.fixture
def make_category(session_maker):
    async def _make(name="General", description=None):
        async with session_maker() as db:
            category = await register_category(db, name=name, description=description)
        return category.id

    return _make


@pytest.fixture
def make_product(session_maker):
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        defaults = {
            "name": f"Widget {counter['n']}",
            "price": 2.5,
            "sku": f"SKU-{counter['n']:03d}",
            "initial_quantity": 0,
            "min_stock_level": 0,
        }
        defaults.update(overrides)
        async with session_maker() as db:
            product = await register_product(db, **defaults)
        return product.id

    return _make


@pytest.fixture
def read_quantity(session_maker):
    async def _read(product_id):
        async with session_maker() as db:
            return await db.scalar(
                select(InventoryState.quantity).where(InventoryState.product_id == product_id)
            )

    return _read


@pytest.fixture
def read_movements(session_maker):
    async def _read(product_id):
        async with session_maker() as db:
            res = await db.execute(
                select(StockMovement)
                .where(StockMovement.product_id == product_id)
                .order_by(StockMovement.id.asc())
            )
            return list(res.scalars().all())

    return _read


@pytest.fixture
def api_engine(database_url):
    engine = build_engine(database_url, poolclass=NullPool)
    asyncio.run(create_db_and_tables(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def client(api_engine):
    from main import app
    from routers.inventory import get_ledger

    session_maker = async_sessionmaker(api_engine, expire_on_commit=False)
    read_maker = async_sessionmaker(read_only(api_engine), expire_on_commit=False)

    async def _session():
        async with session_maker() as session:
            yield session

    async def _read_session():
        async with read_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_read_session] = _read_session
    app.dependency_overrides[get_ledger] = lambda: LedgerEngine(session_maker)
    yield TestClient(app)
    app.dependency_overrides.clear()
