import pytest_asyncio
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  registers table metadata
from src.adapter.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyDebtTabRepository,
    SqlAlchemyDebtTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.customer_locks import CustomerLockRegistry
from src.app.services.mutation_coordinator import MutationCoordinator
from src.depends import get_customer_locks, get_session
from src.domain.customer import Customer


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Test database engine on a throwaway SQLite file"""
    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'debt_ledger_test.db'}"

    engine = create_async_engine(test_db_url, echo=False, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Session for arranging and inspecting data"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def customers(db_session):
    rows = [
        Customer(id="cust_001", name="Dela Cruz Store", location="BANAI", credit_limit=Decimal("1000.00")),
        Customer(id="cust_002", name="Santos Eatery", location="POBLACION", credit_limit=Decimal("100.00")),
    ]
    for row in rows:
        db_session.add(row)
    await db_session.commit()
    return {row.id: row for row in rows}


@pytest_asyncio.fixture
async def locks():
    return CustomerLockRegistry(timeout_seconds=2.0)


@pytest_asyncio.fixture
async def coordinate(session_factory, locks):
    """
    Run one coordinator call in its own session, like one HTTP request

    Usage:
        result = await coordinate(lambda c: c.pay("cust_001", Decimal("100.00")))
    """
    async def _run(call):
        async with session_factory() as session:
            coordinator = MutationCoordinator(
                SqlAlchemyUnitOfWork(session),
                SqlAlchemyCustomerRepository(session),
                SqlAlchemyDebtTabRepository(session),
                SqlAlchemyDebtTransactionRepository(session),
                locks,
            )
            return await call(coordinator)
    return _run


@pytest_asyncio.fixture
async def client(session_factory, locks):
    """Test client with a fresh database session per request"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_customer_locks] = lambda: locks

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
