from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.app.services.customer_locks import CustomerLockRegistry

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# One registry per process: every request for a customer must share its lock
customer_locks = CustomerLockRegistry(timeout_seconds=ApplicationConfig.LOCK_TIMEOUT_SECONDS)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_customer_locks() -> CustomerLockRegistry:
    return customer_locks
