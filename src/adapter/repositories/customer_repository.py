"""SQLAlchemy implementation of CustomerRepository"""

from typing import Dict, Iterable, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.customer_repository import CustomerRepository
from src.domain.customer import Customer


class SqlAlchemyCustomerRepository(CustomerRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, customer_ids: Iterable[str]) -> Dict[str, Customer]:
        ids = list(set(customer_ids))
        if not ids:
            return {}
        stmt = select(Customer).where(Customer.id.in_(ids))
        result = await self.session.execute(stmt)
        return {customer.id: customer for customer in result.scalars().all()}
