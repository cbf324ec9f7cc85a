"""Customer Repository Interface

Read-only access to the customer directory.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional
from src.domain.customer import Customer


class CustomerRepository(ABC):
    """Repository interface for reading Customer records"""

    @abstractmethod
    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        """
        Retrieve a customer by ID

        Args:
            customer_id: Customer identifier

        Returns:
            Customer if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_ids(self, customer_ids: Iterable[str]) -> Dict[str, Customer]:
        """
        Retrieve several customers at once

        Args:
            customer_ids: Customer identifiers

        Returns:
            Mapping of customer_id to Customer for the customers that exist
        """
        pass
