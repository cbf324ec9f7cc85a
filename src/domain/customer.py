"""Customer Domain Entity

Customers are owned by the customer directory, not by the ledger.
The ledger only reads identity and credit limit and never mutates a customer.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import Numeric, String
from src.domain.base import BaseModel, generate_uuid


class Customer(BaseModel, table=True):
    """
    Customer - Read-only view of a customer record

    Domain Rules:
    - id is assigned by the customer directory
    - custom_unit_price overrides the global price (resolved by the caller)
    - credit_limit is informational for the ledger (None = no limit)
    """

    __tablename__ = "customers"

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(64), primary_key=True),
        description="Customer identifier"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Customer display name"
    )

    location: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
        description="Delivery location / route"
    )

    custom_unit_price: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(18, 2), nullable=True),
        description="Optional price per container overriding the global price"
    )

    credit_limit: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(18, 2), nullable=True),
        description="Maximum amount the customer may owe (None = unlimited)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Customer creation timestamp"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "id": "cust_001",
                "name": "Dela Cruz Store",
                "location": "BANAI",
                "custom_unit_price": "25.00",
                "credit_limit": "1000.00",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
