"""
Domain Models - Pydantic models for order entities and read projections.

These models represent the persisted order records (orders, line items,
products, services, statuses) and the summary/detail projections computed
from them on read.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Union
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, PlainSerializer

# Money stays Decimal in Python and is written to JSON as a number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# ============================================================================
# Enums
# ============================================================================

class StatusUpdateResult(str, Enum):
    """Outcome of a status transition request."""
    NOT_FOUND = "not_found"
    INVALID_STATUS = "invalid_status"
    NO_CHANGE = "no_change"
    UPDATED = "updated"


# ============================================================================
# Persisted Entities
# ============================================================================

class Status(BaseModel):
    """Order status from the statuses table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class Service(BaseModel):
    """Service from the services table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class Product(BaseModel):
    """Catalog product from the products table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: UUID
    name: str
    unit_cost: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)


class OrderItem(BaseModel):
    """
    Line item from the order_items table.

    service_id is a snapshot of the product's service at creation time and
    is never re-resolved through the product.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    product_id: UUID
    service_id: UUID
    quantity: int = Field(..., gt=0)


class Order(BaseModel):
    """Order header from the orders table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reseller_id: UUID
    customer_id: UUID
    status_id: UUID
    created_at: datetime


# ============================================================================
# Read Projections
# ============================================================================

class OrderSummary(BaseModel):
    """Order header with item count and totals, used for listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reseller_id: UUID
    customer_id: UUID
    status_id: UUID
    status_name: str
    created_at: datetime
    item_count: int
    total_cost: Money
    total_price: Money


class OrderItemDetail(BaseModel):
    """Line item expanded with product/service names and per-item totals."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    service_id: UUID
    service_name: str
    product_id: UUID
    product_name: str
    quantity: int
    unit_cost: Money
    unit_price: Money
    total_cost: Money
    total_price: Money


class OrderDetail(BaseModel):
    """Order header with totals and fully expanded items."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reseller_id: UUID
    customer_id: UUID
    status_id: UUID
    status_name: str
    created_at: datetime
    total_cost: Money
    total_price: Money
    items: List[OrderItemDetail] = Field(default_factory=list)


# ============================================================================
# Status References
# ============================================================================

class StatusByName(BaseModel):
    """Refers to a status by its unique name."""
    name: str


class StatusById(BaseModel):
    """Refers to a status by its identifier."""
    status_id: UUID


StatusRef = Union[StatusByName, StatusById]
