"""
API Models - Pydantic models for API requests and responses.

These models define the structure of HTTP request and response payloads
for the FastAPI endpoints.
"""

from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from order_api.utils.config import settings

from .domain import Money, StatusByName, StatusById, StatusRef


# ============================================================================
# Order Creation
# ============================================================================

class CreateOrderItemRequest(BaseModel):
    """A single product line in a create-order request."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: UUID = Field(..., alias="productId", description="Catalog product ID")
    quantity: int = Field(..., description="Number of units")


class CreateOrderRequest(BaseModel):
    """Request payload for creating an order."""

    model_config = ConfigDict(populate_by_name=True)

    reseller_id: UUID = Field(..., alias="resellerId", description="Reseller placing the order")
    customer_id: UUID = Field(..., alias="customerId", description="Customer the order is for")
    items: List[CreateOrderItemRequest] = Field(default_factory=list, description="Ordered products")

    @property
    def status_name(self) -> str:
        """Orders are always created in the configured initial status"""
        return settings.INITIAL_STATUS_NAME


class OrderIdResponse(BaseModel):
    """Response payload for a created order."""

    order_id: UUID = Field(..., description="Identifier of the new order")


# ============================================================================
# Status Transition
# ============================================================================

class UpdateOrderStatusRequest(BaseModel):
    """Request payload for moving an order to another status."""

    model_config = ConfigDict(populate_by_name=True)

    new_status_id: Optional[UUID] = Field(default=None, alias="newStatusId", description="Target status ID")
    new_status_name: Optional[str] = Field(default=None, alias="newStatusName", description="Target status name")

    def status_ref(self) -> Optional[StatusRef]:
        """
        Collapse the request into a single status reference.

        A non-blank name takes precedence over an id. Returns None when
        neither is supplied.
        """
        if self.new_status_name is not None and self.new_status_name.strip():
            return StatusByName(name=self.new_status_name)
        if self.new_status_id is not None:
            return StatusById(status_id=self.new_status_id)
        return None


# ============================================================================
# Reporting
# ============================================================================

class ProfitResponse(BaseModel):
    """Response payload for the monthly completed-order profit."""

    profit: Money = Field(..., description="Price minus cost over completed orders")


# ============================================================================
# Validation
# ============================================================================

class ValidationError(BaseModel):
    """A single request validation problem."""

    field: str = Field(..., description="Offending field name")
    message: str = Field(..., description="Human readable explanation")
