"""
Models package for the Order API.
"""

# Domain models
from .domain import (
    Status,
    Service,
    Product,
    Order,
    OrderItem,
    OrderSummary,
    OrderDetail,
    OrderItemDetail,
    StatusUpdateResult,
    StatusByName,
    StatusById,
    StatusRef,
)

# API models
from .api import (
    CreateOrderItemRequest,
    CreateOrderRequest,
    OrderIdResponse,
    UpdateOrderStatusRequest,
    ProfitResponse,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    # Domain
    "Status",
    "Service",
    "Product",
    "Order",
    "OrderItem",
    "OrderSummary",
    "OrderDetail",
    "OrderItemDetail",
    "StatusUpdateResult",
    "StatusByName",
    "StatusById",
    "StatusRef",
    # API
    "CreateOrderItemRequest",
    "CreateOrderRequest",
    "OrderIdResponse",
    "UpdateOrderStatusRequest",
    "ProfitResponse",
    "ValidationError",
]
