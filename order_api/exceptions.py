"""
Error taxonomy for the order service.

Expected branches of the status transition (not found, invalid status, no
change) are returned as StatusUpdateResult values. The exceptions below are
caller contract violations or aborted calls.
"""

from typing import List
from uuid import UUID

from order_api.models.api import ValidationError


class OrderServiceError(Exception):
    """Base class for order service errors."""


class ProductNotFoundError(OrderServiceError):
    """A create-order request referenced a product missing from the catalog."""

    def __init__(self, product_id: UUID):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found.")


class StatusNotFoundError(OrderServiceError):
    """The initial order status is not present in the status table."""

    def __init__(self, status_name: str):
        self.status_name = status_name
        super().__init__(f"Status '{status_name}' not found.")


class ValidationFailure(OrderServiceError):
    """A request failed structural validation before reaching the engine."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        super().__init__("One or more validation failures have occurred.")


class OperationCancelled(OrderServiceError):
    """The caller cancelled the operation before it completed."""

    def __init__(self, message: str = "Operation was cancelled."):
        super().__init__(message)
