"""
Create-order request validation

Structural checks applied before a request reaches the lifecycle engine.
"""

import logging
from typing import List, Optional
from uuid import UUID

from order_api.exceptions import ValidationFailure
from order_api.models.api import CreateOrderRequest, ValidationError
from order_api.utils.config import settings

logger = logging.getLogger(__name__)

NIL_ID = UUID(int=0)


class CreateOrderValidator:
    """Collects every problem in a create-order request and raises them together"""

    def __init__(self, max_quantity: Optional[int] = None):
        self.max_quantity = max_quantity or settings.MAX_ITEM_QUANTITY

    def validate(self, request: Optional[CreateOrderRequest]) -> List[ValidationError]:
        if request is None:
            return [ValidationError(field="", message="Order request is null")]

        errors = []
        if not request.items:
            errors.append(ValidationError(field="items", message="Order items are null or empty"))
        if request.customer_id == NIL_ID:
            errors.append(ValidationError(field="customer_id", message="Customer id is empty"))
        if request.reseller_id == NIL_ID:
            errors.append(ValidationError(field="reseller_id", message="Reseller id is empty"))

        for item in request.items:
            if item.product_id == NIL_ID:
                errors.append(ValidationError(field="product_id", message="Product id is empty"))
            if item.quantity <= 0:
                errors.append(ValidationError(
                    field="quantity",
                    message="Quantity must be greater than zero"
                ))
            if item.quantity > self.max_quantity:
                errors.append(ValidationError(
                    field="quantity",
                    message=f"Quantity must be less than or equal to {self.max_quantity}"
                ))

        return errors

    def validate_and_raise(self, request: Optional[CreateOrderRequest]):
        """
        Raises:
            ValidationFailure: If the request has any problem
        """
        errors = self.validate(request)
        if errors:
            logger.info(f"Create-order request rejected with {len(errors)} validation errors")
            raise ValidationFailure(errors)


_validator = None


def get_create_order_validator() -> CreateOrderValidator:
    """Get singleton instance of CreateOrderValidator"""
    global _validator
    if _validator is None:
        _validator = CreateOrderValidator()
    return _validator
