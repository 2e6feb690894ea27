"""
Services package for the Order API.
"""

from .lifecycle import (
    OrderLifecycleEngine,
    build_order_engine,
    get_order_engine,
)
from .validation import (
    CreateOrderValidator,
    get_create_order_validator,
)

__version__ = "0.1.0"

__all__ = [
    "OrderLifecycleEngine",
    "build_order_engine",
    "get_order_engine",
    "CreateOrderValidator",
    "get_create_order_validator",
]
