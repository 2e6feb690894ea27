"""
Order Lifecycle Engine

Orchestrates order creation, status transitions and the read/aggregation
queries. The engine only reaches storage through the OrderStore,
CatalogResolver and StatusDirectory it is constructed with, so the same
engine runs unchanged on PostgreSQL and on the in-memory backend.
"""

import calendar
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from order_api.exceptions import ProductNotFoundError, StatusNotFoundError
from order_api.models.api import CreateOrderRequest, UpdateOrderStatusRequest
from order_api.models.domain import (
    Order,
    OrderDetail,
    OrderItem,
    OrderSummary,
    StatusUpdateResult,
)
from order_api.services.catalog import CatalogResolver, PostgresCatalogResolver
from order_api.services.memory import (
    InMemoryBackend,
    InMemoryCatalogResolver,
    InMemoryOrderStore,
    InMemoryStatusDirectory,
)
from order_api.services.order_store import OrderStore, PostgresOrderStore
from order_api.services.statuses import PostgresStatusDirectory, StatusDirectory
from order_api.utils.cancellation import CancellationToken
from order_api.utils.config import settings
from order_api.utils.identifiers import same_identifier

logger = logging.getLogger(__name__)


def subtract_months(moment: datetime, months: int) -> datetime:
    """
    Move a timestamp back by whole calendar months.

    The day is clamped to the length of the target month, so 31 March
    minus one month is the last day of February.
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class OrderLifecycleEngine:
    """Creates orders, moves them between statuses and reports on them"""

    def __init__(
        self,
        orders: OrderStore,
        catalog: CatalogResolver,
        statuses: StatusDirectory
    ):
        self.orders = orders
        self.catalog = catalog
        self.statuses = statuses

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_orders(self, token: Optional[CancellationToken] = None) -> List[OrderSummary]:
        return self.orders.list_orders(token=token)

    def get_order_detail(
        self,
        order_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> Optional[OrderDetail]:
        return self.orders.get_order_detail(order_id, token=token)

    def list_orders_by_status_name(
        self,
        status_name: Optional[str],
        token: Optional[CancellationToken] = None
    ) -> List[OrderSummary]:
        return self.orders.list_orders_by_status_name(status_name, token=token)

    def list_orders_by_status_id(
        self,
        status_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> List[OrderSummary]:
        return self.orders.list_orders_by_status_id(status_id, token=token)

    # ------------------------------------------------------------------
    # Status transition
    # ------------------------------------------------------------------

    def update_order_status(
        self,
        order_id: UUID,
        request: UpdateOrderStatusRequest,
        token: Optional[CancellationToken] = None
    ) -> StatusUpdateResult:
        """
        Move an order to the status named or identified by the request.

        Returns:
            NOT_FOUND if the order does not exist, INVALID_STATUS if the
            target is missing or does not resolve, NO_CHANGE if the order is
            already in the target status, UPDATED after the write.
        """
        order = self.orders.get_order(order_id, token=token)
        if order is None:
            logger.info(f"Status update for unknown order {order_id}")
            return StatusUpdateResult.NOT_FOUND

        ref = request.status_ref()
        if ref is None:
            logger.warning(f"Status update for order {order_id} names no target status")
            return StatusUpdateResult.INVALID_STATUS

        target_id = self.statuses.resolve(ref, token=token)
        if target_id is None:
            logger.warning(f"Status update for order {order_id} rejected: {ref!r} does not resolve")
            return StatusUpdateResult.INVALID_STATUS

        if same_identifier(target_id, order.status_id):
            logger.debug(f"Order {order_id} already in status {target_id}")
            return StatusUpdateResult.NO_CHANGE

        self.orders.update_order_status(order_id, target_id, token=token)
        logger.info(f"Order {order_id} moved from status {order.status_id} to {target_id}")
        return StatusUpdateResult.UPDATED

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(
        self,
        request: CreateOrderRequest,
        token: Optional[CancellationToken] = None
    ) -> UUID:
        """
        Create an order in the initial status.

        Every product is resolved before anything is written, so a missing
        product leaves the store untouched.

        Raises:
            ProductNotFoundError: If any item references an unknown product
            StatusNotFoundError: If the initial status is not configured
        """
        service_ids = self.catalog.resolve_service_ids(
            (item.product_id for item in request.items), token=token
        )
        for item in request.items:
            if service_ids[item.product_id] is None:
                logger.warning(f"Order rejected: product {item.product_id} not found")
                raise ProductNotFoundError(item.product_id)

        status_id = self.statuses.get_status_id(request.status_name, token=token)
        if status_id is None:
            raise StatusNotFoundError(request.status_name)

        order = Order(
            id=uuid.uuid4(),
            reseller_id=request.reseller_id,
            customer_id=request.customer_id,
            status_id=status_id,
            created_at=datetime.now(timezone.utc),
        )
        items = [
            OrderItem(
                id=uuid.uuid4(),
                order_id=order.id,
                product_id=item.product_id,
                service_id=service_ids[item.product_id],
                quantity=item.quantity,
            )
            for item in request.items
        ]

        self.orders.insert_order(order, items, token=token)
        logger.info(f"Created order {order.id} with {len(items)} items for customer {order.customer_id}")
        return order.id

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def get_completed_profit_for_month(
        self,
        token: Optional[CancellationToken] = None,
        now: Optional[datetime] = None
    ) -> Decimal:
        """
        Profit (price minus cost) of completed orders created in the last month.

        The window is a rolling lookback ending at call time, not a calendar
        month. Returns zero when no order qualifies.
        """
        end = now or datetime.now(timezone.utc)
        start = subtract_months(end, settings.PROFIT_WINDOW_MONTHS)
        profit = self.orders.sum_completed_profit_in_range(start, end, token=token)
        return profit if profit is not None else Decimal(0)


# Singleton instance
_order_engine = None


def build_order_engine(backend: Optional[str] = None) -> OrderLifecycleEngine:
    """Wire an engine to the configured storage backend"""
    backend = (backend or settings.STORE_BACKEND).lower()

    if backend == "memory":
        tables = InMemoryBackend.with_standard_statuses()
        engine = OrderLifecycleEngine(
            orders=InMemoryOrderStore(tables),
            catalog=InMemoryCatalogResolver(tables),
            statuses=InMemoryStatusDirectory(tables),
        )
    elif backend == "postgres":
        engine = OrderLifecycleEngine(
            orders=PostgresOrderStore(),
            catalog=PostgresCatalogResolver(),
            statuses=PostgresStatusDirectory(),
        )
    else:
        raise ValueError(f"Unknown store backend: {backend}")

    logger.info(f"Initialized OrderLifecycleEngine with backend={backend}")
    return engine


def get_order_engine() -> OrderLifecycleEngine:
    """Get singleton instance of OrderLifecycleEngine"""
    global _order_engine
    if _order_engine is None:
        _order_engine = build_order_engine()
    return _order_engine
