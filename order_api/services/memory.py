"""
In-Memory Backend

Row tables held in process memory, implementing the catalog, status and
order store interfaces. Used by tests and for local runs without PostgreSQL.

Identifiers are kept as 16-byte values and matched by exact byte-sequence
comparison. A single re-entrant lock guards every read and write so no
reader ever observes a half-inserted order.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from order_api.models.domain import (
    Order,
    OrderDetail,
    OrderItem,
    OrderItemDetail,
    OrderSummary,
    Product,
)
from order_api.services.catalog import CatalogResolver
from order_api.services.order_store import OrderStore
from order_api.services.statuses import StatusDirectory
from order_api.utils.cancellation import check_cancelled
from order_api.utils.config import settings
from order_api.utils.identifiers import id_from_bytes, id_to_bytes

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

STANDARD_STATUSES = ("Created", "In Progress", "Completed", "Failed")


class InMemoryBackend:
    """Tables of statuses, services, products, orders and order items"""

    def __init__(self):
        self.lock = threading.RLock()
        self.statuses: List[Row] = []
        self.services: List[Row] = []
        self.products: List[Row] = []
        self.orders: List[Row] = []
        self.order_items: List[Row] = []

    @classmethod
    def with_standard_statuses(cls) -> "InMemoryBackend":
        backend = cls()
        for name in STANDARD_STATUSES:
            backend.add_status(name)
        return backend

    # ------------------------------------------------------------------
    # Row lookup
    # ------------------------------------------------------------------

    @staticmethod
    def find(rows: Iterable[Row], column: str, identifier) -> Optional[Row]:
        wanted = id_to_bytes(identifier)
        for row in rows:
            if row[column] == wanted:
                return row
        return None

    @staticmethod
    def filter(rows: Iterable[Row], column: str, identifier) -> List[Row]:
        wanted = id_to_bytes(identifier)
        return [row for row in rows if row[column] == wanted]

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def add_status(self, name: str, status_id: Optional[UUID] = None) -> UUID:
        status_id = status_id or uuid.uuid4()
        with self.lock:
            if any(row['name'] == name for row in self.statuses):
                raise ValueError(f"Status '{name}' already exists")
            self.statuses.append({'id': status_id.bytes, 'name': name})
        return status_id

    def add_service(self, name: str, service_id: Optional[UUID] = None) -> UUID:
        service_id = service_id or uuid.uuid4()
        with self.lock:
            self.services.append({'id': service_id.bytes, 'name': name})
        return service_id

    def add_product(
        self,
        service_id: UUID,
        name: str,
        unit_cost: Decimal,
        unit_price: Decimal,
        product_id: Optional[UUID] = None
    ) -> UUID:
        product_id = product_id or uuid.uuid4()
        with self.lock:
            if self.find(self.services, 'id', service_id) is None:
                raise ValueError(f"Service {service_id} does not exist")
            self.products.append({
                'id': product_id.bytes,
                'service_id': service_id.bytes,
                'name': name,
                'unit_cost': Decimal(unit_cost),
                'unit_price': Decimal(unit_price),
            })
        return product_id

    def add_order(
        self,
        status_id: UUID,
        items: Sequence[Tuple[UUID, int]],
        created_at: Optional[datetime] = None,
        order_id: Optional[UUID] = None,
    ) -> UUID:
        """Seed an order directly, bypassing the lifecycle engine"""
        order_id = order_id or uuid.uuid4()
        order = Order(
            id=order_id,
            reseller_id=uuid.uuid4(),
            customer_id=uuid.uuid4(),
            status_id=status_id,
            created_at=created_at or datetime.now(timezone.utc),
        )
        with self.lock:
            order_items = []
            for product_id, quantity in items:
                product = self.find(self.products, 'id', product_id)
                if product is None:
                    raise ValueError(f"Product {product_id} does not exist")
                order_items.append(OrderItem(
                    id=uuid.uuid4(),
                    order_id=order_id,
                    product_id=product_id,
                    service_id=id_from_bytes(product['service_id']),
                    quantity=quantity,
                ))
            self.insert(order, order_items)
        return order_id

    def insert(self, order: Order, items: Sequence[OrderItem]):
        with self.lock:
            if self.find(self.statuses, 'id', order.status_id) is None:
                raise ValueError(f"Status {order.status_id} does not exist")
            for item in items:
                if self.find(self.products, 'id', item.product_id) is None:
                    raise ValueError(f"Product {item.product_id} does not exist")
            self.orders.append({
                'id': order.id.bytes,
                'reseller_id': order.reseller_id.bytes,
                'customer_id': order.customer_id.bytes,
                'status_id': order.status_id.bytes,
                'created_at': order.created_at,
            })
            self.order_items.extend({
                'id': item.id.bytes,
                'order_id': item.order_id.bytes,
                'product_id': item.product_id.bytes,
                'service_id': item.service_id.bytes,
                'quantity': item.quantity,
            } for item in items)


class InMemoryCatalogResolver(CatalogResolver):
    """Catalog lookups against the in-memory products table"""

    def __init__(self, backend: InMemoryBackend):
        self.backend = backend

    def get_product(self, product_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            row = self.backend.find(self.backend.products, 'id', product_id)
            if row is None:
                logger.debug(f"Product {product_id} not in catalog")
                return None
            return Product(
                id=id_from_bytes(row['id']),
                service_id=id_from_bytes(row['service_id']),
                name=row['name'],
                unit_cost=row['unit_cost'],
                unit_price=row['unit_price'],
            )


class InMemoryStatusDirectory(StatusDirectory):
    """Status lookups against the in-memory statuses table"""

    def __init__(self, backend: InMemoryBackend):
        self.backend = backend

    def get_status_id(self, name, token=None):
        check_cancelled(token)
        with self.backend.lock:
            for row in self.backend.statuses:
                if row['name'] == name:
                    return id_from_bytes(row['id'])
        return None

    def get_status_name(self, status_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            row = self.backend.find(self.backend.statuses, 'id', status_id)
            return row['name'] if row else None


class InMemoryOrderStore(OrderStore):
    """Order store over the in-memory tables"""

    def __init__(self, backend: InMemoryBackend):
        self.backend = backend

    def list_orders(self, token=None):
        check_cancelled(token)
        with self.backend.lock:
            return self._summaries(self.backend.orders)

    def _list_orders_by_status_name(self, name, token=None):
        check_cancelled(token)
        with self.backend.lock:
            status_ids = {row['id'] for row in self.backend.statuses if row['name'] == name}
            return self._summaries(
                row for row in self.backend.orders if row['status_id'] in status_ids
            )

    def list_orders_by_status_id(self, status_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            return self._summaries(
                self.backend.filter(self.backend.orders, 'status_id', status_id)
            )

    def get_order(self, order_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            row = self.backend.find(self.backend.orders, 'id', order_id)
            if row is None:
                return None
            return Order(
                id=id_from_bytes(row['id']),
                reseller_id=id_from_bytes(row['reseller_id']),
                customer_id=id_from_bytes(row['customer_id']),
                status_id=id_from_bytes(row['status_id']),
                created_at=row['created_at'],
            )

    def get_order_detail(self, order_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            row = self.backend.find(self.backend.orders, 'id', order_id)
            if row is None:
                logger.debug(f"Order {order_id} not found")
                return None
            items = [
                self._item_detail(item)
                for item in self.backend.filter(self.backend.order_items, 'order_id', order_id)
            ]
            return OrderDetail(
                id=id_from_bytes(row['id']),
                reseller_id=id_from_bytes(row['reseller_id']),
                customer_id=id_from_bytes(row['customer_id']),
                status_id=id_from_bytes(row['status_id']),
                status_name=self._status_name(row['status_id']),
                created_at=row['created_at'],
                total_cost=sum((item.total_cost for item in items), Decimal(0)),
                total_price=sum((item.total_price for item in items), Decimal(0)),
                items=items,
            )

    def insert_order(self, order, items, token=None):
        check_cancelled(token)
        self.backend.insert(order, items)

    def update_order_status(self, order_id, status_id, token=None):
        check_cancelled(token)
        with self.backend.lock:
            if self.backend.find(self.backend.statuses, 'id', status_id) is None:
                raise ValueError(f"Status {status_id} does not exist")
            row = self.backend.find(self.backend.orders, 'id', order_id)
            if row is not None:
                row['status_id'] = id_to_bytes(status_id)

    def sum_completed_profit_in_range(self, start, end, token=None):
        check_cancelled(token)
        profit = Decimal(0)
        with self.backend.lock:
            for row in self.backend.orders:
                if self._status_name(row['status_id']) != settings.COMPLETED_STATUS_NAME:
                    continue
                if not start <= row['created_at'] <= end:
                    continue
                for item in self.backend.filter(self.backend.order_items, 'order_id', row['id']):
                    product = self.backend.find(self.backend.products, 'id', item['product_id'])
                    profit += (product['unit_price'] - product['unit_cost']) * item['quantity']
        return profit

    def _status_name(self, status_id: bytes) -> str:
        return self.backend.find(self.backend.statuses, 'id', status_id)['name']

    def _summaries(self, rows: Iterable[Row]) -> List[OrderSummary]:
        summaries = []
        for row in rows:
            cost = Decimal(0)
            price = Decimal(0)
            items = self.backend.filter(self.backend.order_items, 'order_id', row['id'])
            for item in items:
                product = self.backend.find(self.backend.products, 'id', item['product_id'])
                cost += item['quantity'] * product['unit_cost']
                price += item['quantity'] * product['unit_price']
            summaries.append(OrderSummary(
                id=id_from_bytes(row['id']),
                reseller_id=id_from_bytes(row['reseller_id']),
                customer_id=id_from_bytes(row['customer_id']),
                status_id=id_from_bytes(row['status_id']),
                status_name=self._status_name(row['status_id']),
                created_at=row['created_at'],
                item_count=len(items),
                total_cost=cost,
                total_price=price,
            ))
        summaries.sort(key=lambda summary: summary.created_at, reverse=True)
        return summaries

    def _item_detail(self, item: Row) -> OrderItemDetail:
        product = self.backend.find(self.backend.products, 'id', item['product_id'])
        service = self.backend.find(self.backend.services, 'id', item['service_id'])
        quantity = item['quantity']
        return OrderItemDetail(
            id=id_from_bytes(item['id']),
            order_id=id_from_bytes(item['order_id']),
            service_id=id_from_bytes(item['service_id']),
            service_name=service['name'],
            product_id=id_from_bytes(item['product_id']),
            product_name=product['name'],
            quantity=quantity,
            unit_cost=product['unit_cost'],
            unit_price=product['unit_price'],
            total_cost=product['unit_cost'] * quantity,
            total_price=product['unit_price'] * quantity,
        )
