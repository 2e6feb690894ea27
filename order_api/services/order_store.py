"""
Order Store

Persisted orders and their line items. Provides the listing, detail and
aggregation reads the lifecycle engine needs, plus the two writes it is
allowed to make: inserting a new order and changing an order's status.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import psycopg2

from order_api.models.domain import (
    Order,
    OrderDetail,
    OrderItem,
    OrderItemDetail,
    OrderSummary,
)
from order_api.utils.cancellation import CancellationToken
from order_api.utils.config import settings
from order_api.utils.database import Database, get_db
from order_api.utils.identifiers import id_from_bytes

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    """Storage abstraction for orders and line items"""

    @abstractmethod
    def list_orders(self, token: Optional[CancellationToken] = None) -> List[OrderSummary]:
        """All order summaries, newest first"""

    def list_orders_by_status_name(
        self,
        name: Optional[str],
        token: Optional[CancellationToken] = None
    ) -> List[OrderSummary]:
        """Summaries of orders whose status has this name; blank names match nothing"""
        if name is None or not name.strip():
            return []
        return self._list_orders_by_status_name(name, token=token)

    @abstractmethod
    def _list_orders_by_status_name(self, name: str, token=None) -> List[OrderSummary]:
        pass

    @abstractmethod
    def list_orders_by_status_id(
        self,
        status_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> List[OrderSummary]:
        """Summaries of orders in the given status, newest first"""

    @abstractmethod
    def get_order(self, order_id: UUID, token: Optional[CancellationToken] = None) -> Optional[Order]:
        """Order header, or None"""

    @abstractmethod
    def get_order_detail(
        self,
        order_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> Optional[OrderDetail]:
        """Order with totals and expanded items, or None"""

    @abstractmethod
    def insert_order(
        self,
        order: Order,
        items: Sequence[OrderItem],
        token: Optional[CancellationToken] = None
    ) -> None:
        """Persist an order header and all its items atomically"""

    @abstractmethod
    def update_order_status(
        self,
        order_id: UUID,
        status_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> None:
        """Set the status of an order"""

    @abstractmethod
    def sum_completed_profit_in_range(
        self,
        start: datetime,
        end: datetime,
        token: Optional[CancellationToken] = None
    ) -> Decimal:
        """Profit of completed orders created within [start, end]; zero when none match"""


class PostgresOrderStore(OrderStore):
    """Order store backed by PostgreSQL"""

    SUMMARY_QUERY = """
        SELECT o.id, o.reseller_id, o.customer_id, o.status_id,
               s.name AS status_name, o.created_at,
               COUNT(i.id) AS item_count,
               COALESCE(SUM(i.quantity * p.unit_cost), 0) AS total_cost,
               COALESCE(SUM(i.quantity * p.unit_price), 0) AS total_price
        FROM orders o
        JOIN statuses s ON s.id = o.status_id
        LEFT JOIN order_items i ON i.order_id = o.id
        LEFT JOIN products p ON p.id = i.product_id
        {where}
        GROUP BY o.id, s.name
        ORDER BY o.created_at DESC
    """

    def __init__(self, database: Optional[Database] = None):
        self.db = database or get_db()

    def list_orders(self, token=None):
        rows = self.db.execute_query(self.SUMMARY_QUERY.format(where=""), token=token)
        return [self._to_summary(row) for row in rows]

    def _list_orders_by_status_name(self, name, token=None):
        rows = self.db.execute_query(
            self.SUMMARY_QUERY.format(where="WHERE s.name = %s"),
            (name,),
            token=token
        )
        return [self._to_summary(row) for row in rows]

    def list_orders_by_status_id(self, status_id, token=None):
        rows = self.db.execute_query(
            self.SUMMARY_QUERY.format(where="WHERE o.status_id = %s"),
            (psycopg2.Binary(status_id.bytes),),
            token=token
        )
        return [self._to_summary(row) for row in rows]

    def get_order(self, order_id, token=None):
        query = """
            SELECT id, reseller_id, customer_id, status_id, created_at
            FROM orders
            WHERE id = %s
        """
        row = self.db.execute_query(
            query, (psycopg2.Binary(order_id.bytes),), fetch_one=True, token=token
        )
        if not row:
            return None
        return Order(
            id=id_from_bytes(row['id']),
            reseller_id=id_from_bytes(row['reseller_id']),
            customer_id=id_from_bytes(row['customer_id']),
            status_id=id_from_bytes(row['status_id']),
            created_at=row['created_at'],
        )

    def get_order_detail(self, order_id, token=None):
        order_id_param = psycopg2.Binary(order_id.bytes)

        header_query = """
            SELECT o.id, o.reseller_id, o.customer_id, o.status_id,
                   s.name AS status_name, o.created_at
            FROM orders o
            JOIN statuses s ON s.id = o.status_id
            WHERE o.id = %s
        """
        # Service name comes from the item's own service_id snapshot
        items_query = """
            SELECT i.id, i.order_id, i.product_id, i.service_id, i.quantity,
                   p.name AS product_name, sv.name AS service_name,
                   p.unit_cost, p.unit_price
            FROM order_items i
            JOIN products p ON p.id = i.product_id
            JOIN services sv ON sv.id = i.service_id
            WHERE i.order_id = %s
            ORDER BY i.id
        """

        with self.db.get_cursor(token=token) as cursor:
            cursor.execute(header_query, (order_id_param,))
            header = cursor.fetchone()
            if not header:
                logger.debug(f"Order {order_id} not found")
                return None
            cursor.execute(items_query, (order_id_param,))
            item_rows = cursor.fetchall()

        items = [self._to_item_detail(row) for row in item_rows]
        return OrderDetail(
            id=id_from_bytes(header['id']),
            reseller_id=id_from_bytes(header['reseller_id']),
            customer_id=id_from_bytes(header['customer_id']),
            status_id=id_from_bytes(header['status_id']),
            status_name=header['status_name'],
            created_at=header['created_at'],
            total_cost=sum((item.total_cost for item in items), Decimal(0)),
            total_price=sum((item.total_price for item in items), Decimal(0)),
            items=items,
        )

    def insert_order(self, order, items, token=None):
        order_query = """
            INSERT INTO orders (id, reseller_id, customer_id, status_id, created_at)
            VALUES (%s, %s, %s, %s, %s)
        """
        item_query = """
            INSERT INTO order_items (id, order_id, product_id, service_id, quantity)
            VALUES (%s, %s, %s, %s, %s)
        """
        item_params = [
            (
                psycopg2.Binary(item.id.bytes),
                psycopg2.Binary(item.order_id.bytes),
                psycopg2.Binary(item.product_id.bytes),
                psycopg2.Binary(item.service_id.bytes),
                item.quantity,
            )
            for item in items
        ]

        # One connection, one transaction: header and items commit together
        with self.db.get_cursor(dict_cursor=False, token=token) as cursor:
            cursor.execute(order_query, (
                psycopg2.Binary(order.id.bytes),
                psycopg2.Binary(order.reseller_id.bytes),
                psycopg2.Binary(order.customer_id.bytes),
                psycopg2.Binary(order.status_id.bytes),
                order.created_at,
            ))
            cursor.executemany(item_query, item_params)

        logger.debug(f"Inserted order {order.id} with {len(item_params)} items")

    def update_order_status(self, order_id, status_id, token=None):
        self.db.execute_update(
            "UPDATE orders SET status_id = %s WHERE id = %s",
            (psycopg2.Binary(status_id.bytes), psycopg2.Binary(order_id.bytes)),
            token=token
        )

    def sum_completed_profit_in_range(self, start, end, token=None):
        query = """
            SELECT COALESCE(SUM((p.unit_price - p.unit_cost) * i.quantity), 0) AS profit
            FROM orders o
            JOIN statuses s ON s.id = o.status_id
            JOIN order_items i ON i.order_id = o.id
            JOIN products p ON p.id = i.product_id
            WHERE s.name = %s
            AND o.created_at >= %s
            AND o.created_at <= %s
        """
        row = self.db.execute_query(
            query,
            (settings.COMPLETED_STATUS_NAME, start, end),
            fetch_one=True,
            token=token
        )
        if not row or row['profit'] is None:
            return Decimal(0)
        return Decimal(row['profit'])

    @staticmethod
    def _to_summary(row: Dict[str, Any]) -> OrderSummary:
        return OrderSummary(
            id=id_from_bytes(row['id']),
            reseller_id=id_from_bytes(row['reseller_id']),
            customer_id=id_from_bytes(row['customer_id']),
            status_id=id_from_bytes(row['status_id']),
            status_name=row['status_name'],
            created_at=row['created_at'],
            item_count=row['item_count'],
            total_cost=row['total_cost'],
            total_price=row['total_price'],
        )

    @staticmethod
    def _to_item_detail(row: Dict[str, Any]) -> OrderItemDetail:
        quantity = row['quantity']
        return OrderItemDetail(
            id=id_from_bytes(row['id']),
            order_id=id_from_bytes(row['order_id']),
            service_id=id_from_bytes(row['service_id']),
            service_name=row['service_name'],
            product_id=id_from_bytes(row['product_id']),
            product_name=row['product_name'],
            quantity=quantity,
            unit_cost=row['unit_cost'],
            unit_price=row['unit_price'],
            total_cost=row['unit_cost'] * quantity,
            total_price=row['unit_price'] * quantity,
        )
