"""
Catalog Resolver

Looks up products and their owning services for pricing and creating orders.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional
from uuid import UUID

import psycopg2

from order_api.models.domain import Product
from order_api.utils.cancellation import CancellationToken
from order_api.utils.database import Database, get_db
from order_api.utils.identifiers import id_from_bytes

logger = logging.getLogger(__name__)


class CatalogResolver(ABC):
    """Read access to the product/service catalog"""

    @abstractmethod
    def get_product(
        self,
        product_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> Optional[Product]:
        """Return the product with the given id, or None"""

    def get_service_id(
        self,
        product_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> Optional[UUID]:
        """Return the id of the service that owns a product, or None"""
        product = self.get_product(product_id, token=token)
        return product.service_id if product else None

    def resolve_service_ids(
        self,
        product_ids: Iterable[UUID],
        token: Optional[CancellationToken] = None
    ) -> Dict[UUID, Optional[UUID]]:
        """
        Resolve every distinct product id to its service id.

        Products missing from the catalog map to None.
        """
        resolved: Dict[UUID, Optional[UUID]] = {}
        for product_id in product_ids:
            if product_id not in resolved:
                resolved[product_id] = self.get_service_id(product_id, token=token)
        return resolved


class PostgresCatalogResolver(CatalogResolver):
    """Catalog lookups against the products table"""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or get_db()

    def get_product(self, product_id, token=None):
        query = """
            SELECT id, service_id, name, unit_cost, unit_price
            FROM products
            WHERE id = %s
        """
        row = self.db.execute_query(
            query, (psycopg2.Binary(product_id.bytes),), fetch_one=True, token=token
        )
        if not row:
            logger.debug(f"Product {product_id} not in catalog")
            return None

        return Product(
            id=id_from_bytes(row['id']),
            service_id=id_from_bytes(row['service_id']),
            name=row['name'],
            unit_cost=row['unit_cost'],
            unit_price=row['unit_price'],
        )

    def get_service_id(self, product_id, token=None):
        query = "SELECT service_id FROM products WHERE id = %s"
        row = self.db.execute_query(
            query, (psycopg2.Binary(product_id.bytes),), fetch_one=True, token=token
        )
        return id_from_bytes(row['service_id']) if row else None
