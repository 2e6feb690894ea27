"""
Status Directory

Resolves order statuses by name or identifier.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

import psycopg2

from order_api.models.domain import StatusById, StatusByName, StatusRef
from order_api.utils.cancellation import CancellationToken
from order_api.utils.database import Database, get_db
from order_api.utils.identifiers import id_from_bytes

logger = logging.getLogger(__name__)


class StatusDirectory(ABC):
    """Lookup of status records"""

    @abstractmethod
    def get_status_id(
        self,
        name: str,
        token: Optional[CancellationToken] = None
    ) -> Optional[UUID]:
        """Return the id of the status with this exact name, or None"""

    @abstractmethod
    def get_status_name(
        self,
        status_id: UUID,
        token: Optional[CancellationToken] = None
    ) -> Optional[str]:
        """Return the name of the status with this id, or None"""

    def resolve(
        self,
        ref: StatusRef,
        token: Optional[CancellationToken] = None
    ) -> Optional[UUID]:
        """
        Resolve a status reference to a status id.

        By-name references are looked up by name; by-id references are
        confirmed to exist. Returns None when the status does not resolve.
        """
        if isinstance(ref, StatusByName):
            return self.get_status_id(ref.name, token=token)
        if isinstance(ref, StatusById):
            name = self.get_status_name(ref.status_id, token=token)
            if name is None or not name.strip():
                return None
            return ref.status_id
        raise TypeError(f"Unsupported status reference: {ref!r}")


class PostgresStatusDirectory(StatusDirectory):
    """Status lookups against the statuses table"""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or get_db()

    def get_status_id(self, name, token=None):
        row = self.db.execute_query(
            "SELECT id FROM statuses WHERE name = %s",
            (name,),
            fetch_one=True,
            token=token
        )
        return id_from_bytes(row['id']) if row else None

    def get_status_name(self, status_id, token=None):
        row = self.db.execute_query(
            "SELECT name FROM statuses WHERE id = %s",
            (psycopg2.Binary(status_id.bytes),),
            fetch_one=True,
            token=token
        )
        return row['name'] if row else None
