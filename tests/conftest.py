"""Shared fixtures: an in-memory backend seeded with the email catalog."""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from order_api.services.lifecycle import OrderLifecycleEngine
from order_api.services.memory import (
    InMemoryBackend,
    InMemoryCatalogResolver,
    InMemoryOrderStore,
    InMemoryStatusDirectory,
)


@pytest.fixture
def backend():
    return InMemoryBackend.with_standard_statuses()


@pytest.fixture
def statuses(backend):
    return InMemoryStatusDirectory(backend)


@pytest.fixture
def store(backend):
    return InMemoryOrderStore(backend)


@pytest.fixture
def engine(backend, store, statuses):
    return OrderLifecycleEngine(
        orders=store,
        catalog=InMemoryCatalogResolver(backend),
        statuses=statuses,
    )


@pytest.fixture
def email_service_id(backend):
    return backend.add_service("Email")


@pytest.fixture
def email_product_id(backend, email_service_id):
    return backend.add_product(email_service_id, "100GB Mailbox", Decimal("0.80"), Decimal("0.90"))


@pytest.fixture
def status_ids(statuses):
    return {
        name: statuses.get_status_id(name)
        for name in ("Created", "In Progress", "Completed", "Failed")
    }
