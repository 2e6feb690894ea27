"""Integration tests for the FastAPI order routes, backed by the in-memory engine."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from order_api.routes import cancel_on_disconnect, create_app, request_cancellation
from order_api.services.lifecycle import get_order_engine
from order_api.utils.cancellation import CancellationToken
from order_api.utils.config import Settings


@pytest.fixture()
def client(engine):
    app = create_app()
    app.dependency_overrides[get_order_engine] = lambda: engine
    return TestClient(app)


def order_payload(*items):
    return {
        "resellerId": str(uuid.uuid4()),
        "customerId": str(uuid.uuid4()),
        "items": [{"productId": str(product_id), "quantity": quantity} for product_id, quantity in items],
    }


class TestReadEndpoints:
    def test_list_orders(self, client, backend, email_product_id, status_ids):
        backend.add_order(status_ids["Created"], [(email_product_id, 3)])

        response = client.get("/orders")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert Decimal(str(data[0]["total_cost"])) == Decimal("2.4")
        assert Decimal(str(data[0]["total_price"])) == Decimal("2.7")
        assert data[0]["item_count"] == 1

    def test_get_order(self, client, backend, email_product_id, status_ids):
        order_id = backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(order_id)
        assert data["items"][0]["product_name"] == "100GB Mailbox"

    def test_get_unknown_order(self, client):
        response = client.get(f"/orders/{uuid.uuid4()}")
        assert response.status_code == 404

    def test_orders_by_status(self, client, backend, email_product_id, status_ids):
        in_progress = backend.add_order(status_ids["In Progress"], [(email_product_id, 1)])
        backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        by_name = client.get("/orders/status", params={"statusName": "In Progress"})
        by_id = client.get("/orders/status", params={"statusId": str(status_ids["In Progress"])})

        assert [o["id"] for o in by_name.json()] == [str(in_progress)]
        assert [o["id"] for o in by_id.json()] == [str(in_progress)]

    def test_status_id_wins_over_name(self, client, backend, email_product_id, status_ids):
        created = backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        response = client.get(
            "/orders/status",
            params={"statusId": str(status_ids["Created"]), "statusName": "Completed"},
        )

        assert [o["id"] for o in response.json()] == [str(created)]

    @pytest.mark.parametrize("params", [{}, {"statusName": "  "}, {"statusId": "not-a-guid"}])
    def test_orders_by_status_without_usable_filter(self, client, backend, email_product_id, status_ids, params):
        backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        response = client.get("/orders/status", params=params)

        assert response.status_code == 200
        assert response.json() == []

    def test_profit(self, client, backend, email_product_id, status_ids):
        backend.add_order(
            status_ids["Completed"],
            [(email_product_id, 2)],
            created_at=datetime.now(timezone.utc) - timedelta(days=2),
        )

        response = client.get("/orders/profit")

        assert response.status_code == 200
        assert Decimal(str(response.json()["profit"])) == Decimal("0.2")
        assert isinstance(response.json()["profit"], float)

    def test_profit_without_orders(self, client):
        response = client.get("/orders/profit")

        assert response.status_code == 200
        assert Decimal(str(response.json()["profit"])) == Decimal(0)


class TestCreateOrderEndpoint:
    def test_create_order(self, client, engine, email_product_id):
        response = client.post("/orders", json=order_payload((email_product_id, 1)))

        assert response.status_code == 201
        order_id = response.json()["order_id"]
        assert response.headers["location"] == f"/orders/{order_id}"

        order = engine.get_order_detail(uuid.UUID(order_id))
        assert order.status_name == "Created"
        assert order.total_price == Decimal("0.90")

    def test_validation_errors(self, client, backend, email_product_id):
        payload = order_payload((email_product_id, 0), (email_product_id, 251))
        payload["customerId"] = str(uuid.UUID(int=0))

        response = client.post("/orders", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "One or more validation errors occurred."
        assert body["errors"]["customer_id"] == ["Customer id is empty"]
        assert body["errors"]["quantity"] == [
            "Quantity must be greater than zero",
            "Quantity must be less than or equal to 250",
        ]
        assert backend.orders == []

    def test_empty_items(self, client):
        response = client.post("/orders", json=order_payload())

        assert response.status_code == 400
        assert "items" in response.json()["errors"]

    def test_unknown_product(self, client, backend):
        missing = uuid.uuid4()

        response = client.post("/orders", json=order_payload((missing, 1)))

        assert response.status_code == 400
        assert response.json()["detail"] == f"Product with ID {missing} not found."
        assert backend.orders == []


class TestUpdateStatusEndpoint:
    def test_update_then_no_change(self, client, backend, email_product_id, status_ids):
        order_id = backend.add_order(status_ids["In Progress"], [(email_product_id, 1)])

        first = client.patch(f"/orders/{order_id}/status", json={"newStatusName": "Completed"})
        second = client.patch(f"/orders/{order_id}/status", json={"newStatusName": "Completed"})

        assert first.status_code == 204
        assert second.status_code == 204

    def test_update_by_id(self, client, backend, email_product_id, status_ids):
        order_id = backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        response = client.patch(
            f"/orders/{order_id}/status",
            json={"newStatusId": str(status_ids["Completed"])},
        )

        assert response.status_code == 204
        assert client.get(f"/orders/{order_id}").json()["status_name"] == "Completed"

    def test_unknown_order(self, client):
        response = client.patch(f"/orders/{uuid.uuid4()}/status", json={"newStatusName": "Completed"})
        assert response.status_code == 404

    def test_invalid_status(self, client, backend, email_product_id, status_ids):
        order_id = backend.add_order(status_ids["Created"], [(email_product_id, 1)])

        unknown = client.patch(f"/orders/{order_id}/status", json={"newStatusName": "Shipped"})
        empty = client.patch(f"/orders/{order_id}/status", json={})

        assert unknown.status_code == 400
        assert unknown.json()["detail"] == "Status not found"
        assert empty.status_code == 400


class FakeRequest:
    method = "GET"

    class url:
        path = "/orders"

    def __init__(self, disconnected=False):
        self.disconnected = disconnected

    async def is_disconnected(self):
        return self.disconnected


class TestRequestCancellation:
    @pytest.fixture()
    def cancelled_client(self, client):
        token = CancellationToken()
        token.cancel()
        client.app.dependency_overrides[request_cancellation] = lambda: token
        return client

    @pytest.mark.parametrize("method, path, payload", [
        ("get", "/orders", None),
        ("get", "/orders/status?statusName=Created", None),
        ("get", "/orders/profit", None),
        ("get", f"/orders/{uuid.uuid4()}", None),
        ("patch", f"/orders/{uuid.uuid4()}/status", {"newStatusName": "Completed"}),
    ])
    def test_cancelled_request_returns_499(self, cancelled_client, method, path, payload):
        kwargs = {"json": payload} if payload is not None else {}

        response = getattr(cancelled_client, method)(path, **kwargs)

        assert response.status_code == 499
        assert response.json()["detail"] == "Operation was cancelled."

    def test_cancelled_create_writes_nothing(self, cancelled_client, backend, email_product_id):
        response = cancelled_client.post("/orders", json=order_payload((email_product_id, 1)))

        assert response.status_code == 499
        assert backend.orders == []

    def test_disconnect_cancels_token(self):
        token = CancellationToken()

        asyncio.run(cancel_on_disconnect(FakeRequest(disconnected=True), token, poll_interval=0))

        assert token.cancelled

    def test_timeout_cancels_token(self):
        async def run():
            dependency = request_cancellation(FakeRequest(), Settings(REQUEST_TIMEOUT_SECONDS=0.01))
            token = await dependency.__anext__()
            await asyncio.sleep(0.1)
            await dependency.aclose()
            return token

        assert asyncio.run(run()).cancelled

    def test_token_untouched_without_timeout_or_disconnect(self):
        async def run():
            dependency = request_cancellation(FakeRequest(), Settings(REQUEST_TIMEOUT_SECONDS=None))
            token = await dependency.__anext__()
            await asyncio.sleep(0.05)
            await dependency.aclose()
            return token

        assert not asyncio.run(run()).cancelled
