from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from kitchen_screen.clock import FixedClock
from kitchen_screen.runtime import build_runtime
from kitchen_screen.session import allow_listed
from kitchen_screen.web import create_app

from conftest import T0

MANAGER = "42"


@pytest.fixture
def runtime():
    return build_runtime(
        clock=FixedClock(T0),
        is_allowed=allow_listed({int(MANAGER)}),
        public_url="http://tv.local",
    )


@pytest.fixture
def client(runtime):
    # No context manager: the periodic normalizer thread stays off in tests.
    return TestClient(create_app(runtime))


def post_intent(client: TestClient, intent_type: str, payload: str | None = None, user: str = MANAGER):
    body: dict[str, object] = {"type": intent_type}
    if payload is not None:
        body["payload"] = payload
    return client.post(f"/api/sessions/{user}/intents", json=body)


def compose_order(client: TestClient, label: str = "GF-254", minutes: str = "20") -> dict:
    post_intent(client, "start")
    post_intent(client, "text", label)
    post_intent(client, "text", minutes)
    post_intent(client, "open_category", "soups")
    post_intent(client, "add_item", "Борщ")
    return post_intent(client, "submit").json()


class TestOrdersEndpoint:
    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "/api/orders" in response.text

    def test_empty_list_is_not_cached(self, client):
        response = client.get("/api/orders")

        assert response.status_code == 200
        assert response.json() == []
        assert response.headers["cache-control"] == "no-store"

    def test_submitted_order_is_listed(self, client):
        reply = compose_order(client)

        orders = client.get("/api/orders").json()

        assert reply["status"] == "submitted"
        assert len(orders) == 1
        assert orders[0]["label"] == "GF-254"
        assert orders[0]["endsAt"] == T0 + 1_200_000
        assert orders[0]["expiresAt"] == T0 + 1_500_000
        assert orders[0]["items"] == [{"name": "Борщ", "qty": 1}]

    def test_orders_drop_after_expiry(self, client, runtime):
        compose_order(client)
        runtime.clock.set(T0 + 1_500_001)

        assert client.get("/api/orders").json() == []


class TestIntentEndpoint:
    def test_flow_replies_with_view(self, client):
        reply = post_intent(client, "start").json()
        assert reply["status"] == "ok"
        assert reply["view"]["step"] == "awaiting_label"

        reply = post_intent(client, "text", "A1").json()
        assert reply["view"]["step"] == "awaiting_duration"

        reply = post_intent(client, "text", "abc").json()
        assert reply["status"] == "error"
        assert reply["reason"] == "InvalidDuration"

    def test_empty_cart_submit_is_rejected(self, client):
        post_intent(client, "start")
        post_intent(client, "text", "A1")
        post_intent(client, "text", "15")

        reply = post_intent(client, "submit").json()

        assert reply["status"] == "error"
        assert reply["reason"] == "EmptyCart"
        assert client.get("/api/orders").json() == []

    def test_unknown_user_is_denied(self, client, runtime):
        response = post_intent(client, "start", user="7")

        assert response.status_code == 200
        assert response.json()["status"] == "denied"
        assert len(runtime.registry) == 0

    def test_missing_payload_is_unprocessable(self, client):
        assert post_intent(client, "text").status_code == 422
        assert post_intent(client, "add_item").status_code == 422

    def test_unknown_intent_type_is_unprocessable(self, client):
        assert post_intent(client, "teleport").status_code == 422


class TestWebSocket:
    def test_initial_snapshot_and_update(self, client, runtime):
        with client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            assert first == {"event": "orders:update", "orders": []}

            compose_order(client, label="WS-1")
            update = ws.receive_json()

            assert update["event"] == "orders:update"
            assert [order["label"] for order in update["orders"]] == ["WS-1"]
            assert runtime.channel.observer_count == 1

        assert runtime.channel.observer_count == 0
