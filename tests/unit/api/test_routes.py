from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import walkin.api.routes.locations as locations_route
import walkin.api.routes.orders as orders_route
import walkin.api.routes.staff_orders as staff_orders_route
import walkin.api.routes.webhooks as webhooks_route
from fakes import (
    NOW,
    FakeCacheStore,
    FakeGeoTokenRepository,
    FakeLocationRepository,
    FakeMenuRepository,
    FakeOrderRepository,
    FakePaymentGateway,
    FakePublisher,
    issue_token,
    make_location,
    make_menu,
)
from walkin.api.main import app
from walkin.application.ports.payment_gateway import PaymentGatewayError, WebhookSignatureError
from walkin.application.use_cases.create_payment_intent import CreatePaymentIntent
from walkin.application.use_cases.estimate_totals import EstimateTotals
from walkin.application.use_cases.get_location import GetLocation
from walkin.application.use_cases.get_menu import GetMenu
from walkin.application.use_cases.get_order import GetCustomerOrder, GetOrder
from walkin.application.use_cases.mark_order_paid import MarkOrderPaid
from walkin.application.use_cases.place_order import PlaceOrder
from walkin.application.use_cases.reconcile_payment import ReconcilePaymentEvent
from walkin.application.use_cases.staff_queue import StaffOrderQueue
from walkin.application.use_cases.update_order_status import UpdateOrderStatus
from walkin.application.use_cases.verify_location import VerifyLocation
from walkin.domain.common.ids import OrderId
from walkin.domain.payment.events import GatewayEvent, GatewayEventKind


class Backend:
    def __init__(self) -> None:
        self.locations = FakeLocationRepository(make_location())
        self.menus = FakeMenuRepository(make_menu())
        self.tokens = FakeGeoTokenRepository()
        self.orders = FakeOrderRepository(self.tokens)
        self.publisher = FakePublisher()
        self.gateway = FakePaymentGateway()
        self.cache = FakeCacheStore()


@pytest.fixture
def backend(monkeypatch) -> Backend:
    backend = Backend()

    def clock():
        return NOW

    monkeypatch.setattr(
        locations_route, "_get_location_use_case", lambda: GetLocation(backend.locations)
    )
    monkeypatch.setattr(
        locations_route,
        "_get_menu_use_case",
        lambda: GetMenu(backend.locations, backend.menus, backend.cache),
    )
    monkeypatch.setattr(
        locations_route,
        "_verify_location_use_case",
        lambda: VerifyLocation(backend.locations, backend.tokens, clock=clock),
    )
    monkeypatch.setattr(
        locations_route,
        "_estimate_totals_use_case",
        lambda: EstimateTotals(backend.locations, backend.menus),
    )
    monkeypatch.setattr(
        orders_route,
        "_place_order_use_case",
        lambda: PlaceOrder(
            backend.locations,
            backend.menus,
            backend.tokens,
            backend.orders,
            backend.publisher,
            platform_fee_percentage=Decimal("3"),
            clock=clock,
        ),
    )
    monkeypatch.setattr(
        orders_route,
        "_get_customer_order_use_case",
        lambda: GetCustomerOrder(backend.locations, backend.orders),
    )
    monkeypatch.setattr(
        orders_route,
        "_create_payment_intent_use_case",
        lambda: CreatePaymentIntent(backend.locations, backend.orders, backend.gateway),
    )
    monkeypatch.setattr(
        staff_orders_route, "_staff_queue_use_case", lambda: StaffOrderQueue(backend.orders)
    )
    monkeypatch.setattr(staff_orders_route, "_get_order_use_case", lambda: GetOrder(backend.orders))
    monkeypatch.setattr(
        staff_orders_route,
        "_update_order_status_use_case",
        lambda: UpdateOrderStatus(backend.orders, backend.publisher, clock=clock),
    )
    monkeypatch.setattr(
        staff_orders_route,
        "_mark_order_paid_use_case",
        lambda: MarkOrderPaid(backend.orders, backend.publisher, clock=clock),
    )
    monkeypatch.setattr(
        webhooks_route,
        "_reconcile_payment_use_case",
        lambda: ReconcilePaymentEvent(backend.orders, backend.gateway, backend.publisher),
    )
    return backend


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _place(client: TestClient, backend: Backend, payment_method: str = "cash") -> dict:
    response = client.post(
        "/v1/locations/DEMO01/orders",
        json={
            "geoToken": issue_token(backend.tokens),
            "paymentMethod": payment_method,
            "items": [{"menuItemId": "itm_001", "quantity": 2}],
        },
    )
    assert response.status_code == 201
    return response.json()


def test_location_and_menu_with_etag(client, backend) -> None:
    location = client.get("/v1/locations/demo01")
    menu = client.get("/v1/locations/DEMO01/menu")
    not_modified = client.get(
        "/v1/locations/DEMO01/menu", headers={"If-None-Match": menu.headers["ETag"]}
    )

    assert location.status_code == 200
    assert location.json()["publicCode"] == "DEMO01"
    assert menu.status_code == 200
    assert menu.headers["ETag"] == '"menu-men_001-v1"'
    assert not_modified.status_code == 304


def test_unknown_location_returns_error_envelope(client, backend) -> None:
    response = client.get("/v1/locations/NOPE")

    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "LOCATION_NOT_FOUND"
    assert body["requestId"] == response.headers["X-Request-Id"]


def test_verify_then_place_order(client, backend) -> None:
    verify = client.post(
        "/v1/locations/DEMO01/verify",
        json={"latitude": 40.7129, "longitude": -74.0060},
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    assert verify.status_code == 200
    token = verify.json()["geoToken"]
    assert backend.tokens.tokens[token].ip_address == "203.0.113.9"

    placed = client.post(
        "/v1/locations/DEMO01/orders",
        json={
            "geoToken": token,
            "paymentMethod": "cash",
            "items": [{"menuItemId": "itm_001", "quantity": 1}],
        },
    )
    reused = client.post(
        "/v1/locations/DEMO01/orders",
        json={
            "geoToken": token,
            "paymentMethod": "cash",
            "items": [{"menuItemId": "itm_001", "quantity": 1}],
        },
    )

    assert placed.status_code == 201
    assert placed.json()["orderNumber"] == 1
    assert reused.status_code == 400
    assert reused.json()["error"]["code"] == "INVALID_GEO_TOKEN"


def test_verify_out_of_range(client, backend) -> None:
    response = client.post("/v1/locations/DEMO01/verify", json={"latitude": 40.73, "longitude": -74.0})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "GEOFENCE_OUT_OF_RANGE"
    assert error["details"]["allowedRadiusMeters"] == 100


def test_verify_rejects_invalid_coordinates(client, backend) -> None:
    response = client.post("/v1/locations/DEMO01/verify", json={"latitude": 91, "longitude": 0})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REQUEST"


def test_calculate_total(client, backend) -> None:
    response = client.post(
        "/v1/locations/DEMO01/calculate-total",
        json={"items": [{"menuItemId": "itm_001", "quantity": 2}]},
    )

    assert response.status_code == 200
    assert response.json() == {
        "subtotalCents": 2998,
        "taxCents": 210,
        "tipCents": 0,
        "totalCents": 3208,
        "currency": "USD",
    }


def test_unknown_menu_item(client, backend) -> None:
    response = client.post(
        "/v1/locations/DEMO01/orders",
        json={
            "geoToken": issue_token(backend.tokens),
            "paymentMethod": "cash",
            "items": [{"menuItemId": "itm_missing", "quantity": 1}],
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MENU_ITEM_NOT_FOUND"


def test_customer_reads_order_and_status(client, backend) -> None:
    order = _place(client, backend)

    detail = client.get(f"/v1/locations/DEMO01/orders/{order['orderId']}")
    status = client.get(f"/v1/locations/DEMO01/orders/{order['orderId']}/status")

    assert detail.json()["total"]["amountCents"] == 3208
    assert status.json()["status"] == "placed"
    assert client.get("/v1/locations/DEMO01/orders/ord_missing").status_code == 404


def test_staff_status_updates_and_errors(client, backend) -> None:
    order = _place(client, backend)
    base = f"/v1/staff/orders/{order['orderId']}"

    skipped = client.patch(f"{base}/status", json={"status": "preparing"})
    no_reason = client.patch(f"{base}/status", json={"status": "cancelled"})
    cancelled = client.patch(
        f"{base}/status", json={"status": "cancelled", "cancelledReason": "customer left"}
    )
    unknown_status = client.patch(f"{base}/status", json={"status": "lost"})

    assert skipped.status_code == 409
    assert skipped.json()["error"]["code"] == "INVALID_ORDER_TRANSITION"
    assert no_reason.status_code == 400
    assert no_reason.json()["error"]["code"] == "CANCEL_REASON_REQUIRED"
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelledReason"] == "customer left"
    assert unknown_status.status_code == 400


def test_staff_mark_paid_twice(client, backend) -> None:
    order = _place(client, backend)
    base = f"/v1/staff/orders/{order['orderId']}"

    first = client.patch(f"{base}/mark-paid")
    second = client.patch(f"{base}/mark-paid")

    assert first.status_code == 200
    assert first.json()["paymentStatus"] == "paid"
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ORDER_ALREADY_PAID"


def test_staff_queue(client, backend) -> None:
    _place(client, backend)
    _place(client, backend)

    response = client.get("/v1/staff/locations/loc_001/orders?status=active&limit=1")
    invalid = client.get("/v1/staff/locations/loc_001/orders?status=eaten")

    assert response.status_code == 200
    assert len(response.json()["orders"]) == 1
    assert response.json()["nextCursor"] is not None
    assert invalid.json()["error"]["code"] == "INVALID_QUEUE_FILTER"
    assert client.get(f"/v1/staff/orders/{response.json()['orders'][0]['orderId']}").status_code == 200


def test_card_payment_intent_and_webhook(client, backend) -> None:
    order = _place(client, backend, payment_method="card")

    intent = client.post(f"/v1/locations/DEMO01/orders/{order['orderId']}/payment-intent")
    assert intent.status_code == 200
    assert intent.json() == {"clientSecret": "pi_001_secret", "paymentIntentId": "pi_001"}

    backend.gateway.event = GatewayEvent(
        event_id="evt_001",
        event_type="payment_intent.succeeded",
        kind=GatewayEventKind.PAYMENT_CAPTURED,
        order_id=order["orderId"],
        payment_intent_id="pi_001",
        charge_id="ch_001",
    )
    first = client.post("/v1/payments/webhook", content=b"{}", headers={"Stripe-Signature": "t=1"})
    second = client.post("/v1/payments/webhook", content=b"{}", headers={"Stripe-Signature": "t=1"})

    assert first.json()["outcome"] == "applied"
    assert second.status_code == 200
    assert second.json()["outcome"] == "duplicate"
    assert len(backend.orders.fees) == 1


def test_webhook_acknowledges_capture_when_fee_lookup_fails(client, backend) -> None:
    order = _place(client, backend, payment_method="card")
    client.post(f"/v1/locations/DEMO01/orders/{order['orderId']}/payment-intent")

    backend.gateway.fee_error = PaymentGatewayError("could not read fees for charge ch_001")
    backend.gateway.event = GatewayEvent(
        event_id="evt_010",
        event_type="payment_intent.succeeded",
        kind=GatewayEventKind.PAYMENT_CAPTURED,
        order_id=order["orderId"],
        payment_intent_id="pi_001",
        charge_id="ch_001",
    )

    response = client.post("/v1/payments/webhook", content=b"{}", headers={"Stripe-Signature": "t=1"})

    assert response.status_code == 200
    assert response.json()["outcome"] == "applied"
    fee = backend.orders.fees[order["orderId"]]
    assert fee.gateway_fee_cents == 0
    assert fee.gateway_balance_transaction_id is None
    assert backend.orders.get(OrderId(order["orderId"])).payment_status.value == "paid"


def test_webhook_acknowledges_when_order_keeps_changing(client, backend) -> None:
    order = _place(client, backend, payment_method="card")
    client.post(f"/v1/locations/DEMO01/orders/{order['orderId']}/payment-intent")

    backend.orders.conflicts_to_raise = 3
    backend.gateway.event = GatewayEvent(
        event_id="evt_011",
        event_type="payment_intent.succeeded",
        kind=GatewayEventKind.PAYMENT_CAPTURED,
        order_id=order["orderId"],
        payment_intent_id="pi_001",
        charge_id="ch_001",
    )

    response = client.post("/v1/payments/webhook", content=b"{}", headers={"Stripe-Signature": "t=1"})

    assert response.status_code == 200
    assert response.json()["outcome"] == "conflict"
    assert backend.orders.fees == {}


def test_payment_intent_for_cash_order(client, backend) -> None:
    order = _place(client, backend)

    response = client.post(f"/v1/locations/DEMO01/orders/{order['orderId']}/payment-intent")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "PAYMENT_METHOD_NOT_ALLOWED"


def test_webhook_with_bad_signature(client, backend, monkeypatch) -> None:
    def _reject(payload: bytes, signature: str | None):
        raise WebhookSignatureError("webhook signature verification failed")

    monkeypatch.setattr(backend.gateway, "parse_event", _reject)

    response = client.post("/v1/payments/webhook", content=b"{}", headers={"Stripe-Signature": "x"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "WEBHOOK_SIGNATURE_INVALID"
