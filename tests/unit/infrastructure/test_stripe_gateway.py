from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest
import stripe

from walkin.application.ports.payment_gateway import (
    PaymentGatewayError,
    PaymentGatewayUnavailableError,
    WebhookSignatureError,
)
from walkin.domain.common.ids import LocationId, MenuItemId, OrderId, OrderItemId
from walkin.domain.common.money import Money
from walkin.domain.order.entities import OrderItem, PaymentMethod, create_placed_order
from walkin.domain.payment.events import GatewayEventKind
from walkin.infrastructure.payments.stripe_gateway import StripePaymentGateway, to_gateway_event

WEBHOOK_SECRET = "whsec_test_secret"


def _gateway(**overrides: Any) -> StripePaymentGateway:
    values: dict[str, Any] = {
        "secret_key": "sk_test_123",
        "webhook_secret": WEBHOOK_SECRET,
        "statement_descriptor": "MAIN STREET DINER ORDERS",
    }
    values.update(overrides)
    return StripePaymentGateway(**values)


def _order():
    return create_placed_order(
        order_id=OrderId("ord_001"),
        location_id=LocationId("loc_001"),
        items=[
            OrderItem(
                item_id=OrderItemId("oit_001"),
                menu_item_id=MenuItemId("itm_001"),
                name="Classic Burger",
                quantity=1,
                unit_price=Money(amount_cents=1499, currency="USD"),
                line_total=Money(amount_cents=1499, currency="USD"),
            )
        ],
        payment_method=PaymentMethod.CARD,
        tax_rate=Decimal("0.07"),
        tip_cents=0,
        now=datetime(2026, 10, 1, 16, 30, tzinfo=timezone.utc),
    )


def _signed(payload: dict[str, Any], secret: str = WEBHOOK_SECRET, timestamp: int | None = None):
    body = json.dumps(payload)
    timestamp = timestamp if timestamp is not None else int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{body}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return body.encode("utf-8"), f"t={timestamp},v1={signature}"


def _succeeded_event() -> dict[str, Any]:
    return {
        "id": "evt_001",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": "pi_001",
                "object": "payment_intent",
                "latest_charge": "ch_001",
                "metadata": {"order_id": "ord_001", "order_number": "1"},
            }
        },
    }


def test_create_payment_intent_sends_amount_metadata_and_idempotency_key(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []

    def _create(**kwargs: Any):
        calls.append(kwargs)
        return SimpleNamespace(id="pi_001", client_secret="pi_001_secret_abc")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)
    order = _order()

    handle = _gateway().create_payment_intent(order, None, None)

    assert handle.payment_intent_id == "pi_001"
    assert handle.client_secret == "pi_001_secret_abc"
    params = calls[0]
    assert params["amount"] == order.total.amount_cents
    assert params["currency"] == "usd"
    assert params["metadata"]["order_id"] == "ord_001"
    assert params["api_key"] == "sk_test_123"
    assert params["idempotency_key"] == "order-ord_001-v1"
    assert len(params["statement_descriptor_suffix"]) <= 22
    assert "transfer_data" not in params


def test_create_payment_intent_routes_funds_to_connected_account(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "create",
        lambda **kwargs: calls.append(kwargs) or SimpleNamespace(id="pi_1", client_secret="s"),
    )

    _gateway().create_payment_intent(_order(), 48, "acct_123")

    assert calls[0]["transfer_data"] == {"destination": "acct_123"}
    assert calls[0]["application_fee_amount"] == 48


def test_create_payment_intent_wraps_stripe_errors(monkeypatch) -> None:
    def _fail(**kwargs: Any):
        raise stripe.StripeError("card declined")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _fail)

    with pytest.raises(PaymentGatewayError):
        _gateway().create_payment_intent(_order(), None, None)


def test_missing_secret_key_means_card_payments_unavailable() -> None:
    with pytest.raises(PaymentGatewayUnavailableError):
        _gateway(secret_key=None).create_payment_intent(_order(), None, None)


def test_charge_fee_reads_expanded_balance_transaction(monkeypatch) -> None:
    seen: dict[str, Any] = {}

    def _retrieve(charge_id: str, **kwargs: Any):
        seen.update(kwargs, charge_id=charge_id)
        return SimpleNamespace(balance_transaction=SimpleNamespace(id="txn_001", fee=137))

    monkeypatch.setattr(stripe.Charge, "retrieve", _retrieve)

    fee = _gateway().get_charge_fee("ch_001")

    assert fee.fee_cents == 137
    assert fee.balance_transaction_id == "txn_001"
    assert seen["charge_id"] == "ch_001"
    assert seen["expand"] == ["balance_transaction"]


def test_charge_fee_lookup_failure_raises_gateway_error(monkeypatch) -> None:
    def _fail(charge_id: str, **kwargs: Any):
        raise stripe.StripeError("api down")

    monkeypatch.setattr(stripe.Charge, "retrieve", _fail)

    with pytest.raises(PaymentGatewayError):
        _gateway().get_charge_fee("ch_001")


def test_parse_event_verifies_signature() -> None:
    payload, signature = _signed(_succeeded_event())

    event = _gateway().parse_event(payload, signature)

    assert event.kind == GatewayEventKind.PAYMENT_CAPTURED
    assert event.event_id == "evt_001"
    assert event.order_id == "ord_001"
    assert event.payment_intent_id == "pi_001"
    assert event.charge_id == "ch_001"


@pytest.mark.parametrize(
    "signature",
    [
        None,
        "",
        "t=1,v1=deadbeef",
        _signed(_succeeded_event(), secret="whsec_other")[1],
    ],
)
def test_parse_event_rejects_bad_signatures(signature: str | None) -> None:
    payload, _ = _signed(_succeeded_event())

    with pytest.raises(WebhookSignatureError):
        _gateway().parse_event(payload, signature)


def test_parse_event_rejects_stale_timestamp() -> None:
    payload, signature = _signed(_succeeded_event(), timestamp=int(time.time()) - 3600)

    with pytest.raises(WebhookSignatureError):
        _gateway().parse_event(payload, signature)


def test_parse_event_without_webhook_secret() -> None:
    payload, signature = _signed(_succeeded_event())

    with pytest.raises(PaymentGatewayUnavailableError):
        _gateway(webhook_secret=None).parse_event(payload, signature)


def test_refund_event_reads_payment_intent_from_charge() -> None:
    event = to_gateway_event(
        {
            "id": "evt_002",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_001", "payment_intent": "pi_001", "metadata": {}}},
        }
    )

    assert event.kind == GatewayEventKind.CHARGE_REFUNDED
    assert event.payment_intent_id == "pi_001"
    assert event.charge_id == "ch_001"
    assert event.order_id is None


def test_unknown_event_type_is_unrecognized() -> None:
    event = to_gateway_event({"id": "evt_003", "type": "customer.created", "data": {"object": {}}})

    assert event.kind == GatewayEventKind.UNRECOGNIZED
