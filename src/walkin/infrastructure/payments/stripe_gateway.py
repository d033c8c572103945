from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from walkin.application.ports.payment_gateway import (
    ChargeFee,
    PaymentGateway,
    PaymentGatewayError,
    PaymentGatewayUnavailableError,
    PaymentIntentHandle,
    WebhookSignatureError,
)
from walkin.domain.order.entities import Order
from walkin.domain.payment.events import GatewayEvent, GatewayEventKind

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300
STATEMENT_DESCRIPTOR_MAX_LENGTH = 22

_EVENT_KINDS = {
    "payment_intent.succeeded": GatewayEventKind.PAYMENT_CAPTURED,
    "payment_intent.payment_failed": GatewayEventKind.PAYMENT_FAILED,
    "charge.refunded": GatewayEventKind.CHARGE_REFUNDED,
}


class StripePaymentGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str | None,
        webhook_secret: str | None,
        statement_descriptor: str = "WALKIN ORDER",
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._statement_descriptor = statement_descriptor[:STATEMENT_DESCRIPTOR_MAX_LENGTH]

    def _api_key(self) -> str:
        if not self._secret_key:
            raise PaymentGatewayUnavailableError("card payments are not configured")
        return self._secret_key

    def create_payment_intent(
        self,
        order: Order,
        application_fee_cents: int | None,
        connected_account_id: str | None,
    ) -> PaymentIntentHandle:
        params: dict[str, Any] = {
            "amount": order.total.amount_cents,
            "currency": order.currency.lower(),
            "metadata": {
                "order_id": str(order.order_id),
                "order_number": str(order.order_number),
                "location_id": str(order.location_id),
            },
            "statement_descriptor_suffix": self._statement_descriptor,
            "automatic_payment_methods": {"enabled": True},
        }
        if connected_account_id:
            params["transfer_data"] = {"destination": connected_account_id}
            if application_fee_cents is not None:
                params["application_fee_amount"] = application_fee_cents

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._api_key(),
                idempotency_key=f"order-{order.order_id}-v{order.version}",
                **params,
            )
        except stripe.StripeError as exc:
            logger.error(
                "stripe_payment_intent_failed",
                extra={"order_id": str(order.order_id), "stripe_error": str(exc)},
            )
            raise PaymentGatewayError("payment provider rejected the request") from exc

        return PaymentIntentHandle(payment_intent_id=intent.id, client_secret=intent.client_secret)

    def get_charge_fee(self, charge_id: str) -> ChargeFee:
        try:
            charge = stripe.Charge.retrieve(
                charge_id,
                api_key=self._api_key(),
                expand=["balance_transaction"],
            )
        except stripe.StripeError as exc:
            logger.error(
                "stripe_charge_lookup_failed",
                extra={"charge_id": charge_id, "stripe_error": str(exc)},
            )
            raise PaymentGatewayError(f"could not read fees for charge {charge_id}") from exc

        balance_transaction = getattr(charge, "balance_transaction", None)
        if balance_transaction is None or isinstance(balance_transaction, str):
            return ChargeFee(fee_cents=0, balance_transaction_id=balance_transaction)
        return ChargeFee(
            fee_cents=int(balance_transaction.fee),
            balance_transaction_id=balance_transaction.id,
        )

    def parse_event(self, payload: bytes, signature: str | None) -> GatewayEvent:
        if not self._webhook_secret:
            raise PaymentGatewayUnavailableError("webhook secret is not configured")
        if not signature:
            raise WebhookSignatureError("missing webhook signature")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self._webhook_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
            event = json.loads(body)
        except (stripe.SignatureVerificationError, UnicodeDecodeError, ValueError) as exc:
            logger.warning("stripe_webhook_rejected", extra={"reason": str(exc)})
            raise WebhookSignatureError("webhook signature verification failed") from exc

        if not isinstance(event, dict):
            raise WebhookSignatureError("webhook payload is not an event object")
        return to_gateway_event(event)


def to_gateway_event(event: dict[str, Any]) -> GatewayEvent:
    event_type = str(event.get("type", ""))
    kind = _EVENT_KINDS.get(event_type, GatewayEventKind.UNRECOGNIZED)
    data_object = (event.get("data") or {}).get("object") or {}
    metadata = data_object.get("metadata") or {}

    if event_type.startswith("charge."):
        payment_intent_id = data_object.get("payment_intent")
        charge_id = data_object.get("id")
    else:
        payment_intent_id = data_object.get("id")
        charge_id = data_object.get("latest_charge")

    return GatewayEvent(
        event_id=str(event.get("id", "")),
        event_type=event_type,
        kind=kind,
        order_id=metadata.get("order_id"),
        payment_intent_id=payment_intent_id,
        charge_id=charge_id,
    )
