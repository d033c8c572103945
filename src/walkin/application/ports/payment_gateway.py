from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from walkin.domain.order.entities import Order
from walkin.domain.payment.events import GatewayEvent


@dataclass(frozen=True)
class PaymentIntentHandle:
    payment_intent_id: str
    client_secret: str


@dataclass(frozen=True)
class ChargeFee:
    fee_cents: int
    balance_transaction_id: str | None


class PaymentGateway(Protocol):
    def create_payment_intent(
        self,
        order: Order,
        application_fee_cents: int | None,
        connected_account_id: str | None,
    ) -> PaymentIntentHandle: ...

    def get_charge_fee(self, charge_id: str) -> ChargeFee: ...

    def parse_event(self, payload: bytes, signature: str | None) -> GatewayEvent: ...


class PaymentGatewayError(Exception):
    pass


class PaymentGatewayUnavailableError(Exception):
    pass


class WebhookSignatureError(Exception):
    pass
