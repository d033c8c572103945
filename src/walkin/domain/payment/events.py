from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class GatewayEventKind(str, Enum):
    PAYMENT_CAPTURED = "payment_captured"
    PAYMENT_FAILED = "payment_failed"
    CHARGE_REFUNDED = "charge_refunded"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class GatewayEvent:
    """A verified payment gateway notification, reduced to what reconciliation reads."""

    event_id: str
    event_type: str
    kind: GatewayEventKind
    order_id: str | None = None
    payment_intent_id: str | None = None
    charge_id: str | None = None
