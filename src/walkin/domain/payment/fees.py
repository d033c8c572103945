from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from walkin.domain.common.ids import OrderId
from walkin.domain.common.money import round_half_up, to_decimal
from walkin.domain.order.entities import Order


@dataclass(frozen=True)
class PlatformFee:
    """Revenue split for one paid order. Written once and never updated."""

    order_id: OrderId
    gross_cents: int
    platform_fee_cents: int
    gateway_fee_cents: int
    restaurant_payout_cents: int
    platform_net_cents: int
    currency: str
    gateway_charge_id: str | None = None
    gateway_balance_transaction_id: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.gross_cents < 0 or self.platform_fee_cents < 0 or self.gateway_fee_cents < 0:
            raise ValueError("fee amounts must be >= 0")
        if self.gross_cents != self.platform_fee_cents + self.restaurant_payout_cents:
            raise ValueError("gross must equal platform fee + restaurant payout")
        if self.platform_net_cents != self.platform_fee_cents - self.gateway_fee_cents:
            raise ValueError("platform net must equal platform fee - gateway fee")


def compute_platform_fee_cents(gross_cents: int, platform_fee_percentage: Decimal | float | str) -> int:
    percentage = to_decimal(platform_fee_percentage)
    if percentage < 0 or percentage > 100:
        raise ValueError("platform fee percentage must be between 0 and 100")
    return round_half_up(Decimal(gross_cents) * percentage / Decimal(100))


def compute_fee_split(
    order: Order,
    gateway_fee_cents: int,
    platform_fee_percentage: Decimal | float | str,
    gateway_charge_id: str | None = None,
    gateway_balance_transaction_id: str | None = None,
    now: datetime | None = None,
) -> PlatformFee:
    gross = order.total.amount_cents
    platform_fee = compute_platform_fee_cents(gross, platform_fee_percentage)
    return PlatformFee(
        order_id=order.order_id,
        gross_cents=gross,
        platform_fee_cents=platform_fee,
        gateway_fee_cents=gateway_fee_cents,
        restaurant_payout_cents=gross - platform_fee,
        platform_net_cents=platform_fee - gateway_fee_cents,
        currency=order.currency,
        gateway_charge_id=gateway_charge_id,
        gateway_balance_transaction_id=gateway_balance_transaction_id,
        created_at=now,
    )
