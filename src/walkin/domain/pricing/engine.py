"""Order price computation.

All amounts are integer minor currency units. Tax is rounded half-up to the
nearest minor unit; the tip is added after tax.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from walkin.domain.common.money import round_half_up, to_decimal


class PricingError(ValueError):
    pass


@dataclass(frozen=True)
class PricedLine:
    unit_price_cents: int
    quantity: int
    modifier_deltas: tuple[int, ...] = field(default_factory=tuple)

    @property
    def line_total_cents(self) -> int:
        return compute_line_total(self.unit_price_cents, self.modifier_deltas, self.quantity)


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    tax_cents: int
    tip_cents: int
    total_cents: int


def compute_line_total(unit_price_cents: int, modifier_deltas: Iterable[int], quantity: int) -> int:
    if quantity < 1:
        raise PricingError("quantity must be >= 1")
    if unit_price_cents < 0:
        raise PricingError("unit price must be >= 0")
    line_total = (unit_price_cents + sum(modifier_deltas)) * quantity
    if line_total < 0:
        raise PricingError("line total must be >= 0")
    return line_total


def compute_tax(subtotal_cents: int, tax_rate: Decimal | float | str) -> int:
    rate = to_decimal(tax_rate)
    if rate < 0:
        raise PricingError("tax rate must be >= 0")
    return round_half_up(Decimal(subtotal_cents) * rate)


def compute_totals(
    lines: Iterable[PricedLine],
    tax_rate: Decimal | float | str,
    tip_cents: int = 0,
) -> OrderTotals:
    if tip_cents < 0:
        raise PricingError("tip must be >= 0")
    subtotal = sum(line.line_total_cents for line in lines)
    tax = compute_tax(subtotal, tax_rate)
    return OrderTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        tip_cents=tip_cents,
        total_cents=subtotal + tax + tip_cents,
    )
