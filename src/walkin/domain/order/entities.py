from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from walkin.domain.common.ids import LocationId, MenuItemId, OrderId, OrderItemId
from walkin.domain.common.money import Money
from walkin.domain.pricing.engine import PricedLine, compute_line_total, compute_totals


class OrderStatus(str, Enum):
    PLACED = "placed"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


ACTIVE_STATUSES = frozenset(
    {OrderStatus.PLACED, OrderStatus.ACCEPTED, OrderStatus.PREPARING, OrderStatus.READY}
)

_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# A refund may be delivered before the capture confirmation, so pending can
# move straight to refunded. A declined card can be retried, so failed can
# return to pending or be captured.
_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.REFUNDED}
    ),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


@dataclass(frozen=True)
class OrderItemModifier:
    option_name: str
    value_name: str
    price_delta_cents: int = 0

    def __post_init__(self) -> None:
        if not self.option_name.strip() or not self.value_name.strip():
            raise ValueError("modifier option and value names must be non-empty")


@dataclass(frozen=True)
class OrderItem:
    item_id: OrderItemId
    menu_item_id: MenuItemId
    name: str
    quantity: int
    unit_price: Money
    line_total: Money
    modifiers: tuple[OrderItemModifier, ...] = field(default_factory=tuple)
    special_instructions: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        expected_total = compute_line_total(
            self.unit_price.amount_cents,
            (modifier.price_delta_cents for modifier in self.modifiers),
            self.quantity,
        )
        if self.line_total.amount_cents != expected_total:
            raise ValueError("line_total must equal (unit_price + modifier deltas) * quantity")

    def priced_line(self) -> PricedLine:
        return PricedLine(
            unit_price_cents=self.unit_price.amount_cents,
            quantity=self.quantity,
            modifier_deltas=tuple(modifier.price_delta_cents for modifier in self.modifiers),
        )


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    location_id: LocationId
    order_number: int | None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    items: list[OrderItem]
    subtotal: Money
    tax: Money
    tip: Money
    total: Money
    placed_at: datetime
    table_number: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    special_instructions: str | None = None
    payment_intent_id: str | None = None
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_reason: str | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("order must contain at least one item")
        currency = self.total.currency
        for money in (self.subtotal, self.tax, self.tip):
            if money.currency != currency:
                raise ValueError("order amounts must share one currency")
        if any(item.line_total.currency != currency for item in self.items):
            raise ValueError("order item currency must match order currency")
        if self.subtotal.amount_cents != sum(item.line_total.amount_cents for item in self.items):
            raise ValueError("subtotal must equal sum of line totals")
        if self.total != self.subtotal + self.tax + self.tip:
            raise ValueError("total must equal subtotal + tax + tip")
        if self.order_number is not None and self.order_number < 1:
            raise ValueError("order_number must be >= 1")

    @property
    def currency(self) -> str:
        return self.total.currency

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _STATUS_TRANSITIONS[self.status]

    def transition_to(
        self,
        target: OrderStatus,
        now: datetime,
        reason: str | None = None,
    ) -> Order:
        if not self.can_transition_to(target):
            raise OrderTransitionError(
                f"cannot transition order from status={self.status.value} to {target.value}"
            )

        if target == OrderStatus.ACCEPTED:
            return replace(self, status=target, accepted_at=now)
        if target == OrderStatus.COMPLETED:
            return replace(self, status=target, completed_at=now)
        if target == OrderStatus.CANCELLED:
            if reason is None or not reason.strip():
                raise CancellationReasonRequiredError("a reason is required to cancel an order")
            return replace(
                self,
                status=target,
                cancelled_at=now,
                cancelled_reason=reason.strip(),
            )
        return replace(self, status=target)

    def accept(self, now: datetime) -> Order:
        return self.transition_to(OrderStatus.ACCEPTED, now)

    def start_preparing(self, now: datetime) -> Order:
        return self.transition_to(OrderStatus.PREPARING, now)

    def mark_ready(self, now: datetime) -> Order:
        return self.transition_to(OrderStatus.READY, now)

    def complete(self, now: datetime) -> Order:
        return self.transition_to(OrderStatus.COMPLETED, now)

    def cancel(self, now: datetime, reason: str | None) -> Order:
        return self.transition_to(OrderStatus.CANCELLED, now, reason=reason)

    def _with_payment_status(self, target: PaymentStatus, **changes: object) -> Order:
        if target not in _PAYMENT_TRANSITIONS[self.payment_status]:
            raise PaymentTransitionError(
                f"cannot transition payment from status={self.payment_status.value} "
                f"to {target.value}"
            )
        return replace(self, payment_status=target, **changes)

    def mark_paid_manually(self) -> Order:
        """Staff confirmation that a cash order was settled at the counter."""
        if self.payment_method != PaymentMethod.CASH:
            raise PaymentMethodNotAllowedError("only cash orders can be manually marked as paid")
        if self.payment_status == PaymentStatus.PAID:
            raise OrderAlreadyPaidError(f"order {self.order_id} is already paid")
        return self._with_payment_status(PaymentStatus.PAID)

    def ensure_card_payable(self) -> None:
        if self.payment_method != PaymentMethod.CARD:
            raise PaymentMethodNotAllowedError("this order is not set for card payment")
        if self.payment_status == PaymentStatus.PAID:
            raise OrderAlreadyPaidError(f"order {self.order_id} is already paid")
        if self.payment_status == PaymentStatus.REFUNDED:
            raise PaymentTransitionError(f"order {self.order_id} has been refunded")
        if self.status == OrderStatus.CANCELLED:
            raise PaymentTransitionError(f"order {self.order_id} is cancelled")

    def attach_payment_intent(self, payment_intent_id: str) -> Order:
        self.ensure_card_payable()
        if self.payment_status == PaymentStatus.PENDING:
            return replace(self, payment_intent_id=payment_intent_id)
        return self._with_payment_status(PaymentStatus.PENDING, payment_intent_id=payment_intent_id)

    def confirm_capture(self) -> Order:
        if self.payment_status == PaymentStatus.PAID:
            raise OrderAlreadyPaidError(f"order {self.order_id} is already paid")
        return self._with_payment_status(PaymentStatus.PAID)

    def fail_payment(self) -> Order:
        return self._with_payment_status(PaymentStatus.FAILED)

    def refund(self) -> Order:
        return self._with_payment_status(PaymentStatus.REFUNDED)


def create_placed_order(
    order_id: OrderId,
    location_id: LocationId,
    items: list[OrderItem],
    payment_method: PaymentMethod,
    tax_rate: Decimal,
    tip_cents: int,
    now: datetime,
    table_number: str | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    special_instructions: str | None = None,
) -> Order:
    """Build an unnumbered order; the number is assigned when it is persisted."""
    if not items:
        raise ValueError("order must contain at least one item")

    currency = items[0].line_total.currency
    totals = compute_totals([item.priced_line() for item in items], tax_rate, tip_cents)
    return Order(
        order_id=order_id,
        location_id=location_id,
        order_number=None,
        status=OrderStatus.PLACED,
        payment_status=(
            PaymentStatus.UNPAID if payment_method == PaymentMethod.CASH else PaymentStatus.PENDING
        ),
        payment_method=payment_method,
        items=items,
        subtotal=Money(amount_cents=totals.subtotal_cents, currency=currency),
        tax=Money(amount_cents=totals.tax_cents, currency=currency),
        tip=Money(amount_cents=totals.tip_cents, currency=currency),
        total=Money(amount_cents=totals.total_cents, currency=currency),
        placed_at=now,
        table_number=table_number,
        customer_name=customer_name,
        customer_phone=customer_phone,
        special_instructions=special_instructions,
    )


class OrderTransitionError(Exception):
    pass


class CancellationReasonRequiredError(Exception):
    pass


class PaymentTransitionError(Exception):
    pass


class PaymentMethodNotAllowedError(Exception):
    pass


class OrderAlreadyPaidError(Exception):
    pass
