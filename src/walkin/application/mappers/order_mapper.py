from __future__ import annotations

from walkin.application.dto.responses import (
    MoneyResponse,
    OrderItemModifierResponse,
    OrderItemResponse,
    OrderResponse,
    OrderStatusResponse,
)
from walkin.domain.common.money import Money
from walkin.domain.order.entities import Order


def _money(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        locationId=str(order.location_id),
        orderNumber=order.order_number,
        status=order.status.value,
        paymentStatus=order.payment_status.value,
        paymentMethod=order.payment_method.value,
        items=[
            OrderItemResponse(
                orderItemId=str(item.item_id),
                menuItemId=str(item.menu_item_id),
                name=item.name,
                quantity=item.quantity,
                unitPrice=_money(item.unit_price),
                lineTotal=_money(item.line_total),
                modifiers=[
                    OrderItemModifierResponse(
                        optionName=modifier.option_name,
                        valueName=modifier.value_name,
                        priceDeltaCents=modifier.price_delta_cents,
                    )
                    for modifier in item.modifiers
                ],
                specialInstructions=item.special_instructions,
            )
            for item in order.items
        ],
        subtotal=_money(order.subtotal),
        tax=_money(order.tax),
        tip=_money(order.tip),
        total=_money(order.total),
        tableNumber=order.table_number,
        customerName=order.customer_name,
        customerPhone=order.customer_phone,
        specialInstructions=order.special_instructions,
        placedAt=order.placed_at,
        acceptedAt=order.accepted_at,
        completedAt=order.completed_at,
        cancelledAt=order.cancelled_at,
        cancelledReason=order.cancelled_reason,
    )


def to_order_status_response(order: Order) -> OrderStatusResponse:
    return OrderStatusResponse(
        orderId=str(order.order_id),
        orderNumber=order.order_number,
        status=order.status.value,
        paymentStatus=order.payment_status.value,
        placedAt=order.placed_at,
        acceptedAt=order.accepted_at,
        completedAt=order.completed_at,
    )
