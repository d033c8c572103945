from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal

import pytest

from fakes import NOW, FailingPublisher, issue_token, place_request
from walkin.application.dto.requests import EstimateTotalsRequest
from walkin.application.use_cases.context import TraceContext
from walkin.application.use_cases.estimate_totals import EstimateTotals
from walkin.application.use_cases.lookup import LocationNotFoundError
from walkin.application.use_cases.place_order import (
    GeoTokenAlreadyUsedError,
    InvalidGeoTokenError,
    InvalidOrderLineError,
    MenuItemNotFoundError,
    MenuItemUnavailableError,
    PlaceOrder,
)

TRACE = TraceContext(trace_id="trace-1", request_id="req-1")


@pytest.fixture
def place_order(
    location_repository, menu_repository, geo_token_repository, order_repository, publisher
) -> PlaceOrder:
    return PlaceOrder(
        location_repository=location_repository,
        menu_repository=menu_repository,
        geo_token_repository=geo_token_repository,
        order_repository=order_repository,
        publisher=publisher,
        platform_fee_percentage=Decimal("3"),
        clock=lambda: NOW,
    )


def test_place_cash_order_numbers_prices_and_publishes(
    place_order, geo_token_repository, order_repository, publisher
) -> None:
    token = issue_token(geo_token_repository)
    request = place_request(
        token,
        items=[
            {
                "menuItemId": "itm_001",
                "quantity": 1,
                "modifiers": [
                    {"optionName": "Add-ons", "valueName": "Bacon", "priceDeltaMinorUnits": 450}
                ],
            },
            {"menuItemId": "itm_001", "quantity": 1},
        ],
        tableNumber="12",
        customerName="Sam",
    )

    response = place_order.execute("DEMO01", request, TRACE)

    assert response.orderNumber == 1
    assert response.status == "placed"
    assert response.paymentStatus == "unpaid"
    assert response.subtotal.amountCents == 3448
    assert response.tax.amountCents == 241
    assert response.total.amountCents == 3689
    assert response.items[0].name == "Classic Burger"
    assert response.items[0].modifiers[0].priceDeltaCents == 450
    assert response.tableNumber == "12"

    assert geo_token_repository.tokens[token].used_at == NOW

    location_id, message = publisher.messages[0]
    envelope = json.loads(message)
    assert location_id == "loc_001"
    assert envelope["event_type"] == "order.placed"
    assert envelope["payload"]["orderNumber"] == 1
    assert envelope["trace_id"] == "trace-1"


def test_cash_order_fee_split_recorded_at_placement(
    place_order, geo_token_repository, order_repository
) -> None:
    response = place_order.execute("DEMO01", place_request(issue_token(geo_token_repository)), TRACE)

    fee = order_repository.fees[response.orderId]
    assert fee.gross_cents == response.total.amountCents
    assert fee.gateway_fee_cents == 0
    assert fee.platform_fee_cents + fee.restaurant_payout_cents == fee.gross_cents


def test_card_order_starts_pending_without_fee(
    place_order, geo_token_repository, order_repository
) -> None:
    response = place_order.execute(
        "DEMO01", place_request(issue_token(geo_token_repository), payment_method="card"), TRACE
    )

    assert response.paymentStatus == "pending"
    assert response.orderId not in order_repository.fees


def test_order_numbers_increase_per_location_day(place_order, geo_token_repository) -> None:
    numbers = [
        place_order.execute(
            "DEMO01", place_request(issue_token(geo_token_repository)), TRACE
        ).orderNumber
        for _ in range(3)
    ]

    assert numbers == [1, 2, 3]


def test_order_numbers_restart_on_the_next_local_day(
    location_repository, menu_repository, geo_token_repository, order_repository, publisher
) -> None:
    def _place_at(now):
        return PlaceOrder(
            location_repository=location_repository,
            menu_repository=menu_repository,
            geo_token_repository=geo_token_repository,
            order_repository=order_repository,
            publisher=publisher,
            clock=lambda: now,
        ).execute("DEMO01", place_request(issue_token(geo_token_repository, now=now)), TRACE)

    late_evening = _place_at(NOW.replace(hour=23, minute=30))
    next_morning = _place_at(NOW.replace(hour=23, minute=30) + timedelta(hours=10))

    assert late_evening.orderNumber == 1
    assert next_morning.orderNumber == 1


def test_geo_token_cannot_be_reused(place_order, geo_token_repository, order_repository) -> None:
    token = issue_token(geo_token_repository)
    place_order.execute("DEMO01", place_request(token), TRACE)

    with pytest.raises(InvalidGeoTokenError):
        place_order.execute("DEMO01", place_request(token), TRACE)
    assert len(order_repository.orders) == 1


def test_token_consumed_concurrently_is_a_conflict(
    place_order, geo_token_repository, order_repository
) -> None:
    token = issue_token(geo_token_repository)
    seen_before_use = geo_token_repository.find_valid(token, "loc_001", NOW)
    geo_token_repository.consume(token, NOW)
    geo_token_repository.find_valid = lambda *args: seen_before_use

    with pytest.raises(GeoTokenAlreadyUsedError):
        place_order.execute("DEMO01", place_request(token), TRACE)
    assert order_repository.orders == {}


def test_expired_token_is_rejected(
    location_repository, menu_repository, geo_token_repository, order_repository, publisher
) -> None:
    token = issue_token(geo_token_repository)
    use_case = PlaceOrder(
        location_repository=location_repository,
        menu_repository=menu_repository,
        geo_token_repository=geo_token_repository,
        order_repository=order_repository,
        publisher=publisher,
        clock=lambda: NOW + timedelta(minutes=16),
    )

    with pytest.raises(InvalidGeoTokenError):
        use_case.execute("DEMO01", place_request(token), TRACE)


def test_token_from_another_location_is_rejected(place_order, geo_token_repository) -> None:
    token = issue_token(geo_token_repository, location_id="loc_999")

    with pytest.raises(InvalidGeoTokenError):
        place_order.execute("DEMO01", place_request(token), TRACE)


def test_unknown_menu_item_rejected_without_consuming_token(
    place_order, geo_token_repository, order_repository
) -> None:
    token = issue_token(geo_token_repository)

    with pytest.raises(MenuItemNotFoundError):
        place_order.execute(
            "DEMO01",
            place_request(token, items=[{"menuItemId": "itm_missing", "quantity": 1}]),
            TRACE,
        )
    assert geo_token_repository.tokens[token].used_at is None
    assert order_repository.orders == {}


def test_unavailable_menu_item_rejected(place_order, geo_token_repository) -> None:
    with pytest.raises(MenuItemUnavailableError):
        place_order.execute(
            "DEMO01",
            place_request(
                issue_token(geo_token_repository),
                items=[{"menuItemId": "itm_004", "quantity": 1}],
            ),
            TRACE,
        )


def test_negative_line_total_rejected(place_order, geo_token_repository) -> None:
    request = place_request(
        issue_token(geo_token_repository),
        items=[
            {
                "menuItemId": "itm_003",
                "quantity": 1,
                "modifiers": [
                    {"optionName": "Size", "valueName": "Tiny", "priceDeltaMinorUnits": -1000}
                ],
            }
        ],
    )

    with pytest.raises(InvalidOrderLineError):
        place_order.execute("DEMO01", request, TRACE)


def test_unknown_location_rejected(place_order, geo_token_repository) -> None:
    with pytest.raises(LocationNotFoundError):
        place_order.execute("ZZZ999", place_request(issue_token(geo_token_repository)), TRACE)


def test_publish_failure_does_not_fail_the_order(
    location_repository, menu_repository, geo_token_repository, order_repository
) -> None:
    response = PlaceOrder(
        location_repository=location_repository,
        menu_repository=menu_repository,
        geo_token_repository=geo_token_repository,
        order_repository=order_repository,
        publisher=FailingPublisher(),
        clock=lambda: NOW,
    ).execute("DEMO01", place_request(issue_token(geo_token_repository)), TRACE)

    assert response.orderId in order_repository.orders


def test_estimate_skips_unknown_and_unavailable_items(location_repository, menu_repository) -> None:
    request = EstimateTotalsRequest.model_validate(
        {
            "items": [
                {"menuItemId": "itm_001", "quantity": 2},
                {"menuItemId": "itm_missing", "quantity": 5},
                {"menuItemId": "itm_004", "quantity": 1},
            ],
            "tipMinorUnits": 100,
        }
    )

    totals = EstimateTotals(location_repository, menu_repository).execute("DEMO01", request)

    assert totals.subtotalCents == 2998
    assert totals.taxCents == 210
    assert totals.tipCents == 100
    assert totals.totalCents == 2998 + 210 + 100
    assert totals.currency == "USD"
