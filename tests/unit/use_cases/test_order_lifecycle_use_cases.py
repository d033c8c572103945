from __future__ import annotations

import json
from dataclasses import replace
from datetime import timedelta

import pytest

from fakes import NOW, FakeLocationRepository, make_location, place
from walkin.application.dto.requests import UpdateOrderStatusRequest
from walkin.application.ports.repositories import OptimisticConcurrencyError
from walkin.application.use_cases.context import TraceContext
from walkin.application.use_cases.get_order import GetCustomerOrder, GetOrder
from walkin.application.use_cases.lookup import OrderNotFoundError
from walkin.application.use_cases.mark_order_paid import (
    AlreadyPaidError,
    ManualPaymentNotAllowedError,
    MarkOrderPaid,
)
from walkin.application.use_cases.update_order_status import (
    CancelReasonRequiredError,
    InvalidOrderTransitionError,
    OrderConflictError,
    UpdateOrderStatus,
)
from walkin.domain.common.ids import OrderId
from walkin.domain.order.entities import OrderStatus

TRACE = TraceContext(trace_id="trace-1", request_id="req-1")


def _status(value: str, reason: str | None = None) -> UpdateOrderStatusRequest:
    return UpdateOrderStatusRequest(status=value, cancelledReason=reason)


@pytest.fixture
def update_status(order_repository, publisher) -> UpdateOrderStatus:
    return UpdateOrderStatus(order_repository, publisher, clock=lambda: NOW + timedelta(minutes=2))


def test_staff_moves_order_through_kitchen_statuses(
    update_status, order_repository, geo_token_repository, publisher
) -> None:
    order = place(order_repository, geo_token_repository)

    for status in ("accepted", "preparing", "ready", "completed"):
        response = update_status.execute(order.order_id, _status(status), TRACE)
        assert response.status == status

    stored = order_repository.get(order.order_id)
    assert stored.accepted_at == NOW + timedelta(minutes=2)
    assert stored.completed_at == NOW + timedelta(minutes=2)
    assert stored.version == 5
    event_types = [json.loads(message)["event_type"] for _, message in publisher.messages]
    assert event_types == ["order.accepted", "order.preparing", "order.ready", "order.completed"]


def test_placed_to_preparing_is_rejected(
    update_status, order_repository, geo_token_repository, publisher
) -> None:
    order = place(order_repository, geo_token_repository)

    with pytest.raises(InvalidOrderTransitionError):
        update_status.execute(order.order_id, _status("preparing"), TRACE)
    assert order_repository.get(order.order_id).status == OrderStatus.PLACED
    assert publisher.messages == []


def test_cancel_placed_order_with_reason(update_status, order_repository, geo_token_repository) -> None:
    order = place(order_repository, geo_token_repository)

    response = update_status.execute(order.order_id, _status("cancelled", "customer left"), TRACE)

    assert response.status == "cancelled"
    assert response.cancelledReason == "customer left"
    assert response.cancelledAt == NOW + timedelta(minutes=2)


def test_cancel_preparing_order_is_rejected(
    update_status, order_repository, geo_token_repository
) -> None:
    order = place(order_repository, geo_token_repository)
    update_status.execute(order.order_id, _status("accepted"), TRACE)
    update_status.execute(order.order_id, _status("preparing"), TRACE)

    with pytest.raises(InvalidOrderTransitionError):
        update_status.execute(order.order_id, _status("cancelled", "customer left"), TRACE)


def test_cancel_without_reason_is_rejected(
    update_status, order_repository, geo_token_repository
) -> None:
    order = place(order_repository, geo_token_repository)

    with pytest.raises(CancelReasonRequiredError):
        update_status.execute(order.order_id, _status("cancelled"), TRACE)


def test_concurrent_status_write_is_a_conflict(
    update_status, order_repository, geo_token_repository
) -> None:
    order = place(order_repository, geo_token_repository)
    order_repository.conflicts_to_raise = 1

    with pytest.raises(OrderConflictError):
        update_status.execute(order.order_id, _status("accepted"), TRACE)


def test_conflict_reports_transition_error_when_order_moved_on(
    order_repository, geo_token_repository, publisher
) -> None:
    order = place(order_repository, geo_token_repository)

    class CancelledMeanwhileRepository(type(order_repository)):
        def save_with_version(self, updated, expected_version):
            current = self.orders[str(updated.order_id)]
            self.orders[str(updated.order_id)] = replace(
                current.cancel(NOW, "customer left"), version=current.version + 1
            )
            raise OptimisticConcurrencyError("version conflict")

    racing_repository = CancelledMeanwhileRepository()
    racing_repository.orders = order_repository.orders

    with pytest.raises(InvalidOrderTransitionError):
        UpdateOrderStatus(racing_repository, publisher).execute(
            order.order_id, _status("accepted"), TRACE
        )


def test_unknown_order(update_status) -> None:
    with pytest.raises(OrderNotFoundError):
        update_status.execute(OrderId("ord_missing"), _status("accepted"), TRACE)


def test_mark_cash_order_paid_twice(order_repository, geo_token_repository, publisher) -> None:
    order = place(order_repository, geo_token_repository)
    use_case = MarkOrderPaid(order_repository, publisher, clock=lambda: NOW)

    response = use_case.execute(order.order_id, TRACE)
    assert response.paymentStatus == "paid"

    with pytest.raises(AlreadyPaidError):
        use_case.execute(order.order_id, TRACE)
    assert [json.loads(message)["event_type"] for _, message in publisher.messages] == [
        "order.paid"
    ]


def test_card_order_cannot_be_marked_paid(order_repository, geo_token_repository, publisher) -> None:
    order = place(order_repository, geo_token_repository, payment_method="card")

    with pytest.raises(ManualPaymentNotAllowedError):
        MarkOrderPaid(order_repository, publisher).execute(order.order_id, TRACE)


def test_customer_order_read_is_scoped_to_location(order_repository, geo_token_repository) -> None:
    order = place(order_repository, geo_token_repository)
    other = make_location(location_id="loc_002", public_code="OTHER1")
    locations = FakeLocationRepository(make_location(), other)

    use_case = GetCustomerOrder(locations, order_repository)
    assert use_case.execute("DEMO01", order.order_id).orderNumber == 1
    assert use_case.status("DEMO01", order.order_id).status == "placed"

    with pytest.raises(OrderNotFoundError):
        use_case.execute("OTHER1", order.order_id)


def test_staff_order_read(order_repository, geo_token_repository) -> None:
    order = place(order_repository, geo_token_repository)

    assert GetOrder(order_repository).execute(order.order_id).orderId == str(order.order_id)
    with pytest.raises(OrderNotFoundError):
        GetOrder(order_repository).execute(OrderId("ord_missing"))
