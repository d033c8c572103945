from __future__ import annotations

import logging
from decimal import Decimal

from walkin.application.dto.responses import PaymentIntentResponse
from walkin.application.ports.payment_gateway import PaymentGateway
from walkin.application.ports.repositories import (
    LocationRepository,
    OptimisticConcurrencyError,
    OrderRepository,
)
from walkin.application.use_cases.lookup import require_location, require_order
from walkin.application.use_cases.mark_order_paid import (
    AlreadyPaidError,
    InvalidPaymentTransitionError,
)
from walkin.application.use_cases.update_order_status import OrderConflictError
from walkin.domain.common.ids import OrderId
from walkin.domain.order.entities import (
    OrderAlreadyPaidError,
    PaymentMethodNotAllowedError,
    PaymentTransitionError,
)
from walkin.domain.payment.fees import compute_platform_fee_cents

logger = logging.getLogger(__name__)


class CardPaymentNotAllowedError(Exception):
    pass


class CreatePaymentIntent:
    def __init__(
        self,
        location_repository: LocationRepository,
        order_repository: OrderRepository,
        gateway: PaymentGateway,
        platform_fee_percentage: Decimal = Decimal("3"),
    ) -> None:
        self._location_repository = location_repository
        self._order_repository = order_repository
        self._gateway = gateway
        self._platform_fee_percentage = platform_fee_percentage

    def execute(self, public_code: str, order_id: OrderId) -> PaymentIntentResponse:
        location = require_location(self._location_repository, public_code)
        order = require_order(self._order_repository, order_id, location.location_id)

        try:
            order.ensure_card_payable()
        except PaymentMethodNotAllowedError as exc:
            raise CardPaymentNotAllowedError(str(exc)) from exc
        except OrderAlreadyPaidError as exc:
            raise AlreadyPaidError(str(exc)) from exc
        except PaymentTransitionError as exc:
            raise InvalidPaymentTransitionError(str(exc)) from exc

        application_fee_cents = None
        if location.connected_account_id:
            application_fee_cents = compute_platform_fee_cents(
                order.total.amount_cents, self._platform_fee_percentage
            )

        handle = self._gateway.create_payment_intent(
            order,
            application_fee_cents=application_fee_cents,
            connected_account_id=location.connected_account_id,
        )

        try:
            self._order_repository.save_with_version(
                order.attach_payment_intent(handle.payment_intent_id),
                expected_version=order.version,
            )
        except OptimisticConcurrencyError as exc:
            raise OrderConflictError(f"order {order_id} payment update conflict") from exc

        logger.info(
            "payment_intent_created",
            extra={"order_id": str(order_id), "payment_intent_id": handle.payment_intent_id},
        )
        return PaymentIntentResponse(
            clientSecret=handle.client_secret,
            paymentIntentId=handle.payment_intent_id,
        )
