from __future__ import annotations

from walkin.application.dto.requests import EstimateTotalsRequest
from walkin.application.dto.responses import OrderTotalsResponse
from walkin.application.ports.repositories import LocationRepository, MenuRepository
from walkin.application.use_cases.lookup import require_location
from walkin.domain.common.ids import MenuItemId
from walkin.domain.pricing.engine import PricedLine, PricingError, compute_totals


class InvalidEstimateError(Exception):
    pass


class EstimateTotals:
    """Price a prospective cart. Items missing from the menu are left out of the estimate."""

    def __init__(
        self,
        location_repository: LocationRepository,
        menu_repository: MenuRepository,
    ) -> None:
        self._location_repository = location_repository
        self._menu_repository = menu_repository

    def execute(self, public_code: str, request_dto: EstimateTotalsRequest) -> OrderTotalsResponse:
        location = require_location(self._location_repository, public_code)
        menu_items = self._menu_repository.get_items(
            location.location_id,
            [MenuItemId(item.menu_item_id) for item in request_dto.items],
        )

        lines: list[PricedLine] = []
        for request_item in request_dto.items:
            menu_item = menu_items.get(request_item.menu_item_id)
            if menu_item is None or not menu_item.is_available:
                continue
            lines.append(
                PricedLine(
                    unit_price_cents=menu_item.price_money.amount_cents,
                    quantity=request_item.quantity,
                    modifier_deltas=tuple(
                        modifier.price_delta_minor_units for modifier in request_item.modifiers
                    ),
                )
            )

        try:
            totals = compute_totals(lines, location.tax_rate, request_dto.tip_minor_units)
        except PricingError as exc:
            raise InvalidEstimateError(str(exc)) from exc

        return OrderTotalsResponse(
            subtotalCents=totals.subtotal_cents,
            taxCents=totals.tax_cents,
            tipCents=totals.tip_cents,
            totalCents=totals.total_cents,
            currency=location.currency,
        )
