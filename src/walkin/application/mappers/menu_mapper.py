from __future__ import annotations

from walkin.application.dto.responses import MenuItemResponse, MenuResponse, MoneyResponse
from walkin.domain.menu.entities import Menu, MenuItem


def _to_menu_item_response(item: MenuItem) -> MenuItemResponse:
    return MenuItemResponse(
        itemId=str(item.item_id),
        name=item.name,
        description=item.description,
        priceMoney=MoneyResponse(
            amountCents=item.price_money.amount_cents,
            currency=item.price_money.currency,
        ),
        isAvailable=item.is_available,
        category=item.category,
    )


def to_menu_response(menu: Menu) -> MenuResponse:
    """Customer-facing menu: sold-out items and emptied categories are left out."""
    return MenuResponse(
        menuId=str(menu.menu_id),
        locationId=str(menu.location_id),
        menuVersion=menu.version,
        categories=menu.visible_categories(),
        items=[_to_menu_item_response(item) for item in menu.available_items()],
        updatedAt=menu.updated_at,
    )
