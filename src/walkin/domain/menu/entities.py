from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from walkin.domain.common.ids import LocationId, MenuId, MenuItemId
from walkin.domain.common.money import Money


@dataclass(frozen=True)
class MenuItem:
    item_id: MenuItemId
    name: str
    description: str | None
    price_money: Money
    is_available: bool
    category: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")
        if self.price_money.amount_cents < 0:
            raise ValueError("menu item price must be >= 0")


@dataclass(frozen=True)
class Menu:
    """The orderable catalogue of one location at a given version.

    Orders snapshot name and price from here; later edits bump ``version`` and
    never touch placed orders.
    """

    menu_id: MenuId
    location_id: LocationId
    version: int
    categories: list[str] = field(default_factory=list)
    items: list[MenuItem] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.version < 1:
            raise ValueError("version must be >= 1")

    def available_items(self) -> list[MenuItem]:
        return [item for item in self.items if item.is_available]

    def visible_categories(self) -> list[str]:
        """Categories that still have something to order, in menu order."""
        stocked = {item.category for item in self.available_items()}
        return [category for category in self.categories if category in stocked]
