from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from walkin.application.use_cases.get_menu import menu_version_cache_key
from walkin.domain.common.ids import LocationId
from walkin.infrastructure.cache.cache_store import RedisCacheStore
from walkin.infrastructure.db.models.menu import LocationModel, MenuItemModel, MenuModel
from walkin.infrastructure.db.session import get_engine

logger = logging.getLogger(__name__)

DEMO_LOCATION_ID = "loc_001"
DEMO_PUBLIC_CODE = "DEMO01"
DEMO_MENU_ID = "men_001"

DEMO_LOCATION = {
    "id": DEMO_LOCATION_ID,
    "public_code": DEMO_PUBLIC_CODE,
    "name": "Main Street Diner",
    "latitude": 40.7128,
    "longitude": -74.0060,
    "geofence_radius_meters": 100,
    "tax_rate": Decimal("0.07"),
    "currency": "USD",
    "timezone": "America/New_York",
    "is_active": True,
}

DEMO_ITEMS = [
    {
        "id": "itm_001",
        "name": "Classic Burger",
        "description": "Beef patty, cheddar, pickles",
        "category": "Mains",
        "price_cents": 1499,
        "is_available": True,
    },
    {
        "id": "itm_002",
        "name": "Grilled Chicken Sandwich",
        "description": "Brioche bun, lettuce, garlic aioli",
        "category": "Mains",
        "price_cents": 1350,
        "is_available": True,
    },
    {
        "id": "itm_003",
        "name": "Fries",
        "description": "Hand cut, sea salt",
        "category": "Sides",
        "price_cents": 450,
        "is_available": True,
    },
    {
        "id": "itm_004",
        "name": "Milkshake",
        "description": "Vanilla, chocolate or strawberry",
        "category": "Drinks",
        "price_cents": 650,
        "is_available": False,
    },
]


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    required_tables = {"locations", "menus", "menu_items"}
    if not required_tables.issubset(set(inspect(engine).get_table_names())):
        print("no schema yet")
        return

    with Session(engine) as session:
        location_values = {key: value for key, value in DEMO_LOCATION.items() if key != "id"}
        session.execute(
            insert(LocationModel)
            .values(**DEMO_LOCATION)
            .on_conflict_do_update(index_elements=[LocationModel.id], set_=location_values)
        )
        session.execute(
            insert(MenuModel)
            .values(id=DEMO_MENU_ID, location_id=DEMO_LOCATION_ID, version=1)
            .on_conflict_do_update(
                index_elements=[MenuModel.id],
                set_={"location_id": DEMO_LOCATION_ID, "version": 1},
            )
        )

        for position, item in enumerate(DEMO_ITEMS):
            values = {**item, "menu_id": DEMO_MENU_ID, "currency": "USD", "position": position}
            session.execute(
                insert(MenuItemModel)
                .values(**values)
                .on_conflict_do_update(
                    index_elements=[MenuItemModel.id],
                    set_={key: value for key, value in values.items() if key != "id"},
                )
            )

        session.commit()

    try:
        RedisCacheStore().delete(menu_version_cache_key(LocationId(DEMO_LOCATION_ID)))
    except Exception:
        logger.warning("seed_menu_cache_invalidation_failed", exc_info=True)
    print("seed complete")


if __name__ == "__main__":
    main()
