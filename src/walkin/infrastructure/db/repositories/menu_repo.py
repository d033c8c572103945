from __future__ import annotations

from datetime import timezone

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session, joinedload

from walkin.application.ports.repositories import MenuRepository
from walkin.domain.common.ids import LocationId, MenuId, MenuItemId
from walkin.domain.common.money import Money
from walkin.domain.menu.entities import Menu, MenuItem
from walkin.infrastructure.db.models.menu import MenuItemModel, MenuModel
from walkin.infrastructure.db.session import get_engine


def _to_item(model: MenuItemModel) -> MenuItem:
    return MenuItem(
        item_id=MenuItemId(model.id),
        name=model.name,
        description=model.description,
        price_money=Money(amount_cents=model.price_cents, currency=model.currency),
        is_available=model.is_available,
        category=model.category,
    )


class SqlAlchemyMenuRepository(MenuRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get_menu_for_location(self, location_id: LocationId) -> Menu | None:
        statement = (
            select(MenuModel)
            .options(joinedload(MenuModel.items))
            .where(MenuModel.location_id == str(location_id))
            .order_by(MenuModel.version.desc())
            .limit(1)
        )

        with Session(self._engine) as session:
            menu_model = session.execute(statement).unique().scalar_one_or_none()

        if menu_model is None:
            return None

        updated_at = menu_model.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)

        items = [_to_item(item) for item in menu_model.items]
        categories: list[str] = []
        for item in items:
            if item.category and item.category not in categories:
                categories.append(item.category)

        return Menu(
            menu_id=MenuId(menu_model.id),
            location_id=LocationId(menu_model.location_id),
            version=menu_model.version,
            categories=categories,
            items=items,
            updated_at=updated_at,
        )

    def get_items(
        self,
        location_id: LocationId,
        item_ids: list[MenuItemId],
    ) -> dict[str, MenuItem]:
        if not item_ids:
            return {}
        latest_version = (
            select(func.max(MenuModel.version))
            .where(MenuModel.location_id == str(location_id))
            .scalar_subquery()
        )
        statement = (
            select(MenuItemModel)
            .join(MenuModel, MenuItemModel.menu_id == MenuModel.id)
            .where(
                MenuModel.location_id == str(location_id),
                MenuModel.version == latest_version,
                MenuItemModel.id.in_({str(item_id) for item_id in item_ids}),
            )
        )
        with Session(self._engine) as session:
            models = session.execute(statement).scalars().all()
        return {model.id: _to_item(model) for model in models}
