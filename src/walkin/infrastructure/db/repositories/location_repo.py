from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from walkin.application.ports.repositories import LocationRepository
from walkin.domain.common.ids import LocationId
from walkin.domain.location.entities import Location
from walkin.infrastructure.db.models.menu import LocationModel
from walkin.infrastructure.db.session import get_engine


class SqlAlchemyLocationRepository(LocationRepository):
    def __init__(self, engine: Engine | None = None, default_radius_meters: int = 100) -> None:
        self._engine = engine or get_engine()
        self._default_radius_meters = default_radius_meters

    def get_by_public_code(self, public_code: str) -> Location | None:
        statement = (
            select(LocationModel)
            .where(LocationModel.public_code == public_code.strip().upper())
            .limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def get(self, location_id: LocationId) -> Location | None:
        with Session(self._engine) as session:
            model = session.get(LocationModel, str(location_id))
        return self._to_domain(model) if model is not None else None

    def _to_domain(self, model: LocationModel) -> Location:
        return Location(
            location_id=LocationId(model.id),
            public_code=model.public_code,
            name=model.name,
            latitude=model.latitude,
            longitude=model.longitude,
            geofence_radius_meters=model.geofence_radius_meters or self._default_radius_meters,
            tax_rate=Decimal(str(model.tax_rate)),
            currency=model.currency,
            timezone=model.timezone,
            is_active=model.is_active,
            connected_account_id=model.connected_account_id,
        )
