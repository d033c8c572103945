from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from walkin.application.ports.repositories import GeoTokenRepository
from walkin.domain.common.ids import LocationId
from walkin.domain.geo.tokens import GeoToken
from walkin.infrastructure.db.models.geo_token import GeoTokenModel
from walkin.infrastructure.db.session import get_engine


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def consume_geo_token(session: Session, token: str, now: datetime) -> bool:
    """Mark a token used if it is still unused and unexpired. Returns False otherwise."""
    statement = (
        update(GeoTokenModel)
        .where(
            GeoTokenModel.token == token,
            GeoTokenModel.used_at.is_(None),
            GeoTokenModel.expires_at > now,
        )
        .values(used_at=now)
    )
    return session.execute(statement).rowcount == 1


class SqlAlchemyGeoTokenRepository(GeoTokenRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, token: GeoToken) -> None:
        model = GeoTokenModel(
            token=token.token,
            location_id=str(token.location_id),
            latitude=token.latitude,
            longitude=token.longitude,
            device_fingerprint=token.device_fingerprint,
            ip_address=token.ip_address,
            created_at=token.created_at,
            expires_at=token.expires_at,
            used_at=token.used_at,
        )
        with Session(self._engine) as session:
            session.add(model)
            session.commit()

    def find_valid(self, token: str, location_id: LocationId, now: datetime) -> GeoToken | None:
        statement = (
            select(GeoTokenModel)
            .where(
                GeoTokenModel.token == token,
                GeoTokenModel.location_id == str(location_id),
                GeoTokenModel.used_at.is_(None),
                GeoTokenModel.expires_at > now,
            )
            .limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        if model is None:
            return None
        return GeoToken(
            token=model.token,
            location_id=LocationId(model.location_id),
            latitude=model.latitude,
            longitude=model.longitude,
            created_at=_as_utc(model.created_at),
            expires_at=_as_utc(model.expires_at),
            device_fingerprint=model.device_fingerprint,
            ip_address=model.ip_address,
            used_at=_as_utc(model.used_at),
        )
