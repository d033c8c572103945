from __future__ import annotations

from datetime import date

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from walkin.domain.common.ids import LocationId
from walkin.infrastructure.db.models.order import OrderSequenceModel


def allocate_order_number(session: Session, location_id: LocationId, business_date: date) -> int:
    """Reserve the next number for a location's day inside the caller's transaction.

    The counter row is created or incremented by a single upsert, so the row
    lock taken by the database serialises concurrent callers.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql_insert
    elif dialect == "sqlite":
        insert = sqlite_insert
    else:
        raise RuntimeError(f"order numbering is not supported on dialect={dialect}")

    statement = insert(OrderSequenceModel).values(
        location_id=str(location_id),
        sequence_date=business_date,
        last_order_number=1,
    )
    statement = statement.on_conflict_do_update(
        index_elements=[OrderSequenceModel.location_id, OrderSequenceModel.sequence_date],
        set_={"last_order_number": OrderSequenceModel.last_order_number + 1},
    ).returning(OrderSequenceModel.last_order_number)
    return int(session.execute(statement).scalar_one())
