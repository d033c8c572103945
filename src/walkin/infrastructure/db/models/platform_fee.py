from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from walkin.infrastructure.db.models.menu import Base


class PlatformFeeModel(Base):
    __tablename__ = "platform_fees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    gross_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    gateway_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    restaurant_payout_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_net_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    gateway_charge_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gateway_balance_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
