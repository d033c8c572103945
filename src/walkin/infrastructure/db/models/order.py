from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walkin.infrastructure.db.models.menu import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    location_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    business_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tip_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    table_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    special_instructions: Mapped[str | None] = mapped_column(String(500), nullable=True)
    geo_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    placed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    items: Mapped[list["OrderItemModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
    )

    __table_args__ = (
        UniqueConstraint(
            "location_id",
            "business_date",
            "order_number",
            name="uq_orders_location_day_number",
        ),
        Index("ix_orders_location_placed_at_desc", "location_id", "placed_at"),
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    menu_item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    line_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(String(255), nullable=True)

    order: Mapped[OrderModel] = relationship(back_populates="items")
    modifiers: Mapped[list["OrderItemModifierModel"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="OrderItemModifierModel.id",
    )


class OrderItemModifierModel(Base):
    __tablename__ = "order_item_modifiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_item_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    option_name: Mapped[str] = mapped_column(String(255), nullable=False)
    value_name: Mapped[str] = mapped_column(String(255), nullable=False)
    price_delta_cents: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    item: Mapped[OrderItemModel] = relationship(back_populates="modifiers")


class OrderSequenceModel(Base):
    __tablename__ = "order_sequences"

    location_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("locations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    sequence_date: Mapped[date] = mapped_column(Date, primary_key=True)
    last_order_number: Mapped[int] = mapped_column(Integer, nullable=False)
