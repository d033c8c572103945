from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from walkin.domain.order.entities import OrderStatus, PaymentMethod


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class VerifyLocationRequest(CamelBaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    device_fingerprint: str | None = Field(default=None, max_length=255)


class OrderItemModifierRequest(CamelBaseModel):
    option_name: str = Field(min_length=1, max_length=255)
    value_name: str = Field(min_length=1, max_length=255)
    price_delta_minor_units: int = 0


class OrderItemRequest(CamelBaseModel):
    menu_item_id: str = Field(min_length=1)
    quantity: int = Field(ge=1, le=99)
    special_instructions: str | None = Field(default=None, max_length=255)
    modifiers: list[OrderItemModifierRequest] = Field(default_factory=list)


class EstimateTotalsRequest(CamelBaseModel):
    items: list[OrderItemRequest] = Field(min_length=1)
    tip_minor_units: int = Field(default=0, ge=0)


class PlaceOrderRequest(CamelBaseModel):
    geo_token: str = Field(min_length=1)
    payment_method: PaymentMethod
    items: list[OrderItemRequest] = Field(min_length=1)
    table_number: str | None = Field(default=None, max_length=20)
    customer_name: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=20)
    special_instructions: str | None = Field(default=None, max_length=500)
    tip_minor_units: int = Field(default=0, ge=0)


class UpdateOrderStatusRequest(CamelBaseModel):
    status: OrderStatus
    cancelled_reason: str | None = Field(default=None, max_length=255)
