from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class LocationResponse(BaseModel):
    publicCode: str
    name: str
    latitude: float
    longitude: float
    geofenceRadiusMeters: int
    taxRate: float
    currency: str
    timezone: str


class MenuItemResponse(BaseModel):
    itemId: str
    name: str
    description: str | None = None
    priceMoney: MoneyResponse
    isAvailable: bool
    category: str | None = None


class MenuResponse(BaseModel):
    menuId: str
    locationId: str
    menuVersion: int
    categories: list[str] = Field(default_factory=list)
    items: list[MenuItemResponse] = Field(default_factory=list)
    updatedAt: datetime


class GeoVerificationResponse(BaseModel):
    verified: bool
    geoToken: str
    expiresAt: datetime
    distanceMeters: float


class OrderTotalsResponse(BaseModel):
    subtotalCents: int
    taxCents: int
    tipCents: int
    totalCents: int
    currency: str


class OrderItemModifierResponse(BaseModel):
    optionName: str
    valueName: str
    priceDeltaCents: int


class OrderItemResponse(BaseModel):
    orderItemId: str
    menuItemId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    modifiers: list[OrderItemModifierResponse] = Field(default_factory=list)
    specialInstructions: str | None = None


class OrderResponse(BaseModel):
    orderId: str
    locationId: str
    orderNumber: int | None = None
    status: str
    paymentStatus: str
    paymentMethod: str
    items: list[OrderItemResponse] = Field(default_factory=list)
    subtotal: MoneyResponse
    tax: MoneyResponse
    tip: MoneyResponse
    total: MoneyResponse
    tableNumber: str | None = None
    customerName: str | None = None
    customerPhone: str | None = None
    specialInstructions: str | None = None
    placedAt: datetime
    acceptedAt: datetime | None = None
    completedAt: datetime | None = None
    cancelledAt: datetime | None = None
    cancelledReason: str | None = None


class OrderStatusResponse(BaseModel):
    orderId: str
    orderNumber: int | None = None
    status: str
    paymentStatus: str
    placedAt: datetime
    acceptedAt: datetime | None = None
    completedAt: datetime | None = None


class PaymentIntentResponse(BaseModel):
    clientSecret: str
    paymentIntentId: str


class StaffOrderQueueResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)
    nextCursor: str | None = None


class WebhookAckResponse(BaseModel):
    received: bool
    eventType: str
    outcome: str
