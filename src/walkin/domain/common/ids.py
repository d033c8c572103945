from __future__ import annotations

from typing import NewType

LocationId = NewType("LocationId", str)
MenuId = NewType("MenuId", str)
MenuItemId = NewType("MenuItemId", str)
OrderId = NewType("OrderId", str)
OrderItemId = NewType("OrderItemId", str)
