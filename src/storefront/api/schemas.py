"""Pydantic request/response schemas for the Storefront API.

These are the external contracts (camelCase on the wire, as the shop's
pages send them), separate from the internal Protean commands. Quantities
are accepted as raw JSON values: deciding whether one is a usable positive
integer belongs to order placement, which reports every bad line at once.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Order placement
# ---------------------------------------------------------------------------
class CartItemSchema(CamelModel):
    product_id: str | int | None = None
    quantity: Any = None


class PlaceOrderRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "name": "王小明",
                    "phone": "0912345678",
                    "address": "台南市中西區民族路二段 1 號",
                    "pickupDate": "2026-06-19",
                    "note": "不要辣",
                    "items": [{"productId": "a1b2c3", "quantity": 2}],
                }
            ]
        },
    )

    name: str | None = None
    phone: str | None = None
    address: str | None = None
    pickup_date: str | None = None
    note: str | None = None
    items: list[CartItemSchema] = Field(default_factory=list)

    def cart(self) -> list[dict]:
        return [
            {"product_id": None if item.product_id is None else str(item.product_id), "quantity": item.quantity}
            for item in self.items
        ]

    def customer(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "pickup_date": self.pickup_date,
            "note": self.note,
        }


class PlaceOrderResponse(CamelModel):
    success: bool
    message: str
    order_id: str | None = None
    order_number: int | None = None
    order_date: str | None = None
    total: float | None = None


# ---------------------------------------------------------------------------
# Admin actions
# ---------------------------------------------------------------------------
class CompleteOrderRequest(CamelModel):
    order_id: str
    completed: bool = True


class RestockRequest(CamelModel):
    product_id: str | int
    quantity: Any = None


class ActionResponse(CamelModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
class ProductSchema(CamelModel):
    id: str
    name: str
    price: float
    stock: int
    image: str | None = None
    tags: list[str] = Field(default_factory=list)


class RestockEntrySchema(CamelModel):
    time: str
    product_id: str
    name: str
    quantity: int
