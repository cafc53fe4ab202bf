"""Product aggregate: the sellable items of the shop and their stock.

Stock is a plain non-negative counter. Orders take units out through
`withdraw`, admin restocks put them back through `replenish`; both keep the
counter from ever going below zero.
"""

import json
from datetime import datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from storefront.catalogue.events import ProductRestocked
from storefront.domain import storefront


class StockConflict(Exception):
    """A decrement found less stock than validation had observed."""

    def __init__(self, product_id, requested, available):
        super().__init__(f"Product {product_id}: requested {requested}, only {available} left")
        self.product_id = product_id
        self.requested = requested
        self.available = available


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=500)
    tags = Text()  # JSON: list of tag strings
    created_at = DateTime(default=datetime.now)
    updated_at = DateTime(default=datetime.now)

    @classmethod
    def create(cls, name, price, stock=0, image=None, tags=None):
        now = datetime.now()
        return cls(
            name=name,
            price=price,
            stock=stock,
            image=image,
            tags=json.dumps(list(tags), ensure_ascii=False) if tags else None,
            created_at=now,
            updated_at=now,
        )

    @property
    def tag_list(self) -> list[str]:
        return json.loads(self.tags) if self.tags else []

    @property
    def sold_out(self) -> bool:
        return not self.stock

    def can_supply(self, quantity) -> bool:
        return (self.stock or 0) >= quantity

    def withdraw(self, quantity):
        """Take `quantity` units out of stock for an order."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if not self.can_supply(quantity):
            raise StockConflict(self.id, quantity, self.stock or 0)

        self.stock = self.stock - quantity
        self.updated_at = datetime.now()

    def give_back(self, quantity):
        """Return units taken by an order that did not go through."""
        self.stock = (self.stock or 0) + quantity
        self.updated_at = datetime.now()

    def replenish(self, quantity):
        """Admin restock: add units and record the movement."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError({"quantity": ["Restock quantity must be a positive integer"]})

        previous = self.stock or 0
        self.stock = previous + quantity
        now = datetime.now()
        self.updated_at = now

        self.raise_(
            ProductRestocked(
                product_id=self.id,
                product_name=self.name,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                restocked_at=now,
            )
        )
