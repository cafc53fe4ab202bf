"""Inventory store: the Product repository as seen by order placement."""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.repository(part_of=Product)
class InventoryStore:
    """Reads and conditional stock moves over Product records.

    `try_decrement` is a check-and-decrement on one record; callers that need
    it to be atomic across concurrent orders run it under the placement lock
    (see `storefront.ordering.placement`).
    """

    def lookup(self, product_id) -> Product | None:
        if product_id in (None, ""):
            return None
        try:
            return self.get(str(product_id))
        except ObjectNotFoundError:
            return None

    def try_decrement(self, product_id, quantity) -> bool:
        product = self.lookup(product_id)
        if product is None or not product.can_supply(quantity):
            return False

        product.withdraw(quantity)
        self.add(product)
        return True

    def restore(self, product_id, quantity) -> None:
        product = self.lookup(product_id)
        if product is None:
            return

        product.give_back(quantity)
        self.add(product)

    def catalogue(self) -> list[Product]:
        products = self._dao.query.all().items
        return sorted(products, key=lambda p: p.created_at or datetime.min)

    def in_stock(self) -> list[Product]:
        return [p for p in self.catalogue() if (p.stock or 0) > 0]

    def snapshot(self, product_ids) -> dict[str, Product]:
        """Current records for the given ids; unknown ids are left out."""
        found = {}
        for product_id in set(product_ids):
            product = self.lookup(product_id)
            if product is not None:
                found[str(product_id)] = product
        return found
