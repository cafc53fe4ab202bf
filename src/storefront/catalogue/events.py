"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductRestocked:
    """Stock was added to a product by an admin restock."""

    __version__ = 1

    product_id = Identifier(required=True)
    product_name = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    restocked_at = DateTime(required=True)
