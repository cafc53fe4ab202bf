"""Domain events for the Order aggregate.

Both events feed the admin live feed; they carry identifiers only; the feed
re-reads the order and the current product records when it publishes.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was accepted: stock taken, order numbered and recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = Integer(required=True)
    order_date = String(required=True)
    total = Float(required=True)
    line_count = Integer(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCompletionChanged:
    """An admin marked an order as completed, or took the mark back."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = Integer(required=True)
    completed = Boolean(required=True)
    changed_at = DateTime(required=True)
