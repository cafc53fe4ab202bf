"""Order aggregate: one accepted cart, as recorded in the ledger.

An order is written once at placement. Its lines and total are fixed from
then on; `completed` is the only field an admin can change afterwards.
"""

from datetime import datetime

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.ordering.events import OrderCompletionChanged, OrderPlaced


@storefront.value_object(part_of="Order")
class CustomerInfo:
    """Contact and pickup details as typed by the customer; not interpreted."""

    name = String(max_length=100)
    phone = String(max_length=50)
    address = String(max_length=255)
    pickup_date = String(max_length=32)
    note = Text()


@storefront.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.aggregate
class Order:
    order_number = Integer(required=True, min_value=1)
    order_date = String(required=True, max_length=10)  # YYYY-MM-DD
    customer = ValueObject(CustomerInfo)
    lines = HasMany(OrderLine)
    total = Float(required=True, min_value=0.0)
    completed = Boolean(default=False)
    created_at = DateTime(default=datetime.now)

    @classmethod
    def place(cls, order_date, order_number, customer, lines, total):
        """Build a new order from validated lines.

        Args:
            order_date: Date the order number was issued under.
            order_number: Per-day sequence number.
            customer: Dict with name, phone, address, pickup_date, note.
            lines: Iterable of (product_id, quantity) pairs.
            total: Sum of price x quantity observed at validation.
        """
        now = datetime.now()
        order = cls(
            order_number=order_number,
            order_date=order_date,
            customer=CustomerInfo(**customer),
            total=total,
            completed=False,
            created_at=now,
        )
        for product_id, quantity in lines:
            order.add_lines(OrderLine(product_id=str(product_id), quantity=quantity))

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order_number,
                order_date=order_date,
                total=total,
                line_count=len(order.lines),
                placed_at=now,
            )
        )
        return order

    def set_completed(self, completed=True):
        self.completed = bool(completed)
        self.raise_(
            OrderCompletionChanged(
                order_id=self.id,
                order_number=self.order_number,
                completed=self.completed,
                changed_at=datetime.now(),
            )
        )
