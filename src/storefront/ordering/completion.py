"""Order completion: command and handler."""

from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.ordering.order import Order


@storefront.command(part_of="Order")
class CompleteOrder:
    """Mark an order as handed over (or clear the mark with completed=False)."""

    order_id = Identifier(required=True)
    completed = Boolean(default=True)


@storefront.command_handler(part_of=Order)
class CompleteOrderHandler:
    @handle(CompleteOrder)
    def complete_order(self, command):
        completed = True if command.completed is None else command.completed
        order = current_domain.repository_for(Order).set_completed(command.order_id, completed)
        logger.info(
            "Order completion changed",
            order_id=str(order.id),
            order_number=order.order_number,
            completed=order.completed,
        )
        return {"order_id": str(order.id), "order_number": order.order_number, "completed": order.completed}
