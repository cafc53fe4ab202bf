"""Admin live feed: publishes committed order changes to the hub.

Runs as a domain event handler: with synchronous event processing it fires
right after the unit of work that placed or updated the order commits.
Publishing is best-effort; problems are logged and never reach the command
that raised the event.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.live.hub import ORDER_EVENT, get_hub
from storefront.live.projection import enrich_orders
from storefront.ordering.events import OrderCompletionChanged, OrderPlaced
from storefront.ordering.order import Order

logger = structlog.get_logger(__name__)


def publish_order(order_id) -> int:
    """Broadcast the current enriched form of an order; returns deliveries."""
    order = current_domain.repository_for(Order).get(order_id)
    inventory = current_domain.repository_for(Product)
    payload = enrich_orders([order], inventory)[0]
    return get_hub().broadcast(ORDER_EVENT, payload)


@storefront.event_handler(part_of=Order)
class OrderFeedPublisher:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        self._publish(event.order_id)

    @handle(OrderCompletionChanged)
    def on_order_completion_changed(self, event: OrderCompletionChanged) -> None:
        self._publish(event.order_id)

    def _publish(self, order_id) -> None:
        try:
            delivered = publish_order(order_id)
        except Exception as e:
            logger.error("Failed to publish order to live feed", order_id=str(order_id), error=str(e))
            return

        logger.debug("Order published to live feed", order_id=str(order_id), subscribers=delivered)
