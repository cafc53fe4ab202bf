"""Storefront bounded context: catalogue, order placement and live order feed.

Products and their stock, the order ledger with its per-day order numbers,
restock logging, and the admin live feed all live in this one domain so that
placing an order can reserve stock, number the order and record it inside a
single unit of work.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
