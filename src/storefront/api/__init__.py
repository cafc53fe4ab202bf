"""Storefront API package."""

from storefront.api.routes import catalogue_router, feed_router, order_router

__all__ = ["order_router", "catalogue_router", "feed_router"]
