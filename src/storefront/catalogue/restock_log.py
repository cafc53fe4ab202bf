"""Restock log: append-only projection of admin restocks."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalogue.events import ProductRestocked
from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.projection
class RestockEntry:
    entry_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True)
    restocked_at = DateTime(required=True)


@storefront.projector(projector_for=RestockEntry, aggregates=[Product])
class RestockLogProjector:
    @on(ProductRestocked)
    def on_product_restocked(self, event):
        current_domain.repository_for(RestockEntry).add(
            RestockEntry(
                entry_id=str(uuid.uuid4()),
                product_id=event.product_id,
                product_name=event.product_name,
                quantity=event.quantity,
                restocked_at=event.restocked_at,
            )
        )


def restock_history() -> list[RestockEntry]:
    """All restock entries, oldest first."""
    entries = current_domain.repository_for(RestockEntry)._dao.query.all().items
    return sorted(entries, key=lambda e: e.restocked_at)
