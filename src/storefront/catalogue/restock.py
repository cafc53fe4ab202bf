"""Restock: command and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import logger, storefront


@storefront.command(part_of="Product")
class Restock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command_handler(part_of=Product)
class RestockHandler:
    @handle(Restock)
    def restock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.replenish(command.quantity)
        repo.add(product)
        logger.info("Product restocked", product_id=str(product.id), quantity=command.quantity, stock=product.stock)
        return {"product_name": product.name, "quantity": command.quantity, "stock": product.stock}
