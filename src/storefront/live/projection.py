"""Enriched order projection: an order joined with live product data.

Line items are joined against the product records as they are *now*, every
time an order is read or broadcast. A renamed or repriced product therefore
shows up with its new name and price on older orders too. Products that no
longer exist come back with name, price and image set to None.
"""

from storefront.catalogue.product import Product


def product_snapshot(product: Product | None) -> dict:
    if product is None:
        return {"name": None, "price": None, "image": None}
    return {"name": product.name, "price": product.price, "image": product.image}


def project_line(line, products: dict) -> dict:
    return {
        "productId": str(line.product_id),
        "quantity": line.quantity,
        **product_snapshot(products.get(str(line.product_id))),
    }


def project_order(order, products: dict | None = None) -> dict:
    """Wire form of an order; `products` (id -> Product) enables line enrichment."""
    customer = order.customer
    projected = {
        "id": str(order.id),
        "orderNumber": order.order_number,
        "orderDate": order.order_date,
        "total": order.total,
        "name": customer.name if customer else None,
        "phone": customer.phone if customer else None,
        "address": customer.address if customer else None,
        "pickupDate": customer.pickup_date if customer else None,
        "note": customer.note if customer else None,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "completed": bool(order.completed),
    }
    if products is None:
        projected["items"] = [{"productId": str(line.product_id), "quantity": line.quantity} for line in order.lines]
    else:
        projected["items"] = [project_line(line, products) for line in order.lines]
    return projected


def enrich_orders(orders, inventory) -> list[dict]:
    """Project many orders, reading each referenced product once."""
    product_ids = {str(line.product_id) for order in orders for line in order.lines}
    products = inventory.snapshot(product_ids)
    return [project_order(order, products) for order in orders]
