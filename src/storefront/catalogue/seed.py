"""Opening catalogue of the shop: rice dumplings and traditional snacks."""

from protean.utils.globals import current_domain

from storefront.catalogue.product import Product

OPENING_CATALOGUE = [
    {"name": "古早味肉粽三層肉", "price": 50, "stock": 10, "image": "zongzi_pork.jpg", "tags": ["經典", "三層肉"]},
    {"name": "古早味肉粽瘦肉", "price": 50, "stock": 5, "image": "zongzi_lean.jpg", "tags": ["瘦肉"]},
    {"name": "古早味肉粽(素食)素食", "price": 50, "stock": 3, "image": "zongzi_veg.jpg", "tags": ["素食"]},
    {"name": "手作芋頭巧", "price": 50, "stock": 10, "image": "taro_ball.jpg", "tags": ["甜點"]},
    {"name": "台式蘿蔔糕", "price": 50, "stock": 5, "image": "radish_cake.jpg", "tags": ["點心"]},
    {"name": "紅龜粿", "price": 50, "stock": 3, "image": "red_turtle.jpg", "tags": ["傳統"]},
    {"name": "草阿粿草阿粿", "price": 50, "stock": 3, "image": "caoa_cake.jpg", "tags": ["青草"]},
]


def seed_products(entries=None) -> list[str]:
    """Add the catalogue entries that are not there yet (matched by name)."""
    repo = current_domain.repository_for(Product)
    existing = {p.name for p in repo.catalogue()}

    created = []
    for entry in entries if entries is not None else OPENING_CATALOGUE:
        if entry["name"] in existing:
            continue
        product = Product.create(**entry)
        repo.add(product)
        created.append(str(product.id))
    return created
