import os
from pathlib import Path

import pytest

# Keep test runs from writing rotating log files into the working tree.
os.environ.setdefault("STOREFRONT_LOG_DIR", "")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config environment before the domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def storefront_bed():
    from protean.integrations.pytest import DomainFixture
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    bed = DomainFixture(storefront)
    bed.setup()
    setup_db(storefront)
    yield bed
    drop_db(storefront)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    """Run every test inside the storefront domain with empty stores and no live subscribers."""
    from protean import current_domain
    from storefront.live.hub import reset_hub

    with storefront_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_hub()


@pytest.fixture
def make_product():
    """Create and persist a product; returns its id."""
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _make(name="古早味肉粽三層肉", price=50, stock=3, image=None, tags=None):
        product = Product.create(name=name, price=price, stock=stock, image=image, tags=tags)
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    return _make


@pytest.fixture
def stock_of():
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _stock(product_id):
        return current_domain.repository_for(Product).get(product_id).stock

    return _stock
