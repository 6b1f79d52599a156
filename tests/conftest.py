import os
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

settings.register_profile(
    "storefront",
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("storefront")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def _storefront_domain(request):
    """Initialize the storefront domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(scope="session", autouse=True)
def setup_db(_storefront_domain):
    from storefront.utils.db import drop_db, setup_db

    setup_db(_storefront_domain)

    yield

    drop_db(_storefront_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


@pytest.fixture()
def storefront_domain(_storefront_domain):
    return _storefront_domain


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    """Persist a product and return it. Keyword args override the defaults."""
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _make(
        title="Glitter Goddess",
        price=29.99,
        category="glitter",
        variants=None,
        active=True,
    ):
        product = Product.create(
            title=title,
            description=f"{title} press-on nails",
            price=price,
            category=category,
            variants=variants if variants is not None else [{"size": "M", "design": "Gold", "stock": 5}],
        )
        if not active:
            product.deactivate()
        repo = current_domain.repository_for(Product)
        repo.add(product)
        return repo.get(product.id)

    return _make


@pytest.fixture()
def shipping_info():
    return {
        "name": "Jane Doe",
        "phone": "555-0100",
        "address": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }


@pytest.fixture()
def fake_gateway():
    from storefront.payments.gateway import reset_gateway, set_gateway
    from storefront.payments.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway(webhook_secret="whsec_test")
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture()
def stock_of():
    """Read a variant's persisted stock."""
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _stock(product_id, size="M", design="Gold"):
        product = current_domain.repository_for(Product).get(product_id)
        return product.find_variant(size, design).stock

    return _stock
