"""Application tests for catalogue admin commands and the Product repository."""

import json
import threading

import pytest
from protean import current_domain
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from storefront.catalogue.management import (
    ActivateProduct,
    AddVariant,
    CreateProduct,
    DeactivateProduct,
    RestockVariant,
    UpdateProductDetails,
    restock,
)
from storefront.catalogue.product import Product
from storefront.catalogue.repository import ProductRepository, stock_guard
from storefront.catalogue.samples import SAMPLE_PRODUCTS, seed_catalogue
from storefront.errors import InsufficientStock, ProductUnavailable, VariantUnavailable


def _create(**overrides):
    data = {
        "title": "Chrome Mirror Finish",
        "description": "Mirror-bright chrome finish.",
        "price": 34.99,
        "category": "chrome",
        "variants": json.dumps([{"size": "M", "design": "Chrome Silver", "stock": 10}]),
    }
    data.update(overrides)
    return current_domain.process(CreateProduct(**data), asynchronous=False)


def _repo():
    return current_domain.repository_for(Product)


def _run_concurrently(domain, work):
    """Start every callable at once, each in its own thread; return what they raised."""
    errors = []
    errors_lock = threading.Lock()
    start = threading.Barrier(len(work))

    def worker(fn):
        with domain.domain_context():
            start.wait()
            try:
                fn()
            except Exception as exc:
                with errors_lock:
                    errors.append(exc)

    threads = [threading.Thread(target=worker, args=(fn,)) for fn in work]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


class TestProductCommands:
    def test_create_product_persists_variants(self):
        product_id = _create()

        product = _repo().get(product_id)
        assert product.title == "Chrome Mirror Finish"
        assert product.find_variant("M", "Chrome Silver").stock == 10

    def test_create_product_without_variants(self):
        product_id = _create(variants=None)

        assert _repo().get(product_id).variants == []

    def test_update_details(self):
        product_id = _create()

        current_domain.process(
            UpdateProductDetails(product_id=product_id, price=29.99, featured=True),
            asynchronous=False,
        )

        product = _repo().get(product_id)
        assert product.price == 29.99
        assert product.featured is True

    def test_add_variant(self):
        product_id = _create()

        current_domain.process(
            AddVariant(product_id=product_id, size="L", design="Chrome Gold", stock=4),
            asynchronous=False,
        )

        assert _repo().get(product_id).find_variant("L", "Chrome Gold").stock == 4

    def test_add_duplicate_variant_rejected(self):
        product_id = _create()

        with pytest.raises(ValidationError):
            current_domain.process(
                AddVariant(product_id=product_id, size="M", design="Chrome Silver", stock=1),
                asynchronous=False,
            )

    def test_restock_returns_new_stock(self):
        product_id = _create()

        new_stock = current_domain.process(
            RestockVariant(product_id=product_id, size="M", design="Chrome Silver", quantity=5),
            asynchronous=False,
        )

        assert new_stock == 15
        assert _repo().get(product_id).find_variant("M", "Chrome Silver").stock == 15

    def test_restock_unknown_variant(self):
        product_id = _create()

        with pytest.raises(VariantUnavailable):
            current_domain.process(
                RestockVariant(product_id=product_id, size="XS", design="Chrome Silver", quantity=5),
                asynchronous=False,
            )

    def test_deactivate_and_activate(self):
        product_id = _create()

        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
        assert _repo().find_active(product_id) is None

        current_domain.process(ActivateProduct(product_id=product_id), asynchronous=False)
        assert _repo().find_active(product_id) is not None

    def test_unknown_product(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(DeactivateProduct(product_id="missing"), asynchronous=False)


class TestProductRepository:
    def test_find_active_missing_product(self):
        assert _repo().find_active("does-not-exist") is None

    def test_list_active_excludes_inactive(self, make_product):
        make_product(title="Visible")
        make_product(title="Hidden", active=False)

        titles = [p.title for p in _repo().list_active()]

        assert titles == ["Visible"]

    def test_list_active_by_category(self, make_product):
        make_product(title="Glitter", category="glitter")
        make_product(title="Matte", category="matte")

        assert [p.title for p in _repo().list_active(category="matte")] == ["Matte"]

    def test_low_stock(self, make_product):
        make_product(title="Plenty", variants=[{"size": "M", "design": "Gold", "stock": 50}])
        make_product(title="Scarce", variants=[{"size": "M", "design": "Gold", "stock": 2}])

        assert [p.title for p in _repo().low_stock(threshold=5)] == ["Scarce"]

    def test_check_stock(self, make_product):
        product = make_product()

        assert _repo().check_stock(product.id, "M", "Gold", 5) == {"available": True, "stock": 5}
        assert _repo().check_stock(product.id, "M", "Gold", 6) == {"available": False, "stock": 5}

    def test_check_stock_unknown_variant(self, make_product):
        product = make_product()

        with pytest.raises(VariantUnavailable):
            _repo().check_stock(product.id, "XL", "Gold", 1)

    def test_decrement_stock_persists(self, make_product, stock_of):
        product = make_product()

        assert _repo().decrement_stock(product.id, "M", "Gold", 2) == 3
        assert stock_of(product.id) == 3

    def test_decrement_stock_insufficient_leaves_stock(self, make_product, stock_of):
        product = make_product()

        with pytest.raises(InsufficientStock) as exc:
            _repo().decrement_stock(product.id, "M", "Gold", 6)

        assert exc.value.available_stock == 5
        assert stock_of(product.id) == 5

    def test_decrement_stock_missing_product(self):
        with pytest.raises(ProductUnavailable):
            _repo().decrement_stock("missing", "M", "Gold", 1)

    def test_decrement_stock_allowed_on_inactive_product(self, make_product, stock_of):
        product = make_product(active=False)

        _repo().decrement_stock(product.id, "M", "Gold", 1)

        assert stock_of(product.id) == 4


class TestConcurrentDecrement:
    def test_concurrent_decrements_never_oversell(self, storefront_domain, make_product, stock_of):
        product = make_product(variants=[{"size": "M", "design": "Gold", "stock": 5}])
        outcomes = []
        outcome_lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            with storefront_domain.domain_context():
                start.wait()
                try:
                    current_domain.repository_for(Product).decrement_stock(product.id, "M", "Gold", 1)
                    result = "ok"
                except InsufficientStock:
                    result = "short"
            with outcome_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 5
        assert outcomes.count("short") == 3
        assert stock_of(product.id) == 0

    def test_sibling_variants_decrement_concurrently(self, storefront_domain, make_product, stock_of):
        product = make_product(
            variants=[
                {"size": "M", "design": "Gold", "stock": 50},
                {"size": "M", "design": "Silver", "stock": 50},
            ]
        )
        work = [
            lambda design=design: _repo().decrement_stock(product.id, "M", design, 1)
            for design in ["Gold", "Silver"] * 20
        ]

        errors = _run_concurrently(storefront_domain, work)

        assert errors == []
        assert stock_of(product.id, design="Gold") == 30
        assert stock_of(product.id, design="Silver") == 30

    def test_restock_racing_decrements(self, storefront_domain, make_product, stock_of):
        product = make_product(variants=[{"size": "M", "design": "Gold", "stock": 100}])
        work = [lambda: _repo().decrement_stock(product.id, "M", "Gold", 1)] * 20
        work += [lambda: restock(product.id, "M", "Gold", 1)] * 20

        errors = _run_concurrently(storefront_domain, work)

        assert errors == []
        assert stock_of(product.id) == 100


class TestVersionConflicts:
    def test_conflict_is_retried_against_fresh_state(self, make_product, stock_of, monkeypatch):
        product = make_product()
        add = ProductRepository.add
        conflicts = []

        def add_with_one_conflict(self, item):
            if not conflicts:
                conflicts.append(item.id)
                raise ExpectedVersionError("stale product")
            return add(self, item)

        monkeypatch.setattr(ProductRepository, "add", add_with_one_conflict)

        assert _repo().decrement_stock(product.id, "M", "Gold", 2) == 3
        assert len(conflicts) == 1
        assert stock_of(product.id) == 3

    def test_persistent_conflict_gives_up_without_writing(self, make_product, stock_of, monkeypatch):
        product = make_product()

        def always_conflict(self, item):
            raise ExpectedVersionError("stale product")

        monkeypatch.setattr(ProductRepository, "add", always_conflict)

        with pytest.raises(ExpectedVersionError):
            _repo().restock(product.id, "M", "Gold", 5)

        monkeypatch.undo()
        assert stock_of(product.id) == 5

    def test_guard_is_stable_per_product(self):
        assert stock_guard("prod-1") is stock_guard("prod-1")


class TestSeed:
    def test_seed_catalogue_creates_sample_products(self):
        product_ids = seed_catalogue()

        assert len(product_ids) == len(SAMPLE_PRODUCTS)
        glitter = next(p for p in _repo().list_active() if p.title == "Glitter Goddess")
        assert glitter.find_variant("S", "Silver Glitter").stock == 22
