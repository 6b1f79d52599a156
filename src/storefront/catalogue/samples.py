"""Sample catalogue used by ``manage.py seed`` and local development."""

import json

from protean.utils.globals import current_domain

from storefront.catalogue.management import CreateProduct
from storefront.domain import logger

_SIZES = ("XS", "S", "M", "L", "XL")


def _variants(design, stocks, sizes=_SIZES):
    return [{"size": size, "design": design, "stock": stock} for size, stock in zip(sizes, stocks, strict=True)]


SAMPLE_PRODUCTS = [
    {
        "title": "Classic French Manicure",
        "description": "Natural pink base with crisp white tips. Reusable press-ons for everyday wear.",
        "price": 24.99,
        "category": "french",
        "featured": True,
        "variants": _variants("Classic French", (25, 30, 35, 20, 15)),
    },
    {
        "title": "Glitter Goddess",
        "description": "Full-coverage glitter set in gold or silver, sealed with a high-shine top coat.",
        "price": 29.99,
        "category": "glitter",
        "featured": True,
        "variants": _variants("Gold Glitter", (20, 25, 30, 18, 12))
        + _variants("Silver Glitter", (22, 28, 15), sizes=("S", "M", "L")),
    },
    {
        "title": "Matte Black Elegance",
        "description": "Velvety matte black finish in a medium length square-oval shape.",
        "price": 22.99,
        "category": "matte",
        "featured": False,
        "variants": _variants("Matte Black", (18, 24, 28, 22, 16)),
    },
    {
        "title": "Chrome Mirror Finish",
        "description": "Mirror-bright chrome powder finish that catches every light.",
        "price": 34.99,
        "category": "chrome",
        "featured": True,
        "variants": _variants("Chrome Silver", (15, 20, 25, 18, 12)),
    },
    {
        "title": "Stiletto Drama",
        "description": "Long pointed stiletto tips in a glossy red.",
        "price": 39.99,
        "category": "stiletto",
        "featured": False,
        "variants": _variants("Red Stiletto", (12, 18, 15, 10), sizes=("S", "M", "L", "XL")),
    },
    {
        "title": "Coffin Chic",
        "description": "Ballerina coffin shape in a soft nude pink.",
        "price": 32.99,
        "category": "coffin",
        "featured": True,
        "variants": _variants("Nude Pink Coffin", (16, 22, 26, 20, 14)),
    },
    {
        "title": "Almond Perfection",
        "description": "Classic almond shape that elongates the fingers.",
        "price": 26.99,
        "category": "almond",
        "featured": False,
        "variants": _variants("Soft Pink Almond", (20, 28, 32, 24, 18)),
    },
    {
        "title": "Square Classic",
        "description": "Short clear square tips, ready for your own polish.",
        "price": 21.99,
        "category": "square",
        "featured": False,
        "variants": _variants("Clear Square", (25, 30, 35, 28, 20)),
    },
]


def seed_catalogue(products=SAMPLE_PRODUCTS) -> list[str]:
    """Create every sample product. Must run inside a domain context."""
    product_ids = []
    for data in products:
        product_id = current_domain.process(
            CreateProduct(
                title=data["title"],
                description=data["description"],
                price=data["price"],
                category=data["category"],
                featured=data["featured"],
                variants=json.dumps(data["variants"]),
            ),
            asynchronous=False,
        )
        product_ids.append(product_id)

    logger.info("catalogue_seeded", products=len(product_ids))
    return product_ids
