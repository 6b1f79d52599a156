"""Storefront domain: catalogue stock, orders and payment reconciliation.

A single Protean domain hosts three contexts:

- ``storefront.catalogue``: products and stock-bearing variants
- ``storefront.ordering``: cart validation, checkout and the order lifecycle
- ``storefront.payments``: gateway port/adapters and webhook reconciliation
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging(log_dir="logs", log_file_prefix="storefront")

logger = get_logger(__name__)

storefront = Domain(name="storefront")
