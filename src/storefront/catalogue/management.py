"""Catalogue administration: commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.catalogue.repository import stock_guard
from storefront.domain import logger, storefront


@storefront.command(part_of="Product")
class CreateProduct:
    title: String(required=True, max_length=100)
    description: Text(required=True)
    price: Float(required=True, min_value=0.0)
    category: String(required=True, max_length=20)
    featured: Boolean(default=False)
    variants: Text()  # JSON list of {size, design, stock}


@storefront.command(part_of="Product")
class UpdateProductDetails:
    product_id: Identifier(required=True)
    title: String(max_length=100)
    description: Text()
    price: Float(min_value=0.0)
    category: String(max_length=20)
    featured: Boolean()


@storefront.command(part_of="Product")
class AddVariant:
    product_id: Identifier(required=True)
    size: String(required=True, max_length=20)
    design: String(required=True, max_length=100)
    stock: Integer(default=0, min_value=0)


@storefront.command(part_of="Product")
class RestockVariant:
    product_id: Identifier(required=True)
    size: String(required=True, max_length=20)
    design: String(required=True, max_length=100)
    quantity: Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class ActivateProduct:
    product_id: Identifier(required=True)


@storefront.command(part_of="Product")
class DeactivateProduct:
    product_id: Identifier(required=True)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        variants = json.loads(command.variants) if command.variants else []
        product = Product.create(
            title=command.title,
            description=command.description,
            price=command.price,
            category=command.category,
            featured=command.featured,
            variants=variants,
        )
        current_domain.repository_for(Product).add(product)
        logger.info("product_created", product_id=str(product.id), variants=len(variants))
        return str(product.id)

    @handle(UpdateProductDetails)
    def update_details(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_details(
            title=command.title,
            description=command.description,
            price=command.price,
            category=command.category,
            featured=command.featured,
        )
        repo.add(product)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        variant = product.add_variant(command.size, command.design, command.stock)
        repo.add(product)
        return str(variant.id)

    @handle(RestockVariant)
    def restock_variant(self, command):
        repo = current_domain.repository_for(Product)
        new_stock = repo.restock(command.product_id, command.size, command.design, command.quantity)
        logger.info(
            "variant_restocked",
            product_id=str(command.product_id),
            size=command.size,
            design=command.design,
            new_stock=new_stock,
        )
        return new_stock

    @handle(ActivateProduct)
    def activate(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.activate()
        repo.add(product)

    @handle(DeactivateProduct)
    def deactivate(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.deactivate()
        repo.add(product)


def restock(product_id, size, design, quantity) -> int:
    """Process ``RestockVariant`` while holding the product's stock guard.

    The handler's unit of work commits when ``process`` returns, so the
    guard spans that commit and no decrement interleaves with it.
    """
    command = RestockVariant(product_id=product_id, size=size, design=design, quantity=quantity)
    with stock_guard(product_id):
        return current_domain.process(command, asynchronous=False)
