"""
Display-name enrichment

Products and orders reference a category / customer by id only. Before either
is handed back to a caller the referenced record is looked up and its display
name copied in. A missing reference or a referent that no longer exists
leaves the name unset; it is never an error.
"""
import logging
from typing import Optional

from repositories import CategoryRepository, CustomerRepository
from schemas import Order, Product

logger = logging.getLogger(__name__)


def _has_reference(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def with_category_name(product: Product, categories: CategoryRepository) -> Product:
    if not _has_reference(product.category_id):
        return product

    category = categories.find_by_id(product.category_id)
    if category is None:
        logger.debug("Category %s of product %s not found", product.category_id, product.id)
        return product

    return product.model_copy(update={"category_name": category.name})


def with_customer_name(order: Order, customers: CustomerRepository) -> Order:
    if not _has_reference(order.customer_id):
        return order

    customer = customers.find_by_id(order.customer_id)
    if customer is None:
        logger.debug("Customer %s of order %s not found", order.customer_id, order.id)
        return order

    return order.model_copy(update={"customer_name": customer.full_name})
