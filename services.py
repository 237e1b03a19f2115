"""
Service Layer

Business operations for categories, customers, products and orders. Services
own the search filters, the not-found rules and the display-name enrichment;
repositories only move documents.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pymongo.database import Database

from enrichment import with_category_name, with_customer_name
from errors import EntityNotFoundError
from filters import FilterBuilder
from pagination import Page, PageRequest
from repositories import (
    CategoryRepository,
    CustomerRepository,
    MongoRepository,
    OrderRepository,
    ProductRepository,
)
from schemas import Category, Customer, Order, Product, Schema

logger = logging.getLogger(__name__)

M = TypeVar("M", Category, Customer, Product, Order)

LOW_STOCK_THRESHOLD = 10


class CrudService(Generic[M]):
    """
    Operations shared by every entity

    Subclasses override present() when returned entities need decorating.
    """

    entity_name: str
    repository: MongoRepository

    def present(self, entity: M) -> M:
        return entity

    def _present_page(self, page: Page[M]) -> Page[M]:
        return page.map(self.present)

    def save(self, entity: M) -> M:
        logger.debug("Request to save %s : %s", self.entity_name, entity)
        return self.present(self.repository.save(entity))

    def update(self, entity: M) -> M:
        """
        Replace every mutable field of an existing entity

        Raises:
            EntityNotFoundError: no entity with that id
        """
        logger.debug("Request to update %s : %s", self.entity_name, entity)
        if self.repository.find_by_id(entity.id) is None:
            raise EntityNotFoundError(self.entity_name, entity.id)
        return self.present(self.repository.save(entity))

    def partial_update(self, patch: Schema) -> M:
        """
        Apply only the fields present and non-null in patch

        Raises:
            EntityNotFoundError: no entity with that id
        """
        logger.debug("Request to partially update %s : %s", self.entity_name, patch)
        existing = self.repository.find_by_id(patch.id)
        if existing is None:
            raise EntityNotFoundError(self.entity_name, patch.id)

        changes = patch.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})
        merged = self.repository.model.model_validate({**existing.model_dump(), **changes})
        return self.present(self.repository.save(merged))

    def find_all(self, page_request: PageRequest) -> Page[M]:
        logger.debug("Request to get all %ss", self.entity_name)
        return self._present_page(self.repository.find_all(page_request))

    def find_one(self, entity_id: str) -> Optional[M]:
        logger.debug("Request to get %s : %s", self.entity_name, entity_id)
        entity = self.repository.find_by_id(entity_id)
        return self.present(entity) if entity is not None else None

    def delete(self, entity_id: str) -> None:
        logger.debug("Request to delete %s : %s", self.entity_name, entity_id)
        self.repository.delete_by_id(entity_id)

    def delete_many(self, entity_ids: List[str]) -> None:
        logger.debug("Request to bulk delete %s %ss", len(entity_ids), self.entity_name)
        self.repository.delete_all_by_id(entity_ids)

    def _search(self, filters: FilterBuilder, page_request: PageRequest) -> Page[M]:
        query = filters.build()
        return self._present_page(self.repository.find_all_where(query, page_request))


class CategoryService(CrudService[Category]):
    entity_name = "category"

    def __init__(self, db: Database):
        self.repository = CategoryRepository(db)

    def find_all_active(self, page_request: PageRequest) -> Page[Category]:
        logger.debug("Request to get all active categories")
        return self.repository.find_all_active(page_request)

    def search_categories(
        self,
        name: Optional[str],
        slug: Optional[str],
        active: Optional[bool],
        page_request: PageRequest,
    ) -> Page[Category]:
        logger.debug("Request to search categories with filters: name=%s, slug=%s, active=%s", name, slug, active)
        filters = (
            FilterBuilder()
            .contains("name", "name", name)
            .contains("slug", "slug", slug)
            .flag("active", "active", active)
        )
        return self._search(filters, page_request)

    def get_statistics(self) -> Dict[str, Any]:
        logger.debug("Request to get category statistics")
        categories = self.repository.find_all_unpaged()
        total = len(categories)
        active = sum(1 for c in categories if c.active)
        return {
            "totalCategories": total,
            "activeCategories": active,
            "inactiveCategories": total - active,
            "categoriesWithImage": sum(1 for c in categories if c.image_url and c.image_url.strip()),
        }


class CustomerService(CrudService[Customer]):
    entity_name = "customer"

    def __init__(self, db: Database):
        self.repository = CustomerRepository(db)

    def find_all_active(self, page_request: PageRequest) -> Page[Customer]:
        logger.debug("Request to get all active customers")
        return self.repository.find_all_active(page_request)

    def search_customers(
        self,
        name: Optional[str],
        email: Optional[str],
        city: Optional[str],
        country: Optional[str],
        active: Optional[bool],
        page_request: PageRequest,
    ) -> Page[Customer]:
        """Search customers; name matches the first OR the last name"""
        logger.debug(
            "Request to search customers with filters: name=%s, email=%s, city=%s, country=%s, active=%s",
            name, email, city, country, active,
        )
        filters = (
            FilterBuilder()
            .contains_any("name", ("first_name", "last_name"), name)
            .contains("email", "email", email)
            .contains("city", "city", city)
            .contains("country", "country", country)
            .flag("active", "active", active)
        )
        return self._search(filters, page_request)

    def get_statistics(self) -> Dict[str, Any]:
        logger.debug("Request to get customer statistics")
        customers = self.repository.find_all_unpaged()
        total = len(customers)
        active = sum(1 for c in customers if c.active)
        cities = {c.city for c in customers if c.city and c.city.strip()}
        return {
            "totalCustomers": total,
            "activeCustomers": active,
            "inactiveCustomers": total - active,
            "customersWithPhone": sum(1 for c in customers if c.phone and c.phone.strip()),
            "uniqueCities": len(cities),
        }


class ProductService(CrudService[Product]):
    entity_name = "product"

    def __init__(self, db: Database):
        self.repository = ProductRepository(db)
        self.categories = CategoryRepository(db)

    def present(self, product: Product) -> Product:
        return with_category_name(product, self.categories)

    def find_all_active(self, page_request: PageRequest) -> Page[Product]:
        logger.debug("Request to get all active products")
        return self._present_page(self.repository.find_all_active(page_request))

    def search_products(
        self,
        name: Optional[str],
        category_id: Optional[str],
        active: Optional[bool],
        min_price: Optional[Decimal],
        max_price: Optional[Decimal],
        page_request: PageRequest,
    ) -> Page[Product]:
        logger.debug(
            "Request to search products with filters: name=%s, categoryId=%s, active=%s, minPrice=%s, maxPrice=%s",
            name, category_id, active, min_price, max_price,
        )
        filters = (
            FilterBuilder()
            .contains("name", "name", name)
            .equals("categoryId", "category_id", category_id)
            .flag("active", "active", active)
            .between("price", "price", min_price, max_price)
        )
        return self._search(filters, page_request)

    def get_statistics(self) -> Dict[str, Any]:
        logger.debug("Request to get product statistics")
        products = self.repository.find_all_unpaged()
        total = len(products)
        active = sum(1 for p in products if p.active)
        prices = [float(p.price) for p in products if p.price is not None]
        return {
            "totalProducts": total,
            "activeProducts": active,
            "inactiveProducts": total - active,
            "averagePrice": sum(prices) / len(prices) if prices else 0.0,
            "totalStock": sum(p.stock_quantity for p in products if p.stock_quantity is not None),
            "lowStockCount": sum(
                1 for p in products if p.stock_quantity is not None and p.stock_quantity < LOW_STOCK_THRESHOLD
            ),
        }


class OrderService(CrudService[Order]):
    entity_name = "order"

    def __init__(self, db: Database):
        self.repository = OrderRepository(db)
        self.customers = CustomerRepository(db)

    def present(self, order: Order) -> Order:
        return with_customer_name(order, self.customers)

    def find_by_customer_id(self, customer_id: str, page_request: PageRequest) -> Page[Order]:
        logger.debug("Request to get orders for customer : %s", customer_id)
        return self._present_page(self.repository.find_all_by_customer_id(customer_id, page_request))

    def search_orders(
        self,
        customer_id: Optional[str],
        status: Optional[str],
        payment_method: Optional[str],
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        min_total: Optional[Decimal],
        max_total: Optional[Decimal],
        page_request: PageRequest,
    ) -> Page[Order]:
        logger.debug(
            "Request to search orders with filters: customerId=%s, status=%s, paymentMethod=%s, "
            "startDate=%s, endDate=%s, minTotal=%s, maxTotal=%s",
            customer_id, status, payment_method, start_date, end_date, min_total, max_total,
        )
        filters = (
            FilterBuilder()
            .equals("customerId", "customer_id", customer_id)
            .contains("status", "status", status)
            .contains("paymentMethod", "payment_method", payment_method)
            .between("orderDate", "order_date", start_date, end_date)
            .between("totalAmount", "total_amount", min_total, max_total)
        )
        return self._search(filters, page_request)

    def get_statistics(self) -> Dict[str, Any]:
        logger.debug("Request to get order statistics")
        orders = self.repository.find_all_unpaged()

        def with_status(status: str) -> int:
            return sum(1 for o in orders if o.status and o.status.upper() == status)

        return {
            "totalOrders": len(orders),
            "completedOrders": with_status("COMPLETED"),
            "pendingOrders": with_status("PENDING"),
            "cancelledOrders": with_status("CANCELLED"),
            "totalRevenue": sum(float(o.total_amount) for o in orders if o.total_amount is not None),
        }
