import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

# Local imports
from config import settings
from database import get_db
from errors import ApiError, BadRequestError, EntityNotFoundError
from pagination import Page, PageRequest, parse_sort
from schemas import (
    Category,
    CategoryPatch,
    Customer,
    CustomerPatch,
    Order,
    OrderPatch,
    Product,
    ProductPatch,
)
from services import CategoryService, CrudService, CustomerService, OrderService, ProductService

logging.basicConfig(
    level=settings.get_log_level(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Link", "Location"],
)


@app.exception_handler(ApiError)
def handle_api_error(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(PyMongoError)
def handle_store_error(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"title": "Internal Server Error", "status": 500, "detail": "Database error"},
    )


# Services
def get_category_service(db: Database = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_customer_service(db: Database = Depends(get_db)) -> CustomerService:
    return CustomerService(db)


def get_product_service(db: Database = Depends(get_db)) -> ProductService:
    return ProductService(db)


def get_order_service(db: Database = Depends(get_db)) -> OrderService:
    return OrderService(db)


# Helpers
class PageParams:
    """page / size / sort query parameters"""

    def __init__(
        self,
        page: int = Query(0, ge=0, description="Zero-based page index"),
        size: Optional[int] = Query(None, ge=1, description="Page size"),
        sort: List[str] = Query(default=[], description="field,asc|desc (repeatable)"),
    ):
        self.page = page
        self.size = size
        self.sort = sort

    def to_request(self, service: CrudService) -> PageRequest:
        size = min(self.size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        order = parse_sort(self.sort, service.repository.sortable_fields, service.entity_name)
        return PageRequest(self.page, size, order)


def page_response(request: Request, response: Response, page: Page) -> list:
    """Put the total and the navigation links in headers, return the content"""
    response.headers["X-Total-Count"] = str(page.total)

    def link(number: int, rel: str) -> str:
        url = request.url.include_query_params(page=number, size=page.size)
        return f'<{url}>; rel="{rel}"'

    last = max(page.total_pages - 1, 0)
    links = []
    if page.has_next:
        links.append(link(page.page + 1, "next"))
    if page.has_previous:
        links.append(link(page.page - 1, "prev"))
    links.append(link(last, "last"))
    links.append(link(0, "first"))
    response.headers["Link"] = ",".join(links)
    return page.content


def check_new(body_id: Optional[str], entity_name: str):
    if body_id is not None:
        raise BadRequestError(f"A new {entity_name} cannot already have an ID", entity_name, "idexists")


def check_ids(path_id: str, body_id: Optional[str], entity_name: str):
    if body_id is None:
        raise BadRequestError("Invalid id", entity_name, "idnull")
    if body_id != path_id:
        raise BadRequestError("Invalid ID", entity_name, "idinvalid")


def not_found(entity: Optional[object], entity_name: str, entity_id: str):
    if entity is None:
        raise EntityNotFoundError(entity_name, entity_id)
    return entity


TIMESTAMP = TypeAdapter(datetime)


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a search date bound

    A plain date (YYYY-MM-DD) covers the whole UTC day: the start bound is its
    first instant and the end bound its last millisecond. Full timestamps are
    used as given.
    """
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        day = date.fromisoformat(value)
    except ValueError:
        try:
            parsed = TIMESTAMP.validate_python(value)
        except ValidationError:
            raise BadRequestError(f"Invalid date '{value}'", "order", "baddate")
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    if end_of_day:
        return start + timedelta(days=1) - timedelta(milliseconds=1)
    return start


@app.get("/")
def read_root():
    return {"message": f"{settings.API_TITLE} running", "version": settings.API_VERSION}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = f"Error: {str(e)[:80]}"
    return response


# CRUD Endpoints: Categories
@app.post("/api/categories", response_model=Category, status_code=201)
def create_category(payload: Category, response: Response, service: CategoryService = Depends(get_category_service)):
    check_new(payload.id, "category")
    result = service.save(payload)
    response.headers["Location"] = f"/api/categories/{result.id}"
    return result


@app.put("/api/categories/{category_id}", response_model=Category)
def update_category(category_id: str, payload: Category, service: CategoryService = Depends(get_category_service)):
    check_ids(category_id, payload.id, "category")
    return service.update(payload)


@app.patch("/api/categories/{category_id}", response_model=Category)
def partial_update_category(
    category_id: str, payload: CategoryPatch, service: CategoryService = Depends(get_category_service)
):
    check_ids(category_id, payload.id, "category")
    return service.partial_update(payload)


@app.get("/api/categories", response_model=List[Category])
def list_categories(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: CategoryService = Depends(get_category_service),
):
    return page_response(request, response, service.find_all(params.to_request(service)))


@app.get("/api/categories/active", response_model=List[Category])
def list_active_categories(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: CategoryService = Depends(get_category_service),
):
    return page_response(request, response, service.find_all_active(params.to_request(service)))


@app.get("/api/categories/search", response_model=List[Category])
def search_categories(
    request: Request,
    response: Response,
    name: Optional[str] = None,
    slug: Optional[str] = None,
    active: Optional[bool] = None,
    params: PageParams = Depends(),
    service: CategoryService = Depends(get_category_service),
):
    page = service.search_categories(name, slug, active, params.to_request(service))
    return page_response(request, response, page)


@app.get("/api/categories/statistics")
def category_statistics(service: CategoryService = Depends(get_category_service)):
    return service.get_statistics()


@app.delete("/api/categories/bulk", status_code=204)
def delete_categories(ids: List[str] = Body(...), service: CategoryService = Depends(get_category_service)):
    service.delete_many(ids)
    return Response(status_code=204)


@app.get("/api/categories/{category_id}", response_model=Category)
def get_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    return not_found(service.find_one(category_id), "category", category_id)


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    service.delete(category_id)
    return Response(status_code=204)


# CRUD Endpoints: Customers
@app.post("/api/customers", response_model=Customer, status_code=201)
def create_customer(payload: Customer, response: Response, service: CustomerService = Depends(get_customer_service)):
    check_new(payload.id, "customer")
    result = service.save(payload)
    response.headers["Location"] = f"/api/customers/{result.id}"
    return result


@app.put("/api/customers/{customer_id}", response_model=Customer)
def update_customer(customer_id: str, payload: Customer, service: CustomerService = Depends(get_customer_service)):
    check_ids(customer_id, payload.id, "customer")
    return service.update(payload)


@app.patch("/api/customers/{customer_id}", response_model=Customer)
def partial_update_customer(
    customer_id: str, payload: CustomerPatch, service: CustomerService = Depends(get_customer_service)
):
    check_ids(customer_id, payload.id, "customer")
    return service.partial_update(payload)


@app.get("/api/customers", response_model=List[Customer])
def list_customers(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: CustomerService = Depends(get_customer_service),
):
    return page_response(request, response, service.find_all(params.to_request(service)))


@app.get("/api/customers/active", response_model=List[Customer])
def list_active_customers(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: CustomerService = Depends(get_customer_service),
):
    return page_response(request, response, service.find_all_active(params.to_request(service)))


@app.get("/api/customers/search", response_model=List[Customer])
def search_customers(
    request: Request,
    response: Response,
    name: Optional[str] = Query(None, description="Matches first or last name"),
    email: Optional[str] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
    active: Optional[bool] = None,
    params: PageParams = Depends(),
    service: CustomerService = Depends(get_customer_service),
):
    page = service.search_customers(name, email, city, country, active, params.to_request(service))
    return page_response(request, response, page)


@app.get("/api/customers/statistics")
def customer_statistics(service: CustomerService = Depends(get_customer_service)):
    return service.get_statistics()


@app.delete("/api/customers/bulk", status_code=204)
def delete_customers(ids: List[str] = Body(...), service: CustomerService = Depends(get_customer_service)):
    service.delete_many(ids)
    return Response(status_code=204)


@app.get("/api/customers/{customer_id}", response_model=Customer)
def get_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    return not_found(service.find_one(customer_id), "customer", customer_id)


@app.delete("/api/customers/{customer_id}", status_code=204)
def delete_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    service.delete(customer_id)
    return Response(status_code=204)


# CRUD Endpoints: Products
@app.post("/api/products", response_model=Product, status_code=201)
def create_product(payload: Product, response: Response, service: ProductService = Depends(get_product_service)):
    check_new(payload.id, "product")
    result = service.save(payload)
    response.headers["Location"] = f"/api/products/{result.id}"
    return result


@app.put("/api/products/{product_id}", response_model=Product)
def update_product(product_id: str, payload: Product, service: ProductService = Depends(get_product_service)):
    check_ids(product_id, payload.id, "product")
    return service.update(payload)


@app.patch("/api/products/{product_id}", response_model=Product)
def partial_update_product(product_id: str, payload: ProductPatch, service: ProductService = Depends(get_product_service)):
    check_ids(product_id, payload.id, "product")
    return service.partial_update(payload)


@app.get("/api/products", response_model=List[Product])
def list_products(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return page_response(request, response, service.find_all(params.to_request(service)))


@app.get("/api/products/active", response_model=List[Product])
def list_active_products(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return page_response(request, response, service.find_all_active(params.to_request(service)))


@app.get("/api/products/search", response_model=List[Product])
def search_products(
    request: Request,
    response: Response,
    name: Optional[str] = None,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    active: Optional[bool] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    params: PageParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    page = service.search_products(name, category_id, active, min_price, max_price, params.to_request(service))
    return page_response(request, response, page)


@app.get("/api/products/statistics")
def product_statistics(service: ProductService = Depends(get_product_service)):
    return service.get_statistics()


@app.delete("/api/products/bulk", status_code=204)
def delete_products(ids: List[str] = Body(...), service: ProductService = Depends(get_product_service)):
    service.delete_many(ids)
    return Response(status_code=204)


@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    return not_found(service.find_one(product_id), "product", product_id)


@app.delete("/api/products/{product_id}", status_code=204)
def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
    service.delete(product_id)
    return Response(status_code=204)


# CRUD Endpoints: Orders
@app.post("/api/orders", response_model=Order, status_code=201)
def create_order(payload: Order, response: Response, service: OrderService = Depends(get_order_service)):
    check_new(payload.id, "order")
    result = service.save(payload)
    response.headers["Location"] = f"/api/orders/{result.id}"
    return result


@app.put("/api/orders/{order_id}", response_model=Order)
def update_order(order_id: str, payload: Order, service: OrderService = Depends(get_order_service)):
    check_ids(order_id, payload.id, "order")
    return service.update(payload)


@app.patch("/api/orders/{order_id}", response_model=Order)
def partial_update_order(order_id: str, payload: OrderPatch, service: OrderService = Depends(get_order_service)):
    check_ids(order_id, payload.id, "order")
    return service.partial_update(payload)


@app.get("/api/orders", response_model=List[Order])
def list_orders(
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: OrderService = Depends(get_order_service),
):
    return page_response(request, response, service.find_all(params.to_request(service)))


@app.get("/api/orders/customer/{customer_id}", response_model=List[Order])
def list_customer_orders(
    customer_id: str,
    request: Request,
    response: Response,
    params: PageParams = Depends(),
    service: OrderService = Depends(get_order_service),
):
    return page_response(request, response, service.find_by_customer_id(customer_id, params.to_request(service)))


@app.get("/api/orders/search", response_model=List[Order])
def search_orders(
    request: Request,
    response: Response,
    customer_id: Optional[str] = Query(None, alias="customerId"),
    status: Optional[str] = None,
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO date"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO date"),
    min_total: Optional[Decimal] = Query(None, alias="minTotal"),
    max_total: Optional[Decimal] = Query(None, alias="maxTotal"),
    params: PageParams = Depends(),
    service: OrderService = Depends(get_order_service),
):
    page = service.search_orders(
        customer_id,
        status,
        payment_method,
        parse_date_bound(start_date),
        parse_date_bound(end_date, end_of_day=True),
        min_total,
        max_total,
        params.to_request(service),
    )
    return page_response(request, response, page)


@app.get("/api/orders/statistics")
def order_statistics(service: OrderService = Depends(get_order_service)):
    return service.get_statistics()


@app.delete("/api/orders/bulk", status_code=204)
def delete_orders(ids: List[str] = Body(...), service: OrderService = Depends(get_order_service)):
    service.delete_many(ids)
    return Response(status_code=204)


@app.get("/api/orders/{order_id}", response_model=Order)
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return not_found(service.find_one(order_id), "order", order_id)


@app.delete("/api/orders/{order_id}", status_code=204)
def delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    service.delete(order_id)
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
