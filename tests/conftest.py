"""
Pytest fixtures shared by the test modules

Tests run against mongomock, an in-memory stand-in for a MongoDB database, so
no server is needed. Tests that compare or sort money values use the mongo_db
fixture instead, which needs a real server at DATABASE_URL.
"""
import os
import uuid
from decimal import Decimal

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from database import get_db
from main import app


@pytest.fixture(scope="function")
def db():
    """
    Fresh in-memory database for each test
    """
    return mongomock.MongoClient()["catalog_test"]


@pytest.fixture(scope="function")
def client(db):
    """
    Test client whose endpoints use the in-memory database
    """
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def database_url():
    """
    MongoDB URL for the tests that need a real server

    Money values are Decimal128, which mongomock cannot compare or sort, so
    range and price-sort tests run here. Skipped when DATABASE_URL is unset or
    the server does not answer.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture(scope="function")
def mongo_db(database_url):
    """
    Empty database on a real MongoDB server, dropped after each test
    """
    mongo = MongoClient(database_url, tz_aware=True, serverSelectionTimeoutMS=2000)
    try:
        mongo.admin.command("ping")
    except PyMongoError:
        mongo.close()
        pytest.skip("MongoDB not reachable at DATABASE_URL")

    name = f"catalog_test_{uuid.uuid4().hex[:8]}"
    yield mongo[name]
    mongo.drop_database(name)
    mongo.close()


@pytest.fixture(scope="function")
def mongo_client(mongo_db):
    """
    Test client whose endpoints use the real MongoDB database
    """
    app.dependency_overrides[get_db] = lambda: mongo_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sample_category_data():
    return {
        "name": "Beverages",
        "description": "Coffee, tea and juices",
        "slug": "beverages",
        "imageUrl": "https://cdn.example.com/beverages.png",
    }


@pytest.fixture
def sample_customer_data():
    return {
        "firstName": "Ana",
        "lastName": "Lopez",
        "email": "ana.lopez@example.com",
        "phone": "+34 600 000 000",
        "city": "Madrid",
        "country": "Spain",
    }


@pytest.fixture
def sample_product_data():
    return {
        "name": "Cold Brew Coffee",
        "description": "Bottled cold brew, 330ml",
        "price": 3.5,
        "stockQuantity": 120,
    }


@pytest.fixture
def sample_order_data():
    return {
        "orderDate": "2025-03-14T10:30:00Z",
        "totalAmount": 42.0,
        "shippingAddress": "Calle Mayor 1, Madrid",
        "paymentMethod": "CARD",
    }


@pytest.fixture
def product_fields():
    """Keyword arguments for building a Product model directly"""
    return {
        "name": "Cold Brew Coffee",
        "description": "Bottled cold brew, 330ml",
        "price": Decimal("3.50"),
        "stock_quantity": 120,
    }
