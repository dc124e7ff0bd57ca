"""
Shared fixtures for the order tests.

Every test gets a fresh in-memory MongoDB (mongomock) so nothing leaks
between tests.
"""
import mongomock
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from catalog import CatalogReader, MENU_COLLECTION
from config import Settings
from database import to_decimal128
from main import create_app
from order_builder import OrderBuilder, OrderQueries
from schemas import CustomerInfo, OrderLineRequest
from stats import StatsAggregator
from status_engine import StatusEngine
from store import OrderStore


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    yield client["restaurant_test"]
    client.close()


@pytest.fixture
def menu(db):
    """
    A small catalog keyed by a short name -> menu item id string.

    soup is disabled; everything else can be ordered.
    """
    items = {
        "salad": {"name": "Caesar Salad", "description": "Romaine with caesar dressing",
                  "price": to_decimal128(Decimal("12.99")), "preparation_time": 10},
        "pizza": {"name": "Margherita Pizza", "price": to_decimal128(Decimal("16.99")), "preparation_time": 20},
        "ten": {"name": "Set Menu", "price": to_decimal128(Decimal("10.00")), "preparation_time": 15},
        "juice": {"name": "Fresh Orange Juice", "price": 4.99, "preparation_time": 2},
        "soup": {"name": "Seasonal Soup", "price": to_decimal128(Decimal("7.50")), "preparation_time": 12,
                 "is_available": False},
    }
    ids = {}
    for key, doc in items.items():
        doc = dict(doc, category="Test")
        doc.setdefault("is_available", True)
        ids[key] = str(db[MENU_COLLECTION].insert_one(doc).inserted_id)
    return ids


@pytest.fixture
def store(db):
    return OrderStore(db)


@pytest.fixture
def catalog(db):
    return CatalogReader(db)


@pytest.fixture
def builder(catalog, store):
    return OrderBuilder(catalog, store)


@pytest.fixture
def engine(store):
    return StatusEngine(store)


@pytest.fixture
def queries(catalog, store):
    return OrderQueries(catalog, store, default_limit=50, max_limit=200)


@pytest.fixture
def aggregator(store):
    return StatsAggregator(store)


@pytest.fixture
def customer():
    return CustomerInfo(customer_name="Ada Lovelace", customer_phone="555-0100", table_number=4)


@pytest.fixture
def place_order(builder, customer, menu):
    """Create an order from (menu key, quantity) pairs."""
    def _place(*lines):
        requests = [OrderLineRequest(menu_item_id=menu[key], quantity=qty) for key, qty in lines]
        return builder.create(customer, requests)
    return _place


@pytest.fixture
def client(db):
    app = create_app(Settings(), db=db)
    with TestClient(app) as test_client:
        yield test_client
