"""
Catalog Reader: read-only lookups of menu items by id.

Menu item CRUD belongs to the catalog; order code only resolves prices and
availability through this reader and never writes to "menuitem", apart
from the optional sample seed used for local runs.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, get_documents, object_id, to_decimal, to_decimal128
from errors import CatalogUnavailable
from schemas import MenuItemRef, Menuitem

logger = logging.getLogger(__name__)

MENU_COLLECTION = "menuitem"

SAMPLE_MENU = [
    Menuitem(name="Caesar Salad", description="Fresh romaine lettuce with caesar dressing, croutons, and parmesan",
             category="Salads", price=Decimal("12.99"), preparation_time=10),
    Menuitem(name="Grilled Chicken Breast", description="Juicy grilled chicken breast with herbs and spices",
             category="Main Courses", price=Decimal("18.99"), preparation_time=25),
    Menuitem(name="Margherita Pizza", description="Classic pizza with tomato sauce, mozzarella, and fresh basil",
             category="Main Courses", price=Decimal("16.99"), preparation_time=20),
    Menuitem(name="Chocolate Cake", description="Rich and moist chocolate cake with chocolate frosting",
             category="Desserts", price=Decimal("8.99"), preparation_time=5),
    Menuitem(name="Fresh Orange Juice", description="Freshly squeezed orange juice",
             category="Beverages", price=Decimal("4.99"), preparation_time=2),
    Menuitem(name="Garlic Bread", description="Toasted bread with garlic butter and herbs",
             category="Appetizers", price=Decimal("6.99"), preparation_time=8),
]


def _ref_from_document(doc) -> MenuItemRef:
    return MenuItemRef(
        id=str(doc["_id"]),
        price=to_decimal(doc.get("price", 0)),
        is_available=bool(doc.get("is_available", True)),
        name=doc.get("name"),
        description=doc.get("description"),
        preparation_time=doc.get("preparation_time"),
    )


class CatalogReader:
    """Looks up menu items in the catalog collection. Holds no cache."""

    def __init__(self, db: Database, max_time_ms: Optional[int] = None):
        self.collection_name = MENU_COLLECTION
        self.db = db
        self.max_time_ms = max_time_ms

    def get_many(self, menu_item_ids: Iterable[str]) -> Dict[str, MenuItemRef]:
        """
        Resolve several ids in one round trip.

        Ids that are malformed or missing are simply absent from the result;
        the caller decides whether that is an error.
        """
        oids = {}
        for item_id in menu_item_ids:
            oid = object_id(item_id)
            if oid is not None:
                oids.setdefault(oid, set()).add(item_id)
        if not oids:
            return {}

        try:
            docs = get_documents(
                self.db,
                self.collection_name,
                {"_id": {"$in": list(oids)}},
                max_time_ms=self.max_time_ms,
            )
        except PyMongoError as e:
            logger.error(f"Catalog lookup failed for {len(oids)} menu item(s): {e}")
            raise CatalogUnavailable("Menu catalog could not be read") from e

        refs = {}
        for doc in docs:
            ref = _ref_from_document(doc)
            for item_id in oids[doc["_id"]]:
                refs[item_id] = ref
        return refs

    def get(self, menu_item_id: str) -> Optional[MenuItemRef]:
        return self.get_many([menu_item_id]).get(menu_item_id)


def seed_sample_menu(db: Database) -> int:
    """Insert the sample menu when the catalog is empty. Returns the number inserted."""
    collection = db[MENU_COLLECTION]
    if collection.count_documents({}) > 0:
        return 0
    for item in SAMPLE_MENU:
        doc = item.model_dump()
        doc["price"] = to_decimal128(item.price)
        create_document(db, MENU_COLLECTION, doc)
    logger.info(f"Seeded {len(SAMPLE_MENU)} sample menu items")
    return len(SAMPLE_MENU)
