"""
Tests for OrderBuilder: pricing, totals and all-or-nothing creation.
"""
import pytest
from decimal import Decimal
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from errors import CatalogUnavailable, ItemNotFound, ItemUnavailable, OrderNotFound, PersistenceFailure, ValidationError
from schemas import MAX_LINE_QUANTITY, CustomerInfo, OrderLineRequest, OrderStatus
from store import ORDER_COLLECTION


class TestOrderCreation:
    """Happy-path creation."""

    def test_create_returns_pending_order_with_lines(self, builder, customer, menu):
        """Test a created order is pending, has an id and carries every line."""
        order = builder.create(customer, [
            OrderLineRequest(menu_item_id=menu["salad"], quantity=2, special_instructions="No croutons"),
            OrderLineRequest(menu_item_id=menu["pizza"], quantity=1),
        ])

        assert order.id
        assert order.status == OrderStatus.PENDING
        assert order.customer_name == "Ada Lovelace"
        assert order.table_number == 4
        assert [line.menu_item_id for line in order.items] == [menu["salad"], menu["pizza"]]
        assert order.items[0].special_instructions == "No croutons"
        assert all(line.order_id == order.id for line in order.items)
        assert order.created_at == order.updated_at

    def test_total_is_sum_of_unit_price_times_quantity(self, place_order):
        """Test total_amount equals the exact sum of line totals."""
        order = place_order(("salad", 2), ("pizza", 1), ("juice", 3))

        assert order.total_amount == Decimal("12.99") * 2 + Decimal("16.99") + Decimal("4.99") * 3
        assert order.total_amount == sum(line.unit_price * line.quantity for line in order.items)

    def test_persisted_order_matches_returned_order(self, place_order, store):
        """Test the stored order reads back identical to what create returned."""
        order = place_order(("salad", 1), ("ten", 2))

        stored = store.get_order(order.id)
        assert stored == order
        assert stored.total_amount == Decimal("32.99")

    def test_float_catalog_price_is_snapshotted_exactly(self, place_order):
        """Test a float price in the catalog becomes its decimal literal, not a binary expansion."""
        order = place_order(("juice", 1))

        assert order.items[0].unit_price == Decimal("4.99")

    def test_duplicate_items_stay_separate_lines(self, place_order):
        """Test the same menu item twice produces two lines, quantities not merged."""
        order = place_order(("pizza", 1), ("pizza", 2))

        assert len(order.items) == 2
        assert [line.quantity for line in order.items] == [1, 2]
        assert order.items[0].id != order.items[1].id
        assert order.total_amount == Decimal("16.99") * 3


class TestPriceIntegrity:
    """Prices come from the catalog, never from the client."""

    def test_client_supplied_price_is_ignored(self, builder, customer, menu):
        """Test a price field sent with a line has no effect on the stored unit price."""
        line = OrderLineRequest.model_validate({"menu_item_id": menu["pizza"], "quantity": 1, "price": "0.01"})

        order = builder.create(customer, [line])

        assert order.items[0].unit_price == Decimal("16.99")
        assert order.total_amount == Decimal("16.99")

    def test_later_catalog_price_change_does_not_touch_existing_order(self, place_order, db, menu, store):
        """Test the snapshot price survives a catalog price change."""
        from bson import ObjectId
        from database import to_decimal128

        order = place_order(("salad", 2))
        db["menuitem"].update_one({"_id": ObjectId(menu["salad"])}, {"$set": {"price": to_decimal128(Decimal("99.00"))}})

        stored = store.get_order(order.id)
        assert stored.items[0].unit_price == Decimal("12.99")
        assert stored.total_amount == Decimal("25.98")


class TestOrderRejection:
    """Any bad line rejects the whole order and writes nothing."""

    def test_unknown_item_rejects_whole_order(self, builder, customer, menu, db):
        """Test one valid and one missing item raises ItemNotFound and stores nothing."""
        missing = "64b7f0c2a1b2c3d4e5f60718"

        with pytest.raises(ItemNotFound) as exc_info:
            builder.create(customer, [
                OrderLineRequest(menu_item_id=menu["salad"], quantity=1),
                OrderLineRequest(menu_item_id=missing, quantity=1),
            ])

        assert exc_info.value.menu_item_id == missing
        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_malformed_item_id_is_not_found(self, builder, customer, db):
        """Test an id that is not an ObjectId is reported as not found."""
        with pytest.raises(ItemNotFound):
            builder.create(customer, [OrderLineRequest(menu_item_id="42", quantity=1)])
        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_unavailable_item_rejects_whole_order(self, builder, customer, menu, db):
        """Test a disabled item raises ItemUnavailable and stores nothing."""
        with pytest.raises(ItemUnavailable) as exc_info:
            builder.create(customer, [
                OrderLineRequest(menu_item_id=menu["pizza"], quantity=1),
                OrderLineRequest(menu_item_id=menu["soup"], quantity=1),
            ])

        assert exc_info.value.menu_item_id == menu["soup"]
        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_empty_item_list_is_rejected(self, builder, customer, db):
        """Test an order with no lines fails validation before storage."""
        with pytest.raises(ValidationError) as exc_info:
            builder.create(customer, [])

        assert exc_info.value.field == "items"
        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_blank_customer_name_is_rejected(self, builder, menu):
        """Test a whitespace-only name is rejected even when validation was bypassed upstream."""
        customer = CustomerInfo.model_construct(customer_name="   ")

        with pytest.raises(ValidationError) as exc_info:
            builder.create(customer, [OrderLineRequest(menu_item_id=menu["pizza"], quantity=1)])
        assert exc_info.value.field == "customer_name"

    def test_non_positive_quantity_is_rejected(self, builder, customer, menu):
        """Test quantity 0 is rejected when validation was bypassed upstream."""
        line = OrderLineRequest.model_construct(menu_item_id=menu["pizza"], quantity=0)

        with pytest.raises(ValidationError) as exc_info:
            builder.create(customer, [line])
        assert exc_info.value.field == "items.0.quantity"

    def test_oversized_quantity_is_rejected(self, builder, customer, menu, db):
        """Test a quantity above the per-line maximum is a validation error and nothing is written."""
        line = OrderLineRequest.model_construct(menu_item_id=menu["pizza"], quantity=10**33 + 1)

        with pytest.raises(ValidationError) as exc_info:
            builder.create(customer, [line])
        assert exc_info.value.field == "items.0.quantity"
        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_maximum_quantity_is_accepted(self, place_order):
        """Test the largest allowed quantity still creates an order."""
        order = place_order(("ten", MAX_LINE_QUANTITY))

        assert order.total_amount == Decimal("10.00") * MAX_LINE_QUANTITY


class TestOrderAtomicity:
    """Failures during the write leave no trace of the order."""

    def test_write_failure_leaves_no_rows(self, builder, customer, menu, db, monkeypatch):
        """Test a failing insert surfaces PersistenceFailure and persists nothing."""
        def failing_insert(*args, **kwargs):
            raise OperationFailure("simulated write failure")

        monkeypatch.setattr("store.create_document", failing_insert)

        with pytest.raises(PersistenceFailure):
            builder.create(customer, [
                OrderLineRequest(menu_item_id=menu["salad"], quantity=1),
                OrderLineRequest(menu_item_id=menu["pizza"], quantity=2),
            ])

        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_catalog_timeout_aborts_creation(self, builder, customer, menu, db, monkeypatch):
        """Test a catalog timeout raises CatalogUnavailable and nothing is written."""
        def timing_out(*args, **kwargs):
            raise ServerSelectionTimeoutError("simulated catalog timeout")

        monkeypatch.setattr("catalog.get_documents", timing_out)

        with pytest.raises(CatalogUnavailable):
            builder.create(customer, [OrderLineRequest(menu_item_id=menu["salad"], quantity=1)])

        assert db[ORDER_COLLECTION].count_documents({}) == 0

    def test_failed_create_is_not_fetchable(self, builder, customer, menu, store):
        """Test nothing can be fetched after a rejected create."""
        with pytest.raises(ItemNotFound):
            builder.create(customer, [
                OrderLineRequest(menu_item_id=menu["salad"], quantity=1),
                OrderLineRequest(menu_item_id="64b7f0c2a1b2c3d4e5f60718", quantity=1),
            ])

        assert store.list_orders() == []
        with pytest.raises(OrderNotFound):
            store.get_order("64b7f0c2a1b2c3d4e5f60718")

    def test_every_stored_order_has_lines(self, place_order, db):
        """Test no stored order document has an empty items array."""
        place_order(("salad", 1))
        place_order(("pizza", 2), ("juice", 1))

        assert db[ORDER_COLLECTION].count_documents({"items": {"$size": 0}}) == 0
        assert db[ORDER_COLLECTION].count_documents({}) == 2
