import unittest

from factories import (
    ALICE,
    BOB,
    add_category,
    add_unit_type,
    make_engine,
    make_session,
    movements_for,
    product_payload,
)
from sqlalchemy import event

from stockflow.core.errors import NotFound, ValidationFailed
from stockflow.models.product import Product
from stockflow.schemas.product import StockRefill
from stockflow.schemas.purchase import PurchaseItemIn
from stockflow.services import product_service, stock_service


class StockEngineTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        category = add_category(self.db)
        unit_type = add_unit_type(self.db)
        self.product = product_service.create_product(
            self.db, ALICE, product_payload(category, unit_type, quantity=5)
        )
        self.other = product_service.create_product(
            self.db,
            ALICE,
            product_payload(category, unit_type, name="Paper", sku="pap-1", quantity=2, cost_price=20.0),
        )

    def tearDown(self):
        self.db.close()

    def _quantity(self, product):
        self.db.expire_all()
        return self.db.get(Product, product.id).quantity

    def test_increment_returns_before_and_after(self):
        before, after = stock_service.increment_stock(self.db, self.product.id, 4)
        self.db.commit()
        self.assertEqual((before, after), (5, 9))
        self.assertEqual(self._quantity(self.product), 9)

    def test_increment_reports_quantities_around_its_own_update(self):
        engine = make_engine()
        db = make_session(engine)
        product = product_service.create_product(
            db, ALICE, product_payload(add_category(db), add_unit_type(db), quantity=5)
        )
        bumped = []

        def concurrent_restock(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("UPDATE products") and not bumped:
                bumped.append(True)
                cursor.connection.execute(
                    "UPDATE products SET quantity = quantity + 10 WHERE id = ?", (product.id,)
                )

        event.listen(engine, "before_cursor_execute", concurrent_restock)
        try:
            result = stock_service.increment_stock(db, product.id, 4)
        finally:
            event.remove(engine, "before_cursor_execute", concurrent_restock)
            db.close()

        self.assertEqual(bumped, [True])
        self.assertEqual(result, (15, 19))

    def test_increment_bumps_version(self):
        version = self.product.version
        stock_service.increment_stock(self.db, self.product.id, 1)
        self.db.commit()
        self.db.expire_all()
        self.assertEqual(self.db.get(Product, self.product.id).version, version + 1)

    def test_decrement_floors_at_zero(self):
        before, after = stock_service.decrement_stock(self.db, self.product.id, 8)
        self.assertEqual((before, after), (5, 0))

    def test_delta_must_be_positive_integer(self):
        for bad in (0, -1, 1.5, True, None):
            with self.assertRaises(ValidationFailed):
                stock_service.increment_stock(self.db, self.product.id, bad)

    def test_missing_product(self):
        with self.assertRaises(NotFound):
            stock_service.increment_stock(self.db, 999, 1)

    def test_set_quantity_rejects_negative_and_non_integer(self):
        with self.assertRaises(ValidationFailed):
            stock_service.set_quantity(self.product, -1)
        with self.assertRaises(ValidationFailed):
            stock_service.set_quantity(self.product, "3")

    def test_apply_purchase_snapshots_cost_price(self):
        items = [
            PurchaseItemIn(product=self.product.id, quantity=3),
            PurchaseItemIn(product=self.other.id, quantity=1),
        ]
        prepared, changes = stock_service.apply_purchase(self.db, items, ALICE)
        self.db.commit()

        self.assertEqual([p["unit_price"] for p in prepared], [10.0, 20.0])
        self.assertEqual([p["subtotal"] for p in prepared], [30.0, 20.0])
        self.assertEqual(changes[self.product.id][1:], (5, 8))
        self.assertEqual(changes[self.other.id][1:], (2, 3))

    def test_apply_purchase_merges_repeated_products(self):
        items = [
            PurchaseItemIn(product=self.product.id, quantity=1),
            PurchaseItemIn(product=self.product.id, quantity=2),
        ]
        prepared, changes = stock_service.apply_purchase(self.db, items, ALICE)
        self.assertEqual(len(prepared), 2)
        self.assertEqual(changes[self.product.id][1:], (5, 8))

    def test_apply_purchase_is_all_or_nothing(self):
        items = [
            PurchaseItemIn(product=self.product.id, quantity=3),
            PurchaseItemIn(product=999, quantity=1),
        ]
        with self.assertRaises(NotFound) as ctx:
            stock_service.apply_purchase(self.db, items, ALICE)
        self.assertEqual(ctx.exception.error, "Product not found: 999")
        self.db.rollback()
        self.assertEqual(self._quantity(self.product), 5)

    def test_apply_purchase_rejects_bad_lines(self):
        with self.assertRaises(ValidationFailed):
            stock_service.apply_purchase(self.db, [], ALICE)
        with self.assertRaises(ValidationFailed):
            stock_service.apply_purchase(
                self.db, [PurchaseItemIn(product=self.product.id, quantity=0)], ALICE
            )
        self.assertEqual(self._quantity(self.product), 5)

    def test_apply_purchase_cannot_touch_other_owners_products(self):
        with self.assertRaises(NotFound):
            stock_service.apply_purchase(
                self.db, [PurchaseItemIn(product=self.product.id, quantity=1)], BOB
            )

    def test_refill_logs_before_and_after(self):
        product = stock_service.refill_stock(
            self.db, ALICE, self.product.id, StockRefill(quantity=7, note="weekly delivery")
        )
        self.assertEqual(product.quantity, 12)

        refill = movements_for(self.db, event_type="stock.refill")
        self.assertEqual(len(refill), 1)
        self.assertEqual(refill[0].changes, {"before": {"quantity": 5}, "after": {"quantity": 12}})
        self.assertEqual(refill[0].metadata_["note"], "weekly delivery")

    def test_refill_requires_positive_quantity(self):
        with self.assertRaises(ValidationFailed):
            stock_service.refill_stock(self.db, ALICE, self.product.id, StockRefill(quantity=0))


if __name__ == "__main__":
    unittest.main()
