import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from factories import (
    ALICE,
    BOB,
    add_category,
    add_unit_type,
    admin,
    make_engine,
    make_session,
    movements_for,
    product_payload,
)
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from stockflow.core.errors import Forbidden, NotFound, ValidationFailed
from stockflow.models.movement import Movement
from stockflow.models.product import Product
from stockflow.schemas.movement import MovementCorrection, MovementCreate
from stockflow.services import history_service, movement_service, product_service


class DiffSnapshotsTest(unittest.TestCase):
    def test_only_changed_fields_are_kept(self):
        before, after = movement_service.diff_snapshots(
            {"name": "A", "sku": "X", "quantity": 1},
            {"name": "A", "sku": "Y", "quantity": 4},
        )
        self.assertEqual(before, {"sku": "X", "quantity": 1})
        self.assertEqual(after, {"sku": "Y", "quantity": 4})

    def test_build_changes_returns_none_without_differences(self):
        self.assertIsNone(movement_service.build_changes({"a": 1}, {"a": 1}))

    def test_field_restriction(self):
        changes = movement_service.build_changes(
            {"name": "A", "supplier": "old"},
            {"name": "B", "supplier": "new"},
            fields=("name",),
        )
        self.assertEqual(changes, {"before": {"name": "A"}, "after": {"name": "B"}})


class LogMovementTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    def test_appends_record_with_default_title(self):
        movement = movement_service.log_movement(
            self.db,
            "settings.changed",
            "Updated settings",
            ALICE,
            metadata={"changedKeys": {"preferences": ["currency"]}},
        )
        self.db.commit()

        self.assertIsNotNone(movement)
        stored = self.db.get(Movement, movement.id)
        self.assertEqual(stored.event_title, "Settings Changed")
        self.assertEqual(stored.user_id, "1")
        self.assertEqual(stored.user_name, "Alice")
        self.assertEqual(stored.metadata_["changedKeys"], {"preferences": ["currency"]})

    def test_unknown_event_type_is_not_recorded(self):
        with self.assertLogs("stockflow.services.movement_service", level="ERROR"):
            result = movement_service.log_movement(self.db, "product.exploded", "boom", ALICE)
        self.assertIsNone(result)
        self.assertEqual(movements_for(self.db), [])

    def test_audit_failure_does_not_undo_the_mutation(self):
        category = add_category(self.db)
        unit_type = add_unit_type(self.db)

        with patch(
            "stockflow.services.movement_service.Movement",
            side_effect=RuntimeError("audit store down"),
        ):
            with self.assertLogs("stockflow.services.movement_service", level="ERROR") as logs:
                product = product_service.create_product(
                    self.db, ALICE, product_payload(category, unit_type)
                )

        self.assertIn("Failed to log movement product.created", logs.output[0])
        self.assertIsNotNone(self.db.get(Product, product.id))
        self.assertEqual(movements_for(self.db), [])

    def test_failed_audit_insert_rolls_back_only_its_savepoint(self):
        engine = make_engine()
        db = make_session(engine)
        category = add_category(db)
        unit_type = add_unit_type(db)

        def reject_movement_insert(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("INSERT INTO movements"):
                raise OperationalError(statement, parameters, Exception("disk I/O error"))

        event.listen(engine, "before_cursor_execute", reject_movement_insert)
        try:
            with self.assertLogs("stockflow.services.movement_service", level="ERROR"):
                product = product_service.create_product(
                    db, ALICE, product_payload(category, unit_type)
                )
        finally:
            event.remove(engine, "before_cursor_execute", reject_movement_insert)
            db.close()

        fresh = make_session(engine)
        try:
            stored = fresh.get(Product, product.id)
            self.assertIsNotNone(stored)
            self.assertEqual(stored.quantity, 5)
            self.assertEqual(movements_for(fresh), [])
        finally:
            fresh.close()


class CreateMovementTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    def test_missing_fields_are_rejected(self):
        with self.assertRaises(ValidationFailed):
            movement_service.create_movement(
                self.db, MovementCreate(eventType="stock.changed", description="x"), ALICE
            )

    def test_unknown_event_type_is_rejected(self):
        payload = MovementCreate(eventType="nope", eventTitle="Nope", description="x")
        with self.assertRaises(ValidationFailed):
            movement_service.create_movement(self.db, payload, ALICE)

    def test_records_caller_and_request_details(self):
        product = product_service.create_product(
            self.db, ALICE, product_payload(add_category(self.db), add_unit_type(self.db))
        )
        payload = MovementCreate(
            eventType="stock.changed",
            eventTitle="Manual count",
            description="Counted shelf",
            relatedProduct=product.id,
        )
        movement = movement_service.create_movement(
            self.db, payload, ALICE, ip_address="10.0.0.1", user_agent="pytest"
        )
        self.assertEqual(movement.event_title, "Manual count")
        self.assertEqual(movement.related_product_id, product.id)
        self.assertEqual(movement.ip_address, "10.0.0.1")

    def test_references_must_belong_to_the_caller(self):
        category = add_category(self.db)
        product = product_service.create_product(
            self.db, ALICE, product_payload(category, add_unit_type(self.db))
        )
        references = {
            "relatedProduct": product.id,
            "relatedCategory": category.id,
            "relatedPurchase": 999,
        }
        for field, record_id in references.items():
            payload = MovementCreate(
                eventType="stock.changed",
                eventTitle="Recount",
                description="Shelf count",
                **{field: record_id},
            )
            with self.assertRaises(NotFound):
                movement_service.create_movement(self.db, payload, BOB)

        self.assertEqual(
            [m.event_type for m in movements_for(self.db, related_product_id=product.id)],
            ["product.created"],
        )
        history = history_service.stock_history(self.db, ALICE, product.id)
        self.assertEqual(len(history["history"]), 1)

    def test_static_admin_may_reference_any_record(self):
        product = product_service.create_product(
            self.db, ALICE, product_payload(add_category(self.db), add_unit_type(self.db))
        )
        payload = MovementCreate(
            eventType="stock.changed",
            eventTitle="Audit",
            description="Spot check",
            relatedProduct=product.id,
        )
        movement = movement_service.create_movement(self.db, payload, admin())
        self.assertEqual(movement.related_product_id, product.id)


class ListMovementsTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        now = datetime.now(timezone.utc)
        self.db.add_all(
            [
                Movement(
                    event_type="stock.refill",
                    event_title="Stock Refilled",
                    description="old refill",
                    user_id="1",
                    user_name="Alice",
                    created_at=now - timedelta(days=10),
                ),
                Movement(
                    event_type="stock.changed",
                    event_title="Stock Changed",
                    description="alice change",
                    user_id="1",
                    user_name="Alice",
                    created_at=now - timedelta(days=1),
                ),
                Movement(
                    event_type="stock.changed",
                    event_title="Stock Changed",
                    description="bob change",
                    user_id="2",
                    user_name="Bob",
                    created_at=now,
                ),
            ]
        )
        self.db.commit()
        self.now = now

    def tearDown(self):
        self.db.close()

    def test_non_admin_sees_only_own_movements_newest_first(self):
        movements = movement_service.list_movements(self.db, ALICE)
        self.assertEqual([m.description for m in movements], ["alice change", "old refill"])

    def test_admin_sees_everything_and_all_means_no_filter(self):
        movements = movement_service.list_movements(self.db, admin(), event_type="all")
        self.assertEqual(len(movements), 3)
        self.assertEqual(movements[0].description, "bob change")

    def test_event_type_and_user_filters(self):
        movements = movement_service.list_movements(
            self.db, admin(), event_type="stock.changed", user_id="2"
        )
        self.assertEqual([m.description for m in movements], ["bob change"])

    def test_bare_end_date_covers_the_whole_day(self):
        day = (self.now - timedelta(days=1)).date().isoformat()
        movements = movement_service.list_movements(self.db, admin(), date_from=day, date_to=day)
        self.assertEqual([m.description for m in movements], ["alice change"])

    def test_invalid_date_is_a_validation_error(self):
        with self.assertRaises(ValidationFailed):
            movement_service.list_movements(self.db, admin(), date_from="yesterday")

    def test_limit(self):
        movements = movement_service.list_movements(self.db, admin(), limit=1)
        self.assertEqual(len(movements), 1)


class MovementMaintenanceTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        self.movement = movement_service.log_movement(
            self.db, "stock.changed", "original", ALICE, metadata={"a": 1}
        )
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def test_other_users_cannot_see_it(self):
        with self.assertRaises(NotFound):
            movement_service.get_movement(self.db, BOB, self.movement.id)

    def test_correction_only_touches_allowed_fields(self):
        corrected = movement_service.correct_movement(
            self.db,
            ALICE,
            self.movement.id,
            MovementCorrection(description="fixed", metadata={"b": 2}),
        )
        self.assertEqual(corrected.description, "fixed")
        self.assertEqual(corrected.metadata_, {"b": 2})
        self.assertEqual(corrected.event_type, "stock.changed")
        self.assertIsNotNone(corrected.updated_at)

    def test_delete_requires_admin(self):
        with self.assertRaises(Forbidden):
            movement_service.delete_movement(self.db, ALICE, self.movement.id)
        movement_service.delete_movement(self.db, admin(), self.movement.id)
        self.assertEqual(movements_for(self.db), [])

    def test_clear_requires_confirmation(self):
        with self.assertRaises(ValidationFailed):
            movement_service.clear_movements(self.db, admin(), None)
        self.assertEqual(movement_service.clear_movements(self.db, admin(), "true"), 1)

    def test_serialized_references_survive_deleted_targets(self):
        self.movement.related_product_id = 999
        self.db.commit()
        data = movement_service.serialize_movements(self.db, [self.movement])[0]
        self.assertEqual(data["relatedProduct"], {"id": 999})
        self.assertEqual(data["eventType"], "stock.changed")
        self.assertEqual(data["metadata"], {"a": 1})


if __name__ == "__main__":
    unittest.main()
