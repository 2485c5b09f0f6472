import unittest

from factories import ALICE, admin, make_session, movements_for

from stockflow.core.errors import Forbidden, NotFound, ValidationFailed
from stockflow.models.tax_config import TaxConfig
from stockflow.schemas.tax import TaxConfigUpdate
from stockflow.services import tax_service


def _config(**values):
    values.setdefault("status", "active")
    return TaxConfig(**values)


class CalculateTaxesTest(unittest.TestCase):
    def test_no_config_means_no_tax(self):
        result = tax_service.calculate_taxes(100, None)
        self.assertEqual(result["totalTax"], 0)
        self.assertEqual(result["grandTotal"], 100)

    def test_inactive_config_means_no_tax(self):
        config = _config(gst={"enabled": True, "rate": 18, "type": "exclusive"}, status="inactive")
        self.assertEqual(tax_service.calculate_taxes(100, config)["grandTotal"], 100)

    def test_exclusive_gst_is_added(self):
        config = _config(gst={"enabled": True, "rate": 10, "type": "exclusive"})
        result = tax_service.calculate_taxes(100, config)
        self.assertAlmostEqual(result["gst"], 10)
        self.assertAlmostEqual(result["grandTotal"], 110)

    def test_inclusive_gst_is_extracted_not_added(self):
        config = _config(gst={"enabled": True, "rate": 18, "type": "inclusive"})
        result = tax_service.calculate_taxes(118, config)
        self.assertAlmostEqual(result["gst"], 18)
        self.assertAlmostEqual(result["totalTax"], 18)
        self.assertAlmostEqual(result["grandTotal"], 118)

    def test_fees_and_other_taxes(self):
        config = _config(
            gst={"enabled": False, "rate": 18, "type": "exclusive"},
            platform_fee={"enabled": True, "rate": 2, "type": "percentage"},
            other_taxes=[
                {"name": "Cess", "enabled": True, "rate": 5, "type": "fixed"},
                {"name": "Green", "enabled": False, "rate": 50, "type": "percentage"},
            ],
        )
        result = tax_service.calculate_taxes(200, config)
        self.assertAlmostEqual(result["platformFee"], 4)
        self.assertEqual(
            result["otherTaxes"],
            [{"name": "Cess", "rate": 5.0, "type": "fixed", "amount": 5.0}],
        )
        self.assertAlmostEqual(result["totalTax"], 9)
        self.assertAlmostEqual(result["grandTotal"], 209)

    def test_fixed_platform_fee(self):
        config = _config(platform_fee={"enabled": True, "rate": 3, "type": "fixed"})
        self.assertAlmostEqual(tax_service.calculate_taxes(10, config)["grandTotal"], 13)


class ValidateTaxConfigTest(unittest.TestCase):
    def test_disabled_sections_are_not_checked(self):
        self.assertEqual(
            tax_service.validate_tax_config(gst={"enabled": False, "rate": 500, "type": "odd"}),
            [],
        )

    def test_messages(self):
        errors = tax_service.validate_tax_config(
            gst={"enabled": True, "rate": 120, "type": "exclusive"},
            platform_fee={"enabled": True, "rate": -1, "type": "percentage"},
            other_taxes=[{"name": "", "rate": 1, "type": "flat"}],
        )
        self.assertEqual(
            errors,
            [
                "GST rate must be between 0 and 100",
                "Platform fee rate cannot be negative",
                "Tax #1: Name is required",
                "Tax #1: Type must be either 'percentage' or 'fixed'",
            ],
        )


class GlobalTaxConfigTest(unittest.TestCase):
    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    def test_get_creates_a_single_default(self):
        first = tax_service.get_global_tax_config(self.db)
        second = tax_service.get_global_tax_config(self.db)
        self.assertEqual(first.id, second.id)
        self.assertTrue(first.is_global)
        self.assertEqual(self.db.query(TaxConfig).count(), 1)

    def test_update_requires_admin(self):
        with self.assertRaises(Forbidden):
            tax_service.update_global_tax_config(
                self.db, ALICE, TaxConfigUpdate(gst={"enabled": True, "rate": 5})
            )

    def test_first_update_creates_and_records_history(self):
        config = tax_service.update_global_tax_config(
            self.db,
            admin(),
            TaxConfigUpdate(gst={"enabled": True, "rate": 12}),
        )
        self.assertEqual(config.gst["rate"], 12)
        self.assertEqual(config.gst["type"], "exclusive")
        self.assertEqual(len(config.change_history), 1)
        self.assertEqual(config.change_history[0].description, "Initial tax configuration created")
        self.assertEqual(len(movements_for(self.db, event_type="tax.created")), 1)

        tax_service.update_global_tax_config(
            self.db,
            admin(),
            TaxConfigUpdate(
                otherTaxes=[{"name": "Cess", "rate": 1, "type": "fixed"}],
                changeDescription="add cess",
            ),
        )
        self.db.expire_all()
        config = tax_service.get_global_tax_config(self.db)
        self.assertEqual(config.gst["rate"], 12)
        self.assertEqual(config.other_taxes[0]["name"], "Cess")
        self.assertEqual([entry.description for entry in config.change_history][-1], "add cess")
        self.assertEqual(len(movements_for(self.db, event_type="tax.updated")), 1)

    def test_invalid_update_changes_nothing(self):
        with self.assertRaises(ValidationFailed) as ctx:
            tax_service.update_global_tax_config(
                self.db,
                admin(),
                TaxConfigUpdate(gst={"enabled": True, "rate": 150}),
            )
        self.assertIn("GST rate must be between 0 and 100", ctx.exception.message)
        self.assertEqual(self.db.query(TaxConfig).count(), 0)

    def test_deactivate(self):
        with self.assertRaises(NotFound):
            tax_service.deactivate_global_tax_config(self.db, admin())

        tax_service.update_global_tax_config(
            self.db, admin(), TaxConfigUpdate(gst={"enabled": True, "rate": 10})
        )
        config = tax_service.deactivate_global_tax_config(self.db, admin())
        self.assertEqual(config.status, "inactive")
        self.assertIsNone(tax_service.active_tax_config(self.db))
        self.assertEqual(len(movements_for(self.db, event_type="tax.deleted")), 1)


if __name__ == "__main__":
    unittest.main()
