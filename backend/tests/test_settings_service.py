import unittest

from aruspos import create_app
from aruspos.extensions import db
from aruspos.models import Business
from aruspos.services import settings_service
from aruspos.services.settings_service import (
    BusinessSettings,
    SettingsNotFoundError,
    MAX_TAX_RATE_BPS,
)
from aruspos.validation import ValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Business).delete()
        db.session.commit()

        self.business = Business(
            name="Test Biz",
            currency="USD",
            tax_enabled=True,
            tax_rate_bps=800,
            units=["pcs"],
            payment_options=["Cash", "Utang"],
            debt_method="Utang",
            paper_size="8cm",
        )
        db.session.add(self.business)
        db.session.commit()

    def test_load_reflects_business_row(self):
        settings = settings_service.load_business_settings(self.business.id)
        self.assertEqual(settings.currency, "USD")
        self.assertEqual(settings.tax_rate_bps, 800)
        self.assertEqual(settings.units, ("pcs",))
        self.assertEqual(settings.payment_options, ("Cash", "Utang"))
        self.assertTrue(settings.is_debt_method("Utang"))
        self.assertFalse(settings.is_debt_method("Cash"))
        self.assertFalse(settings.is_debt_method(None))

    def test_load_missing_business(self):
        with self.assertRaises(SettingsNotFoundError):
            settings_service.load_business_settings(999999)

    def test_partial_update_keeps_other_fields(self):
        settings = settings_service.update_business_settings(
            self.business.id, {"currency": " idr ", "tax_enabled": False}
        )
        self.assertEqual(settings.currency, "IDR")
        self.assertFalse(settings.tax_enabled)
        self.assertEqual(settings.tax_rate_bps, 800)
        self.assertEqual(settings.paper_size, "8cm")

        reloaded = settings_service.load_business_settings(self.business.id)
        self.assertEqual(reloaded, settings)

    def test_settings_value_is_immutable(self):
        settings = BusinessSettings.from_business(self.business)
        with self.assertRaises(Exception):
            settings.tax_rate_bps = 0

    def test_units_are_cleaned(self):
        settings = settings_service.update_business_settings(
            self.business.id, {"units": [" pcs", "kg ", "box"]}
        )
        self.assertEqual(settings.units, ("pcs", "kg", "box"))

    def test_payment_options_may_be_empty(self):
        settings = settings_service.update_business_settings(self.business.id, {"payment_options": []})
        self.assertEqual(settings.payment_options, ())

    def test_rejects_invalid_values(self):
        bad_patches = [
            {"currency": "DOLLAR"},
            {"currency": 840},
            {"tax_enabled": "yes"},
            {"tax_rate_bps": -1},
            {"tax_rate_bps": MAX_TAX_RATE_BPS + 1},
            {"tax_rate_bps": 8.5},
            {"tax_rate_bps": True},
            {"units": []},
            {"units": ["pcs", "pcs"]},
            {"units": ["pcs", ""]},
            {"units": "pcs"},
            {"debt_method": "  "},
            {"paper_size": "Letter"},
            {"timezone": "UTC"},
        ]
        for patch in bad_patches:
            with self.subTest(patch=patch):
                with self.assertRaises(ValidationError):
                    settings_service.update_business_settings(self.business.id, patch)

        unchanged = settings_service.load_business_settings(self.business.id)
        self.assertEqual(unchanged.currency, "USD")
        self.assertEqual(unchanged.units, ("pcs",))

    def test_tax_rate_bounds_are_inclusive(self):
        settings = settings_service.update_business_settings(self.business.id, {"tax_rate_bps": 0})
        self.assertEqual(settings.tax_rate_bps, 0)
        settings = settings_service.update_business_settings(
            self.business.id, {"tax_rate_bps": MAX_TAX_RATE_BPS}
        )
        self.assertEqual(settings.tax_rate_bps, MAX_TAX_RATE_BPS)

    def test_update_missing_business(self):
        with self.assertRaises(SettingsNotFoundError):
            settings_service.update_business_settings(999999, {"currency": "EUR"})


if __name__ == "__main__":
    unittest.main()
