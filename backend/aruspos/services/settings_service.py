"""
Business settings: currency, tax, units, payment options, debt method,
paper size.

Settings are loaded into an immutable BusinessSettings value and passed
explicitly into pricing, checkout and debt operations. Nothing reads them
from ambient request state.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ..extensions import db
from ..models import Business, PAPER_SIZES
from ..validation import ValidationError


MAX_TAX_RATE_BPS = 10_000

SETTINGS_FIELDS = (
    "currency",
    "tax_enabled",
    "tax_rate_bps",
    "units",
    "payment_options",
    "debt_method",
    "paper_size",
)


@dataclass(frozen=True)
class BusinessSettings:
    currency: str = "USD"
    tax_enabled: bool = True
    tax_rate_bps: int = 0
    units: tuple[str, ...] = ("pcs",)
    payment_options: tuple[str, ...] = field(default_factory=tuple)
    debt_method: str = "Utang"
    paper_size: str = "8cm"

    @classmethod
    def from_business(cls, business: Business) -> "BusinessSettings":
        return cls(
            currency=business.currency or "USD",
            tax_enabled=business.tax_enabled is not False,
            tax_rate_bps=business.tax_rate_bps or 0,
            units=tuple(business.units or ["pcs"]),
            payment_options=tuple(business.payment_options or []),
            debt_method=business.debt_method or "Utang",
            paper_size=business.paper_size or "8cm",
        )

    def is_debt_method(self, payment_method: str | None) -> bool:
        return payment_method is not None and payment_method == self.debt_method

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "tax_enabled": self.tax_enabled,
            "tax_rate_bps": self.tax_rate_bps,
            "units": list(self.units),
            "payment_options": list(self.payment_options),
            "debt_method": self.debt_method,
            "paper_size": self.paper_size,
        }


class SettingsNotFoundError(Exception):
    """Raised when the business does not exist."""


def load_business_settings(business_id: int) -> BusinessSettings:
    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise SettingsNotFoundError(f"Business {business_id} not found")
    return BusinessSettings.from_business(business)


def _clean_string_list(value, field_name: str, *, allow_empty: bool) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list of strings")
    cleaned: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{field_name} entries must be non-empty strings")
        item = item.strip()
        if item in cleaned:
            raise ValidationError(f"duplicate entry in {field_name}: {item}")
        cleaned.append(item)
    if not cleaned and not allow_empty:
        raise ValidationError(f"{field_name} cannot be empty")
    return cleaned


def validate_settings_patch(payload: dict) -> dict:
    """Validate a partial settings update; returns the cleaned patch."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = [k for k in payload if k not in SETTINGS_FIELDS]
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    patch: dict = {}

    if "currency" in payload:
        currency = payload["currency"]
        if not isinstance(currency, str) or len(currency.strip()) != 3 or not currency.strip().isalpha():
            raise ValidationError("currency must be a 3-letter ISO code")
        patch["currency"] = currency.strip().upper()

    if "tax_enabled" in payload:
        if not isinstance(payload["tax_enabled"], bool):
            raise ValidationError("tax_enabled must be true or false")
        patch["tax_enabled"] = payload["tax_enabled"]

    if "tax_rate_bps" in payload:
        rate = payload["tax_rate_bps"]
        if not isinstance(rate, int) or isinstance(rate, bool):
            raise ValidationError("tax_rate_bps must be an integer")
        if rate < 0 or rate > MAX_TAX_RATE_BPS:
            raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")
        patch["tax_rate_bps"] = rate

    if "units" in payload:
        patch["units"] = _clean_string_list(payload["units"], "units", allow_empty=False)

    if "payment_options" in payload:
        patch["payment_options"] = _clean_string_list(
            payload["payment_options"], "payment_options", allow_empty=True
        )

    if "debt_method" in payload:
        method = payload["debt_method"]
        if not isinstance(method, str) or not method.strip():
            raise ValidationError("debt_method cannot be blank")
        patch["debt_method"] = method.strip()

    if "paper_size" in payload:
        if payload["paper_size"] not in PAPER_SIZES:
            raise ValidationError(f"paper_size must be one of: {', '.join(PAPER_SIZES)}")
        patch["paper_size"] = payload["paper_size"]

    return patch


def update_business_settings(business_id: int, payload: dict) -> BusinessSettings:
    """
    Apply a partial settings update. Callers reload settings afterwards
    rather than patching cached copies.
    """
    patch = validate_settings_patch(payload)

    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise SettingsNotFoundError(f"Business {business_id} not found")

    for key, value in patch.items():
        setattr(business, key, value)
    db.session.commit()

    return BusinessSettings.from_business(business)
