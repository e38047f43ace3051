# backend/aruspos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/aruspos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///aruspos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity is verified upstream; super-admin routes compare the asserted
    # email against this list.
    SUPERADMIN_EMAILS = _env_list(
        "SUPERADMIN_EMAILS",
        "superadmin@gmail.com,arus.superadmin@gmail.com",
    )

    # Defaults applied to newly provisioned businesses
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    DEFAULT_TAX_RATE_BPS = int(os.environ.get("DEFAULT_TAX_RATE_BPS", "800"))
    DEFAULT_DEBT_METHOD = os.environ.get("DEFAULT_DEBT_METHOD", "Utang")

    # Policy: require a payment note image before a debt can be marked paid
    DEBT_REQUIRE_PAYMENT_EVIDENCE = _env_bool("DEBT_REQUIRE_PAYMENT_EVIDENCE", False)

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
