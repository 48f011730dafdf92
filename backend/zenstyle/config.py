# backend/zenstyle/config.py
from __future__ import annotations
import os


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/zenstyle.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///zenstyle.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Automation endpoint notified after a public booking (unset = disabled)
    BOOKING_WEBHOOK_URL = os.environ.get("BOOKING_WEBHOOK_URL") or None
    BOOKING_WEBHOOK_TIMEOUT = _float_env("BOOKING_WEBHOOK_TIMEOUT", 5.0)

    # Purchasing: VAT-like tax on supplier orders and default retail markup
    PURCHASE_TAX_RATE = _float_env("PURCHASE_TAX_RATE", 0.19)
    RETAIL_MARKUP = _float_env("RETAIL_MARKUP", 1.5)
    DEFAULT_MIN_STOCK = int(os.environ.get("DEFAULT_MIN_STOCK", "5"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    }
