# backend/brewplan/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/brewplan.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///brewplan.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Flat tax applied to order and purchase order subtotals (basis points, 1000 = 10%)
    TAX_RATE_BPS = int(os.environ.get("TAX_RATE_BPS", "1000"))

    # Numbering prefixes: "{prefix}-{year}-{seq}"
    BATCH_NUMBER_PREFIX = os.environ.get("BATCH_NUMBER_PREFIX", "BP")
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ORD")
    PO_NUMBER_PREFIX = os.environ.get("PO_NUMBER_PREFIX", "PO")
    INVOICE_NUMBER_PREFIX = os.environ.get("INVOICE_NUMBER_PREFIX", "INV")

    # Planned batches further out than this count as future consumption, not allocation
    ALLOCATION_HORIZON_DAYS = int(os.environ.get("ALLOCATION_HORIZON_DAYS", "14"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
