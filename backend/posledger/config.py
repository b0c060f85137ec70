# backend/posledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///posledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Midtrans Snap gateway
    MIDTRANS_SERVER_KEY = os.environ.get("MIDTRANS_SERVER_KEY", "")
    MIDTRANS_IS_PRODUCTION = os.environ.get("MIDTRANS_IS_PRODUCTION", "false").lower() == "true"
    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "15"))

    # Used to build the gateway finish/error/pending redirect URLs
    APP_URL = os.environ.get("APP_URL", "http://localhost:3000")

    # Transactions older than this cannot be canceled
    CANCEL_WINDOW_HOURS = int(os.environ.get("CANCEL_WINDOW_HOURS", "24"))

    # Optional httpx transport for the gateway client (tests use httpx.MockTransport)
    MIDTRANS_TRANSPORT = None
