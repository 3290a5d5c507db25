# backend/stocktrack/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stocktrack.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stocktrack.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Upstream gateway authenticates and forwards the user id in this header
    ACTOR_HEADER = os.environ.get("ACTOR_HEADER", "X-Actor-Id")

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "INR")

    # Atomic unit retry policy (lock timeouts, stale versions, insert races)
    ATOMIC_RETRY_ATTEMPTS = int(os.environ.get("ATOMIC_RETRY_ATTEMPTS", "3"))
    ATOMIC_RETRY_BACKOFF = float(os.environ.get("ATOMIC_RETRY_BACKOFF", "0.1"))

    MOVEMENT_LIST_LIMIT = int(os.environ.get("MOVEMENT_LIST_LIMIT", "200"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
