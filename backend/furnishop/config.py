# backend/furnishop/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/furnishop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///furnishop.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Object store for product and customer images.
    # MEDIA_ROOT defaults to <instance_path>/media when unset.
    MEDIA_ROOT = os.environ.get("MEDIA_ROOT")
    MEDIA_BASE_URL = os.environ.get("MEDIA_BASE_URL", "/media")
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Hire-purchase defaults offered to the contract form
    DEFAULT_INTEREST_RATE_BPS = int(os.environ.get("DEFAULT_INTEREST_RATE_BPS", "1200"))
    DEFAULT_INSTALLMENT_MONTHS = int(os.environ.get("DEFAULT_INSTALLMENT_MONTHS", "12"))

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BCRYPT_ROUNDS = 4
