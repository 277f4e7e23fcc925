"""
Template Version Governance Service
Configuration classes for the Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'template_governance_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _database_url() -> str:
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else ""


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Rate limiting (Flask-Limiter storage; memory:// for single-process)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    GOVERNANCE_WRITE_RATE_LIMIT = os.getenv("GOVERNANCE_WRITE_RATE_LIMIT", "60/minute")
    CONFIRM_RATE_LIMIT = os.getenv("CONFIRM_RATE_LIMIT", "10/minute")

    # Email / SMTP (optional; log-only mode when MAIL_SERVER is unset)
    MAIL_SERVER = os.getenv("MAIL_SERVER")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() == "true"
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "noreply@template-governance.local")

    # ── Governance ───────────────────────────────────────────────────────
    # Baseline versions seeded by `flask seed-template-defaults`
    DEFAULT_TEMPLATE_VERSION = "1.0.0"

    # Role → stakeholder identity.  Replace per deployment.
    STAKEHOLDER_DIRECTORY = {
        "technical_lead": {"name": "Technical Lead", "email": "tech-lead@example.com"},
        "design_lead": {"name": "Design Lead", "email": "design-lead@example.com"},
        "product_owner": {"name": "Product Owner", "email": "product-owner@example.com"},
        "business_owner": {"name": "Business Owner", "email": "business-owner@example.com"},
    }

    # Paged when a deployment fails; "critical" is used for critical-risk changes
    EMERGENCY_CONTACTS = {
        "default": os.getenv("EMERGENCY_CONTACT", "tech-lead@example.com"),
        "critical": os.getenv("EMERGENCY_CONTACT_CRITICAL", "cto@example.com"),
    }

    AUDIT_RETRY_ATTEMPTS = int(os.getenv("AUDIT_RETRY_ATTEMPTS", "3"))
    VALIDATION_RETRY_ATTEMPTS = int(os.getenv("VALIDATION_RETRY_ATTEMPTS", "3"))

    # Performance budget for rendered templates
    BUNDLE_SIZE_WARN_KB = 60
    BUNDLE_SIZE_FAIL_KB = 100
    RENDER_TIME_WARN_MS = 200
    RENDER_TIME_FAIL_MS = 500
    MIN_ACCESSIBILITY_SCORE = 90
    MIN_PRINT_FIDELITY_SCORE = 95


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    RATELIMIT_ENABLED = False
    AUDIT_RETRY_ATTEMPTS = 2
    VALIDATION_RETRY_ATTEMPTS = 2


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url() or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    # Override engine options with PostgreSQL statement timeout
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
