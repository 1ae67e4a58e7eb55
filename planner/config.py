"""
Goal Planner
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

Planner-specific knobs:
    MONTH_GATE_TIMEZONE         calendar used to decide the current month
    SUPERVISOR_CHAIN_MAX_DEPTH  hard cap on supervisor-chain walks
    WRITE_RATE_LIMIT            limit on month opening / membership admin
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'planner_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Random per-process key for development; tokens do not survive a restart
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default=None):
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return default
    # SQLAlchemy 2.0 only accepts the postgresql:// scheme
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # Bearer tokens (identity is issued upstream; we only verify)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", "900"))

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    # Rate limiting (Flask-Limiter storage URI; redis:// in production)
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = True
    WRITE_RATE_LIMIT = os.getenv("WRITE_RATE_LIMIT", "60/minute")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Month gate and supervisor hierarchy
    MONTH_GATE_TIMEZONE = os.getenv("MONTH_GATE_TIMEZONE", "UTC")
    SUPERVISOR_CHAIN_MAX_DEPTH = int(os.getenv("SUPERVISOR_CHAIN_MAX_DEPTH", "1000"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    # SQLite in-memory does not accept pool sizing options
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length-for-hs256"
    MONTH_GATE_TIMEZONE = "UTC"


class ProductionConfig(Config):
    """Production environment configuration."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # must be set explicitly

    SQLALCHEMY_ENGINE_OPTIONS = {
        **Config.SQLALCHEMY_ENGINE_OPTIONS,
        "connect_args": {
            "options": "-c statement_timeout=30000",
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
