"""
Environment-aware configuration.
Values are read once, when the app factory builds the app; auth-related keys
are then frozen into utils.security.AuthSettings.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: comma-separated origins; the frontend sends credentials (refresh cookie)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///task-manager.db")
    SQL_ECHO = _env_bool("SQL_ECHO")

    # Two independent secrets: an access token never works as a refresh token and vice versa
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "access-secret")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "refresh-secret")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    # "<integer><s|m|h|d>"; anything else falls back to the default lifetime
    ACCESS_TOKEN_EXPIRY = os.getenv("ACCESS_TOKEN_EXPIRY", "15m")
    REFRESH_TOKEN_EXPIRY = os.getenv("REFRESH_TOKEN_EXPIRY", "7d")

    # argon2 work factors
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))
    PASSWORD_HASH_MEMORY_COST = int(os.getenv("PASSWORD_HASH_MEMORY_COST", "65536"))

    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_ACCESS_SECRET = "test-access-secret-at-least-32-bytes-long"
    JWT_REFRESH_SECRET = "test-refresh-secret-at-least-32-bytes-long"
    ACCESS_TOKEN_EXPIRY = "15m"
    REFRESH_TOKEN_EXPIRY = "7d"
    # Cheap hashes keep the suite fast
    PASSWORD_HASH_TIME_COST = 1
    PASSWORD_HASH_MEMORY_COST = 1024
    REFRESH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "true")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
