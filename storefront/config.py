import os

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/storefront")
    REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
    CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
    CELERY_TASK_ALWAYS_EAGER = _as_bool(os.getenv("CELERY_TASK_ALWAYS_EAGER", "false"))

    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change")
    JWT_ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    ADMIN_EMAILS = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/google/callback")

    EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_USER = os.getenv("EMAIL_USER", "")
    EMAIL_PASS = os.getenv("EMAIL_PASS", "")
    SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "") or EMAIL_USER

    STORE_NAME = os.getenv("STORE_NAME", "Storefront")
    APP_URL = os.getenv("APP_URL", "http://localhost:3000")
    MEDIA_ROOT = os.getenv("MEDIA_ROOT", "media")
    MEDIA_URL = os.getenv("MEDIA_URL", "/media")

    PRODUCTS_CACHE_TTL = 600
    LOW_STOCK_THRESHOLD = 5
    MAX_EMAIL_RESENDS = 4

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
