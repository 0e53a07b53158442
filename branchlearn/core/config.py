"""
Configuration
All settings are read from environment variables (or .env file).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "branchlearn"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # ── PostgreSQL ────────────────────────────────────────────
    POSTGRES_HOST: str = "branchlearn-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "branchlearn_db"
    POSTGRES_USER: str = "branchlearn_user"
    POSTGRES_PASSWORD: str = "branchlearn_pass"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts when set.
    DATABASE_URL: str | None = None

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── Sessions ──────────────────────────────────────────────
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_TTL_SECONDS: int = 86400  # sliding window, refreshed on every request
    SESSION_COOKIE_SECURE: bool = False

    # ── Rate Limiting ─────────────────────────────────────────
    RATE_LIMIT_MAX_ATTEMPTS: int = 5
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # ── Document uploads ──────────────────────────────────────
    UPLOAD_ROOT: str = "uploads"
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024

    # ── Payment processor (Stripe REST API) ───────────────────
    STRIPE_SECRET_KEY: str = "sk_test_example_key"
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    PAYMENT_CURRENCY: str = "inr"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    IDEMPOTENCY_KEY_TTL_SECONDS: int = 86400

    # ── Enrollment rules ──────────────────────────────────────
    ENFORCE_INSTALLMENT_ORDER: bool = False

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
