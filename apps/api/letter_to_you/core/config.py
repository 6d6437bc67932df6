"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Public site (checkout success/cancel redirects land here)
    SITE_URL: str = "http://localhost:5173"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Supabase auth (GoTrue REST + JWT verification)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""

    # Stripe checkout
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PRICE_ID: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # Text generation
    AI_PROVIDER: str = "anthropic"  # anthropic | openai
    AI_MODEL: str = ""  # Empty = provider default
    ANTHROPIC_API_KEY: str = ""
    OPENAI_API_KEY: str = ""

    # Transactional email (Resend)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Letter to You <letters@lettertoyou.app>"
    SUPPORT_EMAIL: str = "support@lettertoyou.app"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /send-scheduled-emails

    # Token Encryption (session backups)
    FERNET_KEY: str = ""  # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60
    RATE_LIMIT_GENERATE: int = 10  # LLM-backed endpoints

    # Cross-redirect session continuity
    SESSION_BACKUP_TTL_SECONDS: int = 3600
    CHECKOUT_COOKIE_MAX_AGE: int = 3600

    # Checkout return verification (webhook may land after the browser)
    PURCHASE_VERIFY_ATTEMPTS: int = 5
    PURCHASE_VERIFY_DELAY_SECONDS: float = 1.5

    # Scheduled delivery sweep
    SCHEDULED_EMAIL_BATCH_SIZE: int = 50

    # Modes that never require a purchase (comma-separated)
    FREE_MODES: str = "quick"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def free_modes_list(self) -> list[str]:
        """Parse FREE_MODES into lowercase list."""
        if not self.FREE_MODES:
            return []
        return [m.strip().lower() for m in self.FREE_MODES.split(",") if m.strip()]

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
