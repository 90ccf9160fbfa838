from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Required Fields ---
    PROJECT_NAME: str = "Caramel_Storefront"
    DATABASE_URL: str

    # --- Runtime ---
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:8000"
    BUSINESS_NAME: str = "Caramel & Jo"

    # --- Payments (Stripe) ---
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    PAYMENT_CURRENCY: str = "usd"
    PAYMENT_TIMEOUT_SECONDS: float = 10.0

    # --- Delivery rules ---
    BAKERY_TIMEZONE: str = "America/New_York"
    SAME_DAY_CUTOFF_HOUR: int = 9

    # --- Email (SMTP) ---
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_TIMEOUT_SECONDS: float = 15.0
    EMAIL_FROM: str = "orders@caramelandjo.com"
    EMAIL_TO: str = "orders@caramelandjo.com"

    # --- Staff WhatsApp alerts (optional) ---
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None
    ADMIN_PHONE_NUMBER: str | None = None

    # --- Admin access ---
    ADMIN_PASSWORD: str | None = None
    ADMIN_SECRET: str | None = None
    ADMIN_SESSION_HOURS: int = 24

    # --- Configuration ---
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # unrelated variables in .env (POSTGRES_USER etc.) must not crash startup
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

settings = Settings()
