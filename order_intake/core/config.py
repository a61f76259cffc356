from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Order_Intake"
    DATABASE_URL: str = "sqlite:///./orders.db"
    REDIS_URL: str | None = None

    # --- Bot challenge (lookup only) ---
    TURNSTILE_SECRET_KEY: str | None = None
    TURNSTILE_VERIFY_URL: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

    # --- Abuse limits ---
    ORDER_RATE_WINDOW_SECONDS: int = 15 * 60
    ORDER_RATE_MAX: int = 15
    LOOKUP_RATE_WINDOW_SECONDS: int = 5 * 60
    LOOKUP_RATE_MAX: int = 30

    # --- Order limits ---
    MAX_ITEMS_PER_ORDER: int = 50
    MIN_QUANTITY_PER_ITEM: int = 1
    MAX_QUANTITY_PER_ITEM: int = 100
    MAX_TOTAL_ITEMS: int = 500
    MAX_ORDER_VALUE_CENTS: int = 1_000_000
    MAX_TABLE_LABEL_LENGTH: int = 20

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # other services share the same .env
    )

settings = Settings()
