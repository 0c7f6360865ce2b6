from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Storefront API
    API_BASE_URL: str = "http://localhost:5000/api"
    REQUEST_TIMEOUT_SECONDS: Optional[float] = None  # No client-side timeout by default

    # CSRF double-submit
    CSRF_TOKEN_PATH: str = "/csrf-token"
    CSRF_HEADER_NAME: str = "x-csrf-token"

    # Durable client storage
    STORAGE_BACKEND: str = "file"  # memory | file | mongo
    STORAGE_PATH: str = ".crownhour/state.json"
    CART_STORAGE_KEY: str = "crown-cart-storage"
    WISHLIST_STORAGE_KEY: str = "crown-wishlist-storage"
    AUTH_STORAGE_KEY: str = "crown-auth-storage"

    # MongoDB Configuration (STORAGE_BACKEND=mongo)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "crownhour_client"
    MONGODB_STATE_COLLECTION: str = "client_state"

    # MFA
    MFA_ISSUER: str = "CrownHour"

    # Application Settings
    PROJECT_NAME: str = "Crown Hour"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CROWNHOUR_",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
