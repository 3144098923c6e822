"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str

    # Backend: "database" keeps orders in the local database,
    # "hosted" talks to the hosted REST backend
    backend_mode: str = "database"
    backend_url: str = ""
    backend_api_key: str = ""
    receipt_bucket: str = "payment-receipts"
    upload_dir: str = "uploads"
    public_base_url: str = ""
    max_receipt_bytes: int = 5 * 1024 * 1024

    # Shop
    shop_name: str = "Reina Shop"
    currency_symbol: str = "₱"
    order_option: str = "order_via_messenger"  # order_via_messenger, place_order
    messenger_recipient_id: str = "779999235186541"
    menu_file: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
