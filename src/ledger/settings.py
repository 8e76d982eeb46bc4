"""
Stock ledger settings, read from the environment or a local .env file.
"""
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================================================================
    # Remote feeds (sheet webhooks)
    # =========================================================================
    SALES_FEED_URL: str = Field(default="https://n8n.ahader.cloud/webhook/get-inventory")
    ADJUSTMENTS_READ_URL: str = Field(default="https://n8n.ahader.cloud/webhook/get-adjustments")
    ADJUSTMENTS_WRITE_URL: str = Field(default="https://n8n.ahader.cloud/webhook/post-adjustment")
    FEED_TIMEOUT_SECONDS: float = Field(default=8.0, gt=0, le=9.9)

    # =========================================================================
    # Local storage (cache + logs)
    # =========================================================================
    INVENTORY_DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "inventory-data"),
        validation_alias=AliasChoices("INVENTORY_DATA_ROOT", "stock_ledger_data_root"),
    )

    # =========================================================================
    # Sync policy
    # =========================================================================
    CLAMP_FEED_DEDUCTIONS: bool = Field(
        default=True,
        description="Cap feed deductions at the running balance during replay",
    )
    PERSIST_PARTIAL_SYNC: bool = Field(
        default=True,
        description="Write the cache even when one of the feeds failed",
    )

    LOG_LEVEL: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cache_dir(self) -> Path:
        return Path(self.INVENTORY_DATA_ROOT).expanduser() / "cache"


def get_settings() -> Settings:
    return Settings()
