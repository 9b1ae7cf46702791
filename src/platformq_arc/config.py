"""
Arc access library configuration.

Settings are read from the environment (prefix ``ARC_``) and may be
overridden by passing keyword arguments when constructing ``ArcSettings``.
"""

from functools import lru_cache
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ArcSettings(BaseSettings):
    """Settings for event fetching, transactions and transaction tracking"""

    model_config = SettingsConfigDict(env_prefix="ARC_", extra="ignore")

    # Ledger access
    provider_url: str = "http://localhost:8545"
    default_account: Optional[str] = None
    private_key: Optional[str] = None
    tx_receipt_timeout: float = 120.0

    # Event fetching
    default_from_block: Union[int, str] = "latest"
    suppress_duplicate_events: bool = True
    max_tracked_transactions: Optional[int] = None
    event_poll_interval: float = Field(2.0, gt=0)

    # Transaction tracking
    tx_receipts_topic: str = "txReceipts"

    @field_validator("max_tracked_transactions")
    @classmethod
    def validate_max_tracked(cls, v):
        if v is not None and v <= 0:
            raise ValueError("max_tracked_transactions must be positive")
        return v


@lru_cache()
def get_settings() -> ArcSettings:
    """Get cached settings instance"""
    return ArcSettings()
