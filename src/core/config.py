"""
Protocol configuration using pydantic-settings.

Значения по умолчанию повторяют параметры исходного деплоя:
min delay 3600 s, voting period 6545 блоков, voting delay 2 блока, quorum 4%.
Любой параметр переопределяется через env (префикс CROCODILES_) или .env.
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.domain.units import DEFAULT_EGG_PRICE_WEI, DEFAULT_SELL_REFUND_BPS


class ProtocolSettings(BaseSettings):
    """Параметры экономики, голосования и timelock."""

    # Economy
    egg_price_wei: int = Field(DEFAULT_EGG_PRICE_WEI, gt=0)
    sell_refund_bps: int = Field(DEFAULT_SELL_REFUND_BPS, ge=0, le=10_000)
    lay_cooldown_seconds: int = Field(600, ge=0)
    max_eggs_per_lay: int = Field(10, ge=0)
    reserve_refunds_on_withdraw: bool = False

    # Governance (в блоках)
    voting_delay_blocks: int = Field(2, ge=0)
    voting_period_blocks: int = Field(6545, gt=0)
    quorum_percentage: int = Field(4, ge=0, le=100)
    proposal_threshold: int = Field(0, ge=0)

    # Timelock (в секундах)
    timelock_min_delay_seconds: int = Field(3600, ge=0)
    timelock_grace_period_seconds: int = Field(14 * 24 * 3600, gt=0)

    # Host
    block_time_seconds: int = Field(12, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CROCODILES_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> ProtocolSettings:
    """Get cached settings instance."""
    return ProtocolSettings()


def configure_logging(settings: ProtocolSettings | None = None) -> None:
    """Базовая настройка logging для скриптов и REPL."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
