import logging
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="GARAGE_", extra="ignore")

    db_url: str = "postgresql://garage:garage@db:5432/garage"

    default_hourly_rate: Decimal = Decimal("125")
    default_labor_description: str = "Labor"

    currency_symbol: str = "$"

    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
