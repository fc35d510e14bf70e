from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from LOGBOOK_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="LOGBOOK_")

    database_url: str = Field(
        default="sqlite:///./logbook.db",
        description="SQLAlchemy database URL"
    )
    log_level: str = Field(default="INFO")

    # sq ft of open diffuser face used when a validation request omits it
    default_diffuser_area: float = Field(default=4.0, gt=0)

    calibration_warning_days: int = Field(default=30, ge=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    seed_demo_data: bool = Field(default=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
