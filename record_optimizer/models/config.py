# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides the Pydantic Settings model for optimizer defaults:
# - OptimizerSettings: rule defaults read from RECORD_OPTIMIZER_* variables
# =============================================================================

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "OptimizerSettings",
    "get_settings",
]


# =============================================================================
# Optimizer Settings
# =============================================================================

class OptimizerSettings(BaseSettings):
    """
    Default parameters for rule builders and the executor.

    Maps environment variables with prefix "RECORD_OPTIMIZER_":
    - RECORD_OPTIMIZER_SLUG_DELIMITER → slug_delimiter
    - RECORD_OPTIMIZER_DATE_FROM_FORMAT → date_from_format
    - RECORD_OPTIMIZER_LIST_SEPARATOR → list_separator
    - RECORD_OPTIMIZER_JSON_ENSURE_ASCII → json_ensure_ascii

    Attributes:
        slug_delimiter: Delimiter used by slug rules when none is given (default: "-")
        date_from_format: Source format for date rules when none is given
                          (default: "Y-m-d H:i:s")
        list_separator: Separator used to join decoded JSON arrays (default: ",")
        json_ensure_ascii: Escape non-ASCII characters when encoding JSON (default: True)
    """

    slug_delimiter: str = Field("-", validation_alias="RECORD_OPTIMIZER_SLUG_DELIMITER", description="Default slug delimiter")
    date_from_format: str = Field("Y-m-d H:i:s", validation_alias="RECORD_OPTIMIZER_DATE_FROM_FORMAT", description="Default source date format")
    list_separator: str = Field(",", validation_alias="RECORD_OPTIMIZER_LIST_SEPARATOR", description="Separator for list rules")
    json_ensure_ascii: bool = Field(True, validation_alias="RECORD_OPTIMIZER_JSON_ENSURE_ASCII", description="Escape non-ASCII in JSON output")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @field_validator("date_from_format")
    @classmethod
    def validate_date_from_format(cls, v: str) -> str:
        if not v:
            raise ValueError("date_from_format cannot be empty")
        return v


@lru_cache(maxsize=1)
def get_settings() -> OptimizerSettings:
    """
    Return the process-wide settings instance.

    Settings are read from the environment once and cached. Tests that change
    the environment call ``get_settings.cache_clear()``.
    """
    return OptimizerSettings()
