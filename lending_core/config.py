"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .currency import Currency


class LendingConfig(BaseSettings):
    """Lending core configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LENDING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Money
    default_currency: str = "BRL"

    # Status rules
    default_grace_days: int = Field(default=30, ge=0)  # Days past due before "defaulted"

    # Schedule defaults
    default_installments: int = Field(default=12, gt=0)  # Used when estimating without a schedule
    upcoming_window_days: int = Field(default=7, ge=0)

    # Reports
    # Payments whose notes contain this marker were created by editing
    # installments by hand and are left out of monthly figures.
    report_excluded_note_marker: Optional[str] = "Pagamento registrado via edição de parcelas"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    @field_validator("default_currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        Currency.from_code(value)
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @property
    def currency(self) -> Currency:
        """Default currency as a Currency member"""
        return Currency.from_code(self.default_currency)


# Global configuration instance
_config: Optional[LendingConfig] = None


def get_config() -> LendingConfig:
    """Get global configuration instance"""
    global _config
    if _config is None:
        _config = LendingConfig()
    return _config


def reload_config() -> LendingConfig:
    """Reload configuration from environment"""
    global _config
    _config = LendingConfig()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (tests)"""
    global _config
    _config = None
