"""
Configuration for settlement calculations and the CLI.

Values come from environment variables (optionally via a .env file).
"""
import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

load_dotenv()

# One unit of the base currency (e.g. 1 VND). Balances closer to zero than
# this are treated as settled.
SETTLEMENT_EPSILON = 1.0


class LogLevel(str, Enum):
    """Log levels supported by the package."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SettleConfig(BaseModel):
    """Settings shared by the engine, ledger loader and CLI."""

    epsilon: float = Field(
        default=SETTLEMENT_EPSILON,
        description="Tolerance below which a balance counts as settled"
    )
    base_currency: str = Field(default="VND", description="Currency all amounts are stored in")
    secondary_currency: str = Field(default="THB", description="Currency converted at the trip rate")
    exchange_rate: float = Field(
        default=740.0,
        description="Base currency units per one unit of the secondary currency"
    )
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("epsilon")
    @classmethod
    def validate_epsilon(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"Settlement epsilon must not be negative, got {value}")
        return value

    @field_validator("exchange_rate")
    @classmethod
    def validate_exchange_rate(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"Exchange rate must be positive, got {value}")
        return value

    @field_validator("base_currency", "secondary_currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    @classmethod
    def from_env(cls) -> "SettleConfig":
        """Create a SettleConfig from environment variables."""
        return cls(
            epsilon=float(os.getenv("SETTLEMENT_EPSILON", str(SETTLEMENT_EPSILON))),
            base_currency=os.getenv("BASE_CURRENCY", "VND"),
            secondary_currency=os.getenv("SECONDARY_CURRENCY", "THB"),
            exchange_rate=float(os.getenv("EXCHANGE_RATE", "740")),
            log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO").upper()),
            log_file=os.getenv("LOG_FILE") or None,
        )


_config: Optional[SettleConfig] = None


def get_config() -> SettleConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        try:
            _config = SettleConfig.from_env()
        except (ValidationError, ValueError) as e:
            raise ConfigurationError("Invalid settlement configuration", e) from e
    return _config


def reset_config() -> None:
    """Forget the cached configuration so the next call reloads it."""
    global _config
    _config = None
