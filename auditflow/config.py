"""
AuditFlow Application Configuration
Environment-driven settings for persistence, weighting tolerance and logging
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "AuditFlow"
    debug: bool = False

    # Database
    database_url: str = Field(
        default="sqlite:///./auditflow.db",
        description="SQLAlchemy connection URL for audit storage",
    )
    database_echo: bool = False
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # Weighting
    weight_tolerance: float = Field(default=0.01, description="Allowed drift from 100 for weight sums")

    # Maturity bounds used when an audit has no scoring framework
    default_min_maturity_level: int = 0
    default_max_maturity_level: int = 5

    # Audit codes (AUD-YYYY-NNN)
    audit_code_prefix: str = "AUD"

    # Repository monitoring
    slow_query_threshold: float = 1.0  # seconds

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AUDITFLOW_",
        extra="ignore",
    )

    @field_validator("weight_tolerance")
    @classmethod
    def tolerance_must_be_positive(cls, v: float) -> float:
        if v <= 0 or v >= 1:
            raise ValueError("Weight tolerance must be between 0 and 1 (exclusive)")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_maturity_range(self) -> "Settings":
        if self.default_min_maturity_level > self.default_max_maturity_level:
            raise ValueError(
                f"default_min_maturity_level ({self.default_min_maturity_level}) must not exceed "
                f"default_max_maturity_level ({self.default_max_maturity_level})"
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()
