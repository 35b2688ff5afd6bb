"""
Supermarket Sales Warehouse
Centralized Configuration Management

Configuration is read from environment variables (and an optional .env file)
through Pydantic settings, grouped per subsystem.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="supermarket_sales", alias="database", description="Database name")
    user: str = Field(default="warehouse", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL; DATABASE_URL wins over the individual fields"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class StagingSettings(BaseSettings):
    """Raw input file locations and parsing options"""

    model_config = SettingsConfigDict(env_prefix="STAGING_")

    data_dir: str = Field(default="./data/raw", description="Directory holding the four input files")
    products_file: str = Field(default="products.csv", description="Product catalog file")
    sales_file: str = Field(default="sales.csv", description="Sales log file")
    prices_file: str = Field(default="wholesale_prices.csv", description="Wholesale price history file")
    loss_rates_file: str = Field(default="loss_rates.csv", description="Loss rate table file")

    delimiter: str = Field(default=",", description="Field delimiter")
    encoding: str = Field(default="utf8", description="File encoding")
    null_values: List[str] = Field(
        default=["", "NULL", "null", "None", "NA", "N/A"],
        description="Tokens read as missing values",
    )


class PipelineSettings(BaseSettings):
    """Transform and load behaviour"""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    return_token: str = Field(default="return", description="Sale-or-return value marking a return")
    discount_token: str = Field(default="Yes", description="Discount value marking a discounted sale")
    chunk_size: int = Field(default=5000, description="Rows per executemany call inside a unit")
    normalize_product_names: bool = Field(default=True, description="Sentence-case all upper-case product names")
    week_starts_on: str = Field(default="sunday", description="First weekday: sunday or monday")
    incremental: bool = Field(default=False, description="Skip natural keys already in the store")
    validate_batches: bool = Field(default=True, description="Run pre-insert validators before each write")

    # Relaxed limits for the fact unit (seconds)
    session_wait_timeout: int = Field(default=28800, description="Idle connection timeout during fact load")
    net_timeout: int = Field(default=600, description="Network read/write timeout during fact load")

    @field_validator("week_starts_on")
    @classmethod
    def validate_week_start(cls, v: str) -> str:
        """Validate week start value"""
        allowed = ["sunday", "monday"]
        if v.lower() not in allowed:
            raise ValueError(f"Week start must be one of: {allowed}")
        return v.lower()


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="supermarket-dw", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    staging: StagingSettings = Field(default_factory=StagingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
