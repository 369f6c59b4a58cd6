import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is for local development and tests only. Set DATABASE_URL to a
    PostgreSQL connection string for any shared deployment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "fitplan.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    log_json: bool = Field(
        default=False,
        validation_alias="LOG_JSON",
        description="Emit log records as JSON lines instead of the colored console format",
    )
    expiring_soon_days: int = Field(
        default=7,
        validation_alias="EXPIRING_SOON_DAYS",
        description="Days before end_at during which a subscription reports EXPIRING_SOON",
    )
    progression_weight_step_kg: float = Field(
        default=2.0,
        validation_alias="PROGRESSION_WEIGHT_STEP_KG",
        description="Fixed weight increase recommended after a fully passed exercise",
    )
    default_target_reps: int = Field(
        default=12,
        validation_alias="DEFAULT_TARGET_REPS",
        description="Target reps used when a completed exercise has no prescription",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("expiring_soon_days", "default_target_reps")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"must be >= 0, got {value}")
        return value

    @field_validator("progression_weight_step_kg")
    @classmethod
    def validate_weight_step(cls, value: float) -> float:
        """Warn when the progression step is unusually large."""
        if value < 0:
            raise ValueError(f"progression_weight_step_kg must be >= 0, got {value}")
        if value > 10:
            logger.warning(f"PROGRESSION_WEIGHT_STEP_KG={value} is unusually large for a single-session increase")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
