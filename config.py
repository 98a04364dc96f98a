"""
Configuration settings for the exam strategy engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./exam_prep.db",
        description="SQLAlchemy URL for the document store (SQLite or PostgreSQL)",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Strategy Metrics
    # ========================================
    strategy_fallback_topic_hours: float = Field(
        default=1.0,
        description="Hours credited to a finished topic that has no logged study time",
    )
    strategy_default_daily_goal_minutes: int = Field(
        default=60,
        description="Daily study goal when the user has not set one",
    )
    strategy_grace_period_days: int = Field(
        default=7,
        description="New-user window in which zero progress is not projected as a delay",
    )
    strategy_status_buffer_days: int = Field(
        default=14,
        description="Days of slack separating at_risk/critical and on_track/ahead",
    )
    strategy_min_preparation_days: float = Field(
        default=2.0,
        description="Targets closer than this to the start date are treated as unset",
    )
    strategy_fallback_target_months: int = Field(
        default=6,
        description="Months from today used when no valid target date exists",
    )
    strategy_goal_walk_max_days: int = Field(
        default=3650,
        description="Upper bound on the day-by-day study goal walk",
    )
    strategy_never_finish_days: int = Field(
        default=9999,
        description="Projection used when the current velocity is zero",
    )

    # ========================================
    # Unified Progress
    # ========================================
    progress_collection_template: str = Field(
        default="users/{user_id}/progress",
        description="Collection path holding a user's progress document",
    )
    progress_document_id: str = Field(
        default="unified",
        description="Document ID of the unified progress document",
    )
    progress_test_weight: float = Field(
        default=0.3,
        description="Weight of an adaptive test result in the track average",
    )
    progress_overall_test_weight: float = Field(
        default=0.1,
        description="Weight of an adaptive test result in the overall average",
    )
    progress_subject_alpha: float = Field(
        default=0.4,
        description="Learning rate of the per-subject exponential moving average",
    )
    progress_optimistic_concurrency: bool = Field(
        default=True,
        description="Reject progress writes when the document changed since it was read",
    )

    def get_strategy_config(self) -> dict[str, Any]:
        """Get strategy calculator configuration as a dictionary."""
        return {
            "fallback_topic_hours": self.strategy_fallback_topic_hours,
            "default_daily_goal_minutes": self.strategy_default_daily_goal_minutes,
            "grace_period_days": self.strategy_grace_period_days,
            "status_buffer_days": self.strategy_status_buffer_days,
            "min_preparation_days": self.strategy_min_preparation_days,
            "fallback_target_months": self.strategy_fallback_target_months,
            "goal_walk_max_days": self.strategy_goal_walk_max_days,
            "never_finish_days": self.strategy_never_finish_days,
        }

    def get_progress_config(self) -> dict[str, Any]:
        """Get progress service configuration as a dictionary."""
        return {
            "collection_template": self.progress_collection_template,
            "document_id": self.progress_document_id,
            "test_weight": self.progress_test_weight,
            "overall_test_weight": self.progress_overall_test_weight,
            "subject_alpha": self.progress_subject_alpha,
            "optimistic_concurrency": self.progress_optimistic_concurrency,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
