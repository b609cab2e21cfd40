"""
Application settings using Pydantic.

This module provides runtime configuration with environment variable support.
"""

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatbrain.config.constants import (
    DEFAULT_STATE_PATH,
    ESSAY_TEMPERATURE,
    MAX_MEMORY,
    MEMORY_SEARCH_WINDOW,
    NEURAL_DIM,
    NEURAL_IMPORT_MAX_INTERACTIONS,
    NEURAL_IMPORT_YIELD_EVERY,
    TRAINER_BATCH_SIZE,
    TRAINER_LIVE_BATCH_SIZE,
)


def _env(name: str) -> AliasChoices:
    # Field name, prefixed variable, then the bare variable older deployments set.
    return AliasChoices(name, f"CHATBRAIN_{name.upper()}", name.upper())


class Settings(BaseSettings):
    """
    Engine settings with environment variable support.

    Settings can be overridden via environment variables prefixed with
    CHATBRAIN_, for example CHATBRAIN_MAX_MEMORY=2000. The recall window,
    essay temperature and bulk-import knobs also honour their bare names
    (MEMORY_SEARCH_WINDOW, ESSAY_TEMPERATURE, NEURAL_IMPORT_MAX_INTERACTIONS,
    NEURAL_IMPORT_YIELD_EVERY).

    Values that are not numbers, or are not positive, fall back to the
    default instead of failing startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATBRAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Memory
    max_memory: int = Field(
        default=MAX_MEMORY,
        description="Maximum interactions kept in the log",
    )

    memory_search_window: int = Field(
        default=MEMORY_SEARCH_WINDOW,
        description="Interactions scanned by memory recall",
        validation_alias=_env("memory_search_window"),
    )

    # Generation
    essay_temperature: float = Field(
        default=ESSAY_TEMPERATURE,
        description="Essay evidence/phrase randomness (0 anchored, 1 random)",
        validation_alias=_env("essay_temperature"),
    )

    neural_dim: int = Field(
        default=NEURAL_DIM,
        description="Hashed embedding length for new prototype memories",
    )

    # Bulk import
    neural_import_max_interactions: int = Field(
        default=NEURAL_IMPORT_MAX_INTERACTIONS,
        description="Most recent interactions replayed by a bulk neural import",
        validation_alias=_env("neural_import_max_interactions"),
    )

    neural_import_yield_every: int = Field(
        default=NEURAL_IMPORT_YIELD_EVERY,
        description="Considered items between cooperative yields",
        validation_alias=_env("neural_import_yield_every"),
    )

    # Trainer
    trainer_batch_size: int = Field(
        default=TRAINER_BATCH_SIZE,
        description="Interactions per standalone trainer tick",
    )

    trainer_live_batch_size: int = Field(
        default=TRAINER_LIVE_BATCH_SIZE,
        description="Interactions per trainer tick after a live turn",
    )

    # Persistence
    state_path: Path = Field(
        default=Path(DEFAULT_STATE_PATH),
        description="JSON file used by JsonStateStore",
    )

    # Runtime
    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    @field_validator(
        "max_memory",
        "memory_search_window",
        "neural_dim",
        "neural_import_max_interactions",
        "neural_import_yield_every",
        "trainer_batch_size",
        "trainer_live_batch_size",
        mode="before",
    )
    @classmethod
    def _positive_int_or_default(cls, value: Any, info) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if number != number or number <= 0 or number == float("inf"):
            return default
        return int(number)

    @field_validator("essay_temperature", mode="before")
    @classmethod
    def _clamped_temperature(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return ESSAY_TEMPERATURE
        if number != number:
            return ESSAY_TEMPERATURE
        return min(1.0, max(0.0, number))


# Global settings instance (can be overridden for testing)
settings = Settings()
