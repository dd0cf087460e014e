# /bealigned/config/settings.py

import sys
from typing import Dict, List
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App Metadata & Limits
    environment: str = Field(default="development", env="ENVIRONMENT")
    api_version: str = "v1"
    rate_limit_per_minute: int = 100
    turn_rate_limit_per_minute: int = 30
    request_timeout_seconds: float = 90.0

    # CORS
    cors_allowed_origins: List[str] = Field(
        default=[
            "http://localhost:8081",
            "http://localhost:19006",
        ],
        env="CORS_ALLOWED_ORIGINS"
    )

    # Security
    api_key: str | None = None

    # AI APIs
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    openai_model: str = "gpt-4o"
    generation_temperature: float = 0.7
    generation_max_output_tokens: int = 1500

    # Generation retry policy (2 attempts = one retry)
    generation_timeout_seconds: float = 20.0
    generation_max_attempts: int = 2
    generation_backoff_seconds: float = 1.0

    # Readiness scoring
    readiness_threshold: float = 0.7
    readiness_weight_slots: float = 0.5
    readiness_weight_substance: float = 0.3
    readiness_weight_confirmation: float = 0.2
    substance_word_target: int = 25
    confirmation_match_threshold: int = 90

    # Phase policy overrides, keyed by phase id. Catalog values are the defaults.
    default_max_followups: int = 3
    phase_readiness_overrides: Dict[int, float] = {}
    phase_max_followups_overrides: Dict[int, int] = {}

    # Number of history turns sent to the model (stored history is never trimmed)
    prompt_history_window: int = 20

    # ---------------- Validators ---------------- #

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def parse_cors_allowed_origins(cls, v):
        """
        Accept both a comma-separated string and a list, so the value can be
        set from a plain environment variable.
        """
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("readiness_threshold")
    @classmethod
    def threshold_must_be_a_probability(cls, v):
        if not 0.0 < v <= 1.0:
            raise ValueError("READINESS_THRESHOLD must be in (0, 1]")
        return v

    @field_validator("generation_max_attempts", "default_max_followups")
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @model_validator(mode="after")
    def readiness_weights_must_sum_to_one(self):
        total = (
            self.readiness_weight_slots
            + self.readiness_weight_substance
            + self.readiness_weight_confirmation
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Readiness weights must sum to 1.0 (got {total:.4f})")
        return self

    @model_validator(mode="after")
    def overrides_must_target_known_phases(self):
        for phase_id in list(self.phase_readiness_overrides) + list(self.phase_max_followups_overrides):
            if not 1 <= phase_id <= 7:
                raise ValueError(f"Phase override refers to unknown phase {phase_id}")
        for phase_id, value in self.phase_readiness_overrides.items():
            if not 0.0 < value <= 1.0:
                raise ValueError(f"Readiness override for phase {phase_id} must be in (0, 1]")
        for phase_id, value in self.phase_max_followups_overrides.items():
            if value < 1:
                raise ValueError(f"Follow-up override for phase {phase_id} must be at least 1")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def validate_environment(settings_obj: Settings):
    try:
        if settings_obj.environment == "production":
            if not settings_obj.gemini_api_key and not settings_obj.openai_api_key:
                raise ValueError("At least one AI API key must be provided")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
