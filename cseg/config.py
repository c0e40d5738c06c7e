import sys
from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CSEG_",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    # Security
    secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 12

    # Bug introduction rules (RED round)
    min_bugs: int = 3
    max_bugs: int = 5
    max_drastic_ratio: float = 0.6  # Edit distance / original line length
    min_drastic_line_length: int = 10
    red_accept_compile_errors: bool = True

    # Scoring
    bug_fixed_points: int = 3
    bug_survived_points: int = 2
    execution_bonus_points: int = 1

    # Lobby
    min_players: int = 2
    player_name_min_length: int = 2
    player_name_max_length: int = 20
    max_code_length: int = 50000

    # Shuffling
    derangement_max_attempts: int = 100

    # Judge
    judge_compile_timeout: float = 5.0  # seconds
    judge_run_timeout: float = 2.0  # seconds, per test case
    judge_max_output_chars: int = 10000
    judge_c_compiler: str = "gcc"
    judge_cpp_compiler: str = "g++"
    judge_python_executable: str = sys.executable
    judge_temp_dir: str | None = None

    # Snippets loaded at startup (JSON array); built-ins are used when unset
    snippets_path: str | None = None

    # Metrics
    metrics_enabled: bool = True

    @model_validator(mode="after")
    def check_bug_bounds(self) -> "Settings":
        if self.min_bugs < 0:
            raise ValueError("min_bugs must be non-negative")
        if self.max_bugs < self.min_bugs:
            raise ValueError("max_bugs must be >= min_bugs")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
