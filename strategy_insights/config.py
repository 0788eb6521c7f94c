"""Configuration management for the correlation engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ImpactDefaults(BaseModel):
    """Baseline business impact before category-specific scaling."""

    cost_of_inaction: float = Field(default=25000.0, ge=0)
    potential_savings: float = Field(default=12000.0, ge=0)
    investment_required: float = Field(default=5000.0, ge=0)
    days_to_resolution: int = Field(default=14, ge=0)
    people_required: int = Field(default=1, ge=0)
    skills_needed: list[str] = Field(default_factory=lambda: ["Analysis"])
    tools_required: list[str] = Field(default_factory=lambda: ["Monitoring Tools"])


class EngineConfig(BaseModel):
    """Tunables for analyzers, timeouts and impact estimation."""

    analyzer_timeout_seconds: float = Field(default=5.0, gt=0)
    temporal_window_days: int = Field(default=7, ge=0)
    default_time_range_days: int = Field(default=90, ge=1)
    active_initiative_statuses: list[str] = Field(
        default_factory=lambda: ["ACTIVE", "PLANNING", "APPROVED"]
    )
    max_entity_id_length: int = Field(default=128, ge=1)
    impact: ImpactDefaults = Field(default_factory=ImpactDefaults)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Database
    database_url: str = "postgresql://localhost/flowvision"
    database_pool_max_size: int = 10
    database_command_timeout: float | None = 10.0

    # Paths
    config_dir: Path = Path("config")

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def load_config_file(config_path: Path | None = None) -> dict[str, Any]:
    """Load the raw YAML configuration. A missing file yields an empty dict."""
    if config_path is None:
        config_path = Path("config/insights.yaml")

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def get_engine_config(config: dict[str, Any]) -> EngineConfig:
    """Extract engine settings from the `correlation` section."""
    section = config.get("correlation", {}) or {}
    return EngineConfig(**section)


def load_engine_config(config_path: Path | None = None) -> EngineConfig:
    """Load engine configuration from YAML, falling back to defaults."""
    return get_engine_config(load_config_file(config_path))
