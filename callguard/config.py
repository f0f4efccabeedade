"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.suspension import SuspensionPolicy


class DefaultsConfig(BaseModel):
    """Default settings for slot search."""
    duration_minutes: int = 15
    step_minutes: Optional[int] = None

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure slot duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("step_minutes")
    @classmethod
    def validate_step(cls, value: Optional[int]) -> Optional[int]:
        """Ensure the slot step is positive when given."""
        if value is not None and value <= 0:
            raise ValueError("step_minutes must be greater than zero")
        return value


class SuspensionConfig(BaseModel):
    """Account-standing policy."""
    flag_threshold: int = 3
    duration_days: Optional[int] = 90  # None: until a qualifying call
    suspension_type: str = "flag-threshold"
    warning_threshold: int = 1

    @field_validator("flag_threshold", "warning_threshold")
    @classmethod
    def validate_threshold(cls, value: int) -> int:
        """Ensure thresholds are positive."""
        if value <= 0:
            raise ValueError(f"Thresholds must be greater than zero, got {value}")
        return value

    @field_validator("duration_days")
    @classmethod
    def validate_duration_days(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("duration_days must be greater than zero or omitted")
        return value

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "SuspensionConfig":
        """A warning must show up no later than the suspension."""
        if self.warning_threshold > self.flag_threshold:
            raise ValueError("warning_threshold must not exceed flag_threshold")
        return self

    def to_policy(self) -> SuspensionPolicy:
        return SuspensionPolicy(
            flag_threshold=self.flag_threshold,
            duration_days=self.duration_days,
            suspension_type=self.suspension_type,
            warning_threshold=self.warning_threshold,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    suspension: SuspensionConfig = Field(default_factory=SuspensionConfig)
    display_timezone: str = "UTC"
    data_file: Optional[Path] = None

    @field_validator("display_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the display timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a callguard.yaml file. See callguard.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative data paths are resolved against the config file location
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = (config_path.parent / config.data_file).resolve()

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for callguard.yaml in current directory
    config_path = Path.cwd() / "callguard.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "callguard.yaml"

    return config_path
