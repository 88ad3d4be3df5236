"""Configuration management for the opportunity tracker."""

from .duration import DurationParseError, parse_lookback_days
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config
from .models import (
    AdvancedConfig,
    AppConfig,
    IngestionConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    ScheduleConfig,
    ScoringConfig,
)

__all__ = [
    "load_config",
    "load_app_config",
    "load_environment_config",
    "parse_lookback_days",
    "AppConfig",
    "IngestionConfig",
    "ScoringConfig",
    "ScheduleConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
    "DurationParseError",
]
