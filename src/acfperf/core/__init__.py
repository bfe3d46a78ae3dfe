"""Core infrastructure: logging and scenario configuration."""

from acfperf.core.config import ConfigError, ScenarioConfig
from acfperf.core.logging_system import LoggingError, get_logger, initialize_logging

__all__ = ["ConfigError", "LoggingError", "ScenarioConfig", "get_logger", "initialize_logging"]
