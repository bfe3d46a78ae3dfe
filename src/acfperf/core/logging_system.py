"""Logging system for the performance engine and its front-ends.

Logging is configured from a YAML file (or built-in defaults) and exposes
per-component loggers. Each component can get its own level or a dedicated
file through the ``components`` section of the configuration.

Platform-specific log locations:
    - macOS: ~/Library/Logs/AcfPerf/acfperf.log
    - Linux: ~/.acfperf/logs/acfperf.log
    - Windows: %AppData%/AcfPerf/Logs/acfperf.log

Each explicit initialization rotates the combined log, keeping the last 5 runs.

Typical usage example:
    from acfperf.core.logging_system import get_logger

    logger = get_logger(__name__)
    logger.debug("Climb step: alt=%.0f kcas=%.1f", alt, kcas)
"""

import logging
import logging.handlers
import os
import platform
import time
from pathlib import Path
from typing import Any

import yaml

_logging_config: dict[str, Any] = {}
_loggers_cache: dict[str, logging.Logger] = {}
_dedicated_handlers: dict[str, logging.Handler] = {}
_initialized = False


class LoggingError(Exception):
    """Raised when logging system operations fail."""


def get_platform_log_dir() -> Path:
    """Get platform-specific log directory.

    Returns:
        Path to the platform-appropriate log directory.
    """
    system = platform.system()

    if system == "Darwin":
        return Path.home() / "Library" / "Logs" / "AcfPerf"
    elif system == "Windows":
        appdata = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return appdata / "AcfPerf" / "Logs"
    else:
        return Path.home() / ".acfperf" / "logs"


def rotate_logs(log_dir: Path, log_filename: str = "acfperf.log", keep_count: int = 5) -> None:
    """Rotate logs on startup, keeping the last N runs.

    The current log becomes ``<name>.1``, older logs shift up by one and
    anything beyond ``keep_count`` is deleted.

    Args:
        log_dir: Directory containing log files.
        log_filename: Base name of the log file.
        keep_count: Number of old logs to keep.
    """
    log_file = log_dir / log_filename
    if not log_file.exists():
        return

    oldest_log = log_dir / f"{log_filename}.{keep_count}"
    if oldest_log.exists():
        oldest_log.unlink()

    for i in range(keep_count - 1, 0, -1):
        old_log = log_dir / f"{log_filename}.{i}"
        if old_log.exists():
            old_log.rename(log_dir / f"{log_filename}.{i + 1}")

    log_file.rename(log_dir / f"{log_filename}.1")


def initialize_logging(config_path: str | Path | None = None, use_platform_dir: bool = True) -> None:
    """Initialize the logging system.

    Called once by applications before any logging occurs. Library use
    without an explicit call falls back to console-only defaults.

    Modules create their loggers at import time, usually before this call,
    so the ``components`` section is applied to existing loggers too.

    Args:
        config_path: Path to a logging configuration YAML file. If None,
            the default configuration with a combined log file is used.
        use_platform_dir: If True, write logs to the platform directory
            instead of the ``log_dir`` from the configuration.

    Raises:
        LoggingError: If the configuration file cannot be loaded or names
            an unknown level.
    """
    global _logging_config, _initialized

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise LoggingError(f"Logging config file not found: {config_path}")
        try:
            with config_path.open("r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise LoggingError(f"Failed to load logging config: {e}") from e
        if not isinstance(config, dict):
            raise LoggingError(f"Logging config root must be a mapping: {config_path}")
    else:
        config = _get_default_config()
        config["combined_log"]["enabled"] = True
    _validate_levels(config)
    _logging_config = config

    if use_platform_dir:
        _logging_config["log_dir"] = str(get_platform_log_dir())

    if _logging_config.get("combined_log", {}).get("enabled", True):
        log_dir = Path(_logging_config.get("log_dir", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        rotate_logs(
            log_dir,
            _logging_config.get("combined_log", {}).get("filename", "acfperf.log"),
            _logging_config.get("combined_log", {}).get("backup_count", 5),
        )

    _configure_root_logger()
    names = set(_loggers_cache) | set(_logging_config.get("components", {}))
    for name in names:
        _loggers_cache[name] = _configure_component(logging.getLogger(name))
    _initialized = True


def _get_default_config() -> dict[str, Any]:
    """Get default logging configuration.

    Returns:
        Default logging configuration dictionary. The combined log file is
        disabled so that importing the library never touches the disk.
    """
    return {
        "version": 1,
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "date_format": "%Y-%m-%d %H:%M:%S",
        "log_dir": "logs",
        "combined_log": {
            "enabled": False,
            "filename": "acfperf.log",
            "backup_count": 5,
        },
        "console": {
            "enabled": True,
            "level": "WARNING",
        },
        "components": {},
    }


def _level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise LoggingError(f"Unknown log level: {name}")
    return level


def _validate_levels(config: dict[str, Any]) -> None:
    _level(config.get("console", {}).get("level", "INFO"))
    for name, component in config.get("components", {}).items():
        if not isinstance(component, dict):
            raise LoggingError(f"Component entry must be a mapping: {name}")
        if "level" in component:
            _level(component["level"])


def _configure_root_logger() -> None:
    """Configure the root logger with console and file handlers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if _logging_config.get("console", {}).get("enabled", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(_level(_logging_config.get("console", {}).get("level", "INFO")))
        console_handler.setFormatter(_get_formatter())
        root_logger.addHandler(console_handler)

    if _logging_config.get("combined_log", {}).get("enabled", True):
        log_dir = Path(_logging_config.get("log_dir", "logs"))
        log_file = log_dir / _logging_config["combined_log"].get("filename", "acfperf.log")
        # rotation already happened in initialize_logging
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_get_formatter())
        root_logger.addHandler(file_handler)


class MillisecondFormatter(logging.Formatter):
    """Formatter that appends milliseconds with a dot separator."""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        s = time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", ct)
        return f"{s}.{int(record.msecs):03d}"


def _get_formatter() -> logging.Formatter:
    fmt = _logging_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    datefmt = _logging_config.get("date_format", "%Y-%m-%d %H:%M:%S")
    return MillisecondFormatter(fmt, datefmt)


def _configure_component(logger: logging.Logger) -> logging.Logger:
    """Apply the logger's ``components`` entry, undoing any earlier one."""
    old_handler = _dedicated_handlers.pop(logger.name, None)
    if old_handler is not None:
        logger.removeHandler(old_handler)
        old_handler.close()

    component_config = _logging_config.get("components", {}).get(logger.name, {})
    logger.disabled = not component_config.get("enabled", True)
    logger.setLevel(_level(component_config["level"]) if "level" in component_config else logging.NOTSET)

    if not logger.disabled and component_config.get("dedicated_file", False):
        log_dir = Path(_logging_config.get("log_dir", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{logger.name}.log",
            maxBytes=component_config.get("max_bytes", 10485760),
            backupCount=component_config.get("backup_count", 5),
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_get_formatter())
        logger.addHandler(file_handler)
        _dedicated_handlers[logger.name] = file_handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component.

    Loggers are cached. A component entry under ``components`` in the
    configuration may set ``level``, ``enabled`` or ``dedicated_file``.

    Args:
        name: Logger name (typically the module ``__name__``).

    Returns:
        Configured logger instance.

    Examples:
        >>> log = get_logger("acfperf.performance.drivers")
        >>> log.warning("Climb did not converge after %d steps", steps)
    """
    global _logging_config, _initialized

    if not _initialized:
        # Library use without initialize_logging(): console only.
        _logging_config = _get_default_config()
        _configure_root_logger()
        _initialized = True

    if name not in _loggers_cache:
        _loggers_cache[name] = _configure_component(logging.getLogger(name))
    return _loggers_cache[name]


def shutdown_logging() -> None:
    """Flush and close all handlers."""
    global _initialized

    logging.shutdown()
    for name, handler in list(_dedicated_handlers.items()):
        logging.getLogger(name).removeHandler(handler)
    _dedicated_handlers.clear()
    _initialized = False
