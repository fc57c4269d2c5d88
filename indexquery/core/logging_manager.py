from __future__ import annotations

import logging
import logging.handlers
import os
import pathlib
import sys
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog
from pythonjsonlogger import jsonlogger

from indexquery.utils.exceptions import ConfigurationError


class LoggingManager:
    """Configures logging for indexquery.

    Sets up the stdlib root logger with console and optional rotating file
    handlers, using JSON output when requested, and wires structlog on top so
    module loggers obtained with ``structlog.get_logger`` share the handlers.
    """

    # Mapping from string log levels to logging module constants
    LOG_LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    def __init__(self, logging_config: Optional[Mapping[str, Any]] = None) -> None:
        """Initialize the Logging Manager.

        Args:
            logging_config: The ``logging`` section of the configuration.
        """
        self._config: Dict[str, Any] = dict(logging_config or {})
        self._root_logger: Optional[logging.Logger] = None
        self._console_handler: Optional[logging.Handler] = None
        self._file_handler: Optional[logging.Handler] = None
        self._handlers: List[logging.Handler] = []
        self._enable_structlog = False
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Set up handlers and structlog.

        Raises:
            ConfigurationError: If the logging configuration cannot be applied.
        """
        try:
            log_level = self._level(self._config.get("level", "INFO"))
            log_format = str(self._config.get("format", "json")).lower()

            self._root_logger = logging.getLogger()
            self._root_logger.setLevel(log_level)

            if log_format == "json":
                self._enable_structlog = True
                formatter = self._create_json_formatter()
            else:
                formatter = logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )

            console_config = self._config.get("console", {})
            if console_config.get("enabled", True):
                self._console_handler = logging.StreamHandler(sys.stdout)
                self._console_handler.setLevel(
                    self._level(console_config.get("level", "INFO"))
                )
                self._console_handler.setFormatter(formatter)
                self._add_handler(self._console_handler)

            file_config = self._config.get("file", {})
            if file_config.get("enabled", False):
                file_path = file_config.get("path", "logs/indexquery.log")
                os.makedirs(pathlib.Path(file_path).parent, exist_ok=True)

                self._file_handler = logging.handlers.RotatingFileHandler(
                    file_path,
                    maxBytes=self._parse_rotation(file_config.get("rotation", "10 MB")),
                    backupCount=self._parse_retention(file_config.get("retention", "30 days")),
                )
                self._file_handler.setLevel(log_level)
                self._file_handler.setFormatter(formatter)
                self._add_handler(self._file_handler)

            # structlog renders through the stdlib handlers in both formats
            self._configure_structlog()

            self._initialized = True
            self._root_logger.debug(
                "Logging configured", extra={"format": log_format}
            )

        except (OSError, ValueError, TypeError, AttributeError) as e:
            self.shutdown()
            raise ConfigurationError(
                f"Failed to configure logging: {str(e)}",
                config_key="logging",
            ) from e

    def shutdown(self) -> None:
        """Remove and close the handlers added by this manager."""
        for handler in self._handlers:
            if self._root_logger is not None:
                self._root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._console_handler = None
        self._file_handler = None
        self._initialized = False

    def get_logger(self, name: str) -> Union[logging.Logger, Any]:
        """Get a logger for a specific component.

        Args:
            name: The name of the component requesting a logger.

        Returns:
            A structlog logger once initialized, a plain stdlib logger before.
        """
        if not self._initialized:
            return logging.getLogger(name)
        return structlog.get_logger(name)

    def _add_handler(self, handler: logging.Handler) -> None:
        self._root_logger.addHandler(handler)
        self._handlers.append(handler)

    def _level(self, value: Any) -> int:
        if isinstance(value, int):
            return value
        level_str = str(value).lower()
        if level_str not in self.LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return self.LOG_LEVELS[level_str]

    @staticmethod
    def _parse_rotation(rotation: Any) -> int:
        # e.g. "10 MB"
        if isinstance(rotation, int):
            return rotation
        if isinstance(rotation, str) and "MB" in rotation:
            return int(rotation.split()[0]) * 1024 * 1024
        return 10 * 1024 * 1024

    @staticmethod
    def _parse_retention(retention: Any) -> int:
        # e.g. "30 days"
        if isinstance(retention, int):
            return retention
        if isinstance(retention, str) and "days" in retention:
            return int(retention.split()[0])
        return 30

    def _create_json_formatter(self) -> logging.Formatter:
        """Create a JSON formatter for log records."""
        return jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            json_ensure_ascii=False,
        )

    def _configure_structlog(self) -> None:
        """Configure structlog for structured logging."""
        processors: List[Any] = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]
        if self._enable_structlog:
            # Event keys become record extras for the JSON formatter
            processors.append(structlog.stdlib.render_to_log_kwargs)
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        structlog.configure(
            processors=processors,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )


_manager: Optional[LoggingManager] = None


def configure_logging(config: Any = None) -> LoggingManager:
    """Configure logging from an ``IndexQueryConfig``, a mapping, or defaults.

    Calling it again replaces the handlers installed by the previous call.
    """
    global _manager
    from indexquery.core.config import IndexQueryConfig, get_default_config

    if config is None:
        logging_config = get_default_config().logging
    elif isinstance(config, IndexQueryConfig):
        logging_config = config.logging
    elif isinstance(config, Mapping):
        logging_config = config.get("logging", config)
    else:
        raise ConfigurationError(
            f"Unsupported logging configuration: {type(config).__name__}",
            config_key="logging",
        )

    if _manager is not None and _manager.initialized:
        _manager.shutdown()

    _manager = LoggingManager(logging_config)
    _manager.initialize()
    return _manager


def get_logger(name: str) -> Any:
    if _manager is None:
        return structlog.get_logger(name)
    return _manager.get_logger(name)
