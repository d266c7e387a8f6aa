"""Logging configuration for the assessment engine.

This module provides structured logging with different handlers for development,
test and production environments, including JSON formatting for log shipping.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger


class AssessmentFormatter(jsonlogger.JsonFormatter):
    """JSON formatter for assessment engine logs."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        """Add custom fields to log record.

        Args:
            log_record: The log record dictionary to modify
            record: The original logging record
            message_dict: Additional message data
        """
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        log_record['application'] = 'assessment-engine'

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


class ContextFilter(logging.Filter):
    """Filter to add contextual information to log records."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.context = context or {}

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)
        return True


class LoggerConfig:
    """Logger configuration manager."""

    # Component loggers
    COMPONENTS = {
        'api': 'assessment_engine.api',
        'lifecycle': 'assessment_engine.lifecycle',
        'scoring': 'assessment_engine.scoring',
        'analytics': 'assessment_engine.analytics',
    }

    def __init__(
        self,
        environment: str = 'development',
        log_level: str = 'INFO',
        log_format: str = 'text',
        log_dir: Optional[str] = None,
    ):
        """Initialize logger configuration.

        Args:
            environment: Environment name (development, test, staging, production)
            log_level: Default log level
            log_format: ``json`` or ``text`` for the console handler
            log_dir: Directory for rotating file logs, disabled when None
        """
        self.environment = environment
        self.log_level = getattr(logging, log_level.upper())
        self.log_format = log_format
        self.log_dir = Path(log_dir) if log_dir else None

        self._configure_root_logger()
        self._configure_component_loggers()

    def _configure_root_logger(self) -> None:
        """Configure the root logger."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        root_logger.handlers.clear()

        if self.environment == 'test':
            self._add_test_handlers(root_logger)
        elif self.environment == 'production' or self.log_format == 'json':
            self._add_production_handlers(root_logger)
        else:
            self._add_development_handlers(root_logger)

        if self.log_dir is not None and self.environment != 'test':
            self._add_file_handlers(root_logger)

    def _add_production_handlers(self, logger: logging.Logger) -> None:
        """Add JSON console handler."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(
            AssessmentFormatter(fmt='%(timestamp)s %(level)s %(logger)s %(message)s')
        )
        logger.addHandler(console_handler)

    def _add_development_handlers(self, logger: logging.Logger) -> None:
        """Add readable console handler."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        dev_formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-30s | %(funcName)-15s:%(lineno)-3d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(dev_formatter)
        logger.addHandler(console_handler)

    def _add_test_handlers(self, logger: logging.Logger) -> None:
        """Only warnings and errors during tests."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(
            logging.Formatter(fmt='TEST | %(levelname)s | %(name)s | %(message)s')
        )
        logger.addHandler(console_handler)

    def _add_file_handlers(self, logger: logging.Logger) -> None:
        """Add rotating application and error log files."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        json_formatter = AssessmentFormatter(fmt='%(timestamp)s %(level)s %(logger)s %(message)s')

        app_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "application.log",
            maxBytes=50 * 1024 * 1024,  # 50MB
            backupCount=10,
            encoding='utf-8'
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(json_formatter)
        logger.addHandler(app_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "error.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(json_formatter)
        logger.addHandler(error_handler)

    def _configure_component_loggers(self) -> None:
        """Configure individual component loggers."""
        for component, logger_name in self.COMPONENTS.items():
            logger = logging.getLogger(logger_name)
            logger.setLevel(self.log_level)
            logger.addFilter(ContextFilter({'component': component}))

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def get_component_logger(self, component: str) -> logging.Logger:
        """Get a component-specific logger.

        Args:
            component: Component name (api, lifecycle, scoring, analytics)

        Returns:
            logging.Logger: Component logger

        Raises:
            ValueError: If component is not recognized
        """
        if component not in self.COMPONENTS:
            raise ValueError(f"Unknown component: {component}. Available: {list(self.COMPONENTS.keys())}")

        return logging.getLogger(self.COMPONENTS[component])


# Global logger configuration instance
_logger_config: Optional[LoggerConfig] = None


def setup_logging(
    environment: str = 'development',
    log_level: str = 'INFO',
    log_format: str = 'text',
    log_dir: Optional[str] = None,
) -> LoggerConfig:
    """Setup application logging.

    Args:
        environment: Environment name
        log_level: Log level
        log_format: Console format, ``json`` or ``text``
        log_dir: Optional directory for file logs

    Returns:
        LoggerConfig: Configured logger instance
    """
    global _logger_config
    _logger_config = LoggerConfig(environment, log_level, log_format, log_dir)
    return _logger_config


def get_logger(name: str = __name__) -> logging.Logger:
    """Get a logger instance, configuring defaults on first use."""
    if _logger_config is None:
        setup_logging()

    return _logger_config.get_logger(name)


def get_component_logger(component: str) -> logging.Logger:
    if _logger_config is None:
        setup_logging()

    return _logger_config.get_component_logger(component)


def get_api_logger() -> logging.Logger:
    """Get API component logger."""
    return get_component_logger('api')


def get_lifecycle_logger() -> logging.Logger:
    """Get assignment lifecycle logger."""
    return get_component_logger('lifecycle')


def get_scoring_logger() -> logging.Logger:
    """Get scoring engine logger."""
    return get_component_logger('scoring')


def get_analytics_logger() -> logging.Logger:
    """Get activity analytics logger."""
    return get_component_logger('analytics')


def log_api_request(method: str, path: str, logger: Optional[logging.Logger] = None) -> None:
    """Log API request.

    Args:
        method: HTTP method
        path: Request path
        logger: Logger instance
    """
    if logger is None:
        logger = get_api_logger()

    logger.info(f"{method} {path}", extra={
        'http_method': method,
        'request_path': path,
        'event_type': 'api_request'
    })


def log_api_response(method: str, path: str, status_code: int, duration_ms: float, logger: Optional[logging.Logger] = None) -> None:
    """Log API response.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
        logger: Logger instance
    """
    if logger is None:
        logger = get_api_logger()

    level = logging.WARNING if status_code >= 400 else logging.INFO

    logger.log(level, f"{method} {path} - {status_code}", extra={
        'http_method': method,
        'request_path': path,
        'status_code': status_code,
        'duration_ms': duration_ms,
        'event_type': 'api_response'
    })


class PerformanceLogger:
    """Context manager for performance logging."""

    def __init__(self, operation: str, logger: Optional[logging.Logger] = None, extra: Optional[Dict[str, Any]] = None):
        """Initialize performance logger.

        Args:
            operation: Operation name
            logger: Logger instance
            extra: Additional fields to log
        """
        self.operation = operation
        self.logger = logger or get_logger()
        self.extra = extra or {}
        self.start_time: Optional[datetime] = None

    def __enter__(self) -> 'PerformanceLogger':
        self.start_time = datetime.now(timezone.utc)
        self.logger.debug(f"Starting {self.operation}", extra={
            'operation': self.operation,
            'event_type': 'performance_start',
            **self.extra
        })
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time:
            duration = datetime.now(timezone.utc) - self.start_time
            duration_ms = duration.total_seconds() * 1000

            level = logging.WARNING if duration_ms > 1000 else logging.DEBUG  # Warn if > 1 second

            self.logger.log(level, f"Completed {self.operation}", extra={
                'operation': self.operation,
                'duration_ms': duration_ms,
                'event_type': 'performance_end',
                'success': exc_type is None,
                **self.extra
            })
