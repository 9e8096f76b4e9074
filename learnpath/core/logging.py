"""Structlog configuration with console and file output.

Configures structlog for structured logging with:
- Console output (colored or JSON)
- Optional rotating JSON file output
- Operation context (request_id, course_id) injected via contextvars
- Masking of bearer credentials and other sensitive fields
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import structlog
from structlog.types import EventDict, Processor

from learnpath.core.context import get_context


if TYPE_CHECKING:
    from learnpath.config.settings import Settings


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add operation context (request_id, course_id, ...) to log events."""
    event_dict.update(get_context())
    return event_dict


def add_app_info_processor(
    app_name: str,
    app_version: str,
    environment: str,
) -> Processor:
    """Create a processor that adds application info to log events."""

    def processor(
        logger: logging.Logger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["app"] = app_name
        event_dict["version"] = app_version
        event_dict["environment"] = environment
        return event_dict

    return processor


# Minimum length for partial masking (show first 2 and last 2 chars)
_MIN_MASK_LENGTH = 4

_SENSITIVE_KEYS = {
    "password",
    "secret",
    "token",
    "bearer",
    "api_key",
    "authorization",
    "auth",
    "credential",
    "credentials",
}


def filter_sensitive_data(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Filter sensitive data from log events.

    Masks bearer tokens, passwords and other credential-like fields.
    """

    def mask_value(key: str, value: Any) -> Any:
        if isinstance(value, str) and any(
            sensitive in key.lower() for sensitive in _SENSITIVE_KEYS
        ):
            if len(value) > _MIN_MASK_LENGTH:
                return value[:2] + "*" * (len(value) - _MIN_MASK_LENGTH) + value[-2:]
            return "***"
        if isinstance(value, dict):
            return {k: mask_value(k, v) for k, v in value.items()}
        return value

    return {k: mask_value(k, v) for k, v in event_dict.items()}


def setup_file_handler(
    log_dir: Path,
    log_file: str,
    max_bytes: int,
    backup_count: int,
    log_level: str,
) -> RotatingFileHandler:
    """Setup rotating file handler for logging.

    Args:
        log_dir: Directory to store log files.
        log_file: Name of the log file.
        max_bytes: Maximum size of each log file in bytes.
        backup_count: Number of backup files to keep.
        log_level: Logging level.

    Returns:
        Configured RotatingFileHandler.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_dir / log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, log_level.upper()))
    return handler


def setup_console_handler(log_level: str) -> logging.StreamHandler:
    """Setup console handler for logging."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))
    return handler


def _shared_processors(settings: "Settings") -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_processor,
        add_app_info_processor(
            settings.app_name, settings.app_version, settings.environment
        ),
        filter_sensitive_data,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
    return processors


def configure_structlog(
    settings: "Settings",
    log_dir: Path | str | None = None,
) -> None:
    """Configure structlog with console and (optionally) file output.

    Args:
        settings: Application settings.
        log_dir: Directory for log files. Defaults to settings.log_dir.
    """
    log_format: Literal["json", "console"] = settings.log_format
    log_level = settings.log_level

    if log_dir is None:
        log_dir = Path(settings.log_dir)
    elif isinstance(log_dir, str):
        log_dir = Path(log_dir)

    shared_processors = _shared_processors(settings)

    if log_format == "json":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    console_handler = setup_console_handler(log_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=final_processor,
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console_handler)

    if settings.log_to_file:
        # File output is always JSON (for log analysis)
        for file_name, level in (
            (f"{settings.app_name}.log", log_level),
            (f"{settings.app_name}.error.log", "ERROR"),
        ):
            file_handler = setup_file_handler(
                log_dir=log_dir,
                log_file=file_name,
                max_bytes=settings.log_file_max_bytes,
                backup_count=settings.log_file_backup_count,
                log_level=level,
            )
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.processors.JSONRenderer(),
                    foreign_pre_chain=shared_processors,
                )
            )
            root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Silence noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A configured structlog logger.
    """
    return structlog.get_logger(name)
