"""
Centralized logging configuration for the WhatsApp agent service.

This module provides a function to set up application-wide logging,
including formatting, log levels, and handlers for console and file output.
Every record is rendered as a single JSON object so log shipping does not need
a custom parser.
"""

import logging
import logging.handlers  # Required for RotatingFileHandler
import sys
import json
from typing import Any, MutableMapping, Tuple

# Attributes every LogRecord carries; anything else was passed through `extra`.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__.keys()
) | {'message', 'asctime'}


class StructuredLogFormatter(logging.Formatter):
    """
    Custom formatter that renders log records as JSON.

    Features:
    - Includes thread_id if present in extra fields
    - Includes workflow_name if present in extra fields
    - Copies any other `extra` keys (message_id, storage_result, ...) into the payload
    - Preserves standard log fields (timestamp, level, logger, message)
    """

    def format(self, record):
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if hasattr(record, 'thread_id'):
            log_data['thread_id'] = record.thread_id

        if hasattr(record, 'workflow_name'):
            log_data['workflow_name'] = record.workflow_name

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS or key in log_data:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = repr(value)
            log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


DEFAULT_LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter whose default fields are merged with, not replaced by, per-call `extra`."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs['extra'] = {**self.extra, **(kwargs.get('extra') or {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> 'ContextLoggerAdapter':
        """Return a new adapter carrying additional default fields."""
        return ContextLoggerAdapter(self.logger, {**self.extra, **fields})


def get_logger(name: str) -> ContextLoggerAdapter:
    """
    Get a logger with default values for the structured context fields.

    Args:
        name (str): Logger name (usually __name__)

    Returns:
        ContextLoggerAdapter: Adapter with `thread_id` and `workflow_name` defaults
    """
    return ContextLoggerAdapter(logging.getLogger(name), {
        'thread_id': 'no_thread',
        'workflow_name': 'no_workflow'
    })


def setup_app_logging(config: dict = None, default_level=logging.INFO) -> None:
    """
    Set up logging for the entire application.

    This function configures the root logger with handlers for console
    and file output. Log levels and file paths can be specified via
    the optional config dictionary.

    Args:
        config (dict, optional): A dictionary containing logging configurations.
                                Expected keys:
                                - 'level': String representation of log level (e.g., "DEBUG", "INFO").
                                - 'file_path': Path to the log file. Empty disables file logging.
                                - 'max_bytes': Max size of the log file before rotation.
                                - 'backup_count': Number of backup log files to keep.
                                - 'date_format': Custom log date format string.
        default_level (int, optional): The default logging level if not specified
                                     in the config. Defaults to logging.INFO.
    """
    if config is None:
        config = {}

    log_level_str = str(config.get('level', logging.getLevelName(default_level))).upper()
    numeric_log_level = getattr(logging, log_level_str, default_level)
    if not isinstance(numeric_log_level, int):
        print(f"Warning: Invalid log level string '{log_level_str}'. Using default level {logging.getLevelName(default_level)}.", file=sys.stderr)
        numeric_log_level = default_level

    formatter = StructuredLogFormatter(datefmt=config.get('date_format', DEFAULT_LOG_DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_log_level)

    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file_path = config.get('file_path')
    if log_file_path:
        try:
            max_bytes = int(config.get('max_bytes', 5*1024*1024))  # 5 MB
            backup_count = int(config.get('backup_count', 3))

            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Error setting up file logging to {log_file_path}: {e}. File logging will be disabled.", file=sys.stderr)

    get_logger("LoggingConfig").info("Application logging setup complete. Level: %s", log_level_str)
