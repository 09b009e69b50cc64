"""Logging setup and the masked debug/audit log sink"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

from netmount.utils.masking import mask_sensitive_data, mask_string

ROOT_LOGGER = 'netmount'
TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'
LOG_HEADER = '--- netmount debug log ---\n'


def get_logger(name: str) -> logging.Logger:
    """Get a module logger"""
    return logging.getLogger(name)


LOG = get_logger(__name__)


class MaskingFilter(logging.Filter):
    """Scrub secrets from every record before a handler formats it"""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            message = str(record.msg)
        record.msg = mask_string(message)
        record.args = None
        if hasattr(record, 'data'):
            record.data = mask_sensitive_data(record.data)
        if hasattr(record, 'error'):
            record.error = mask_string(str(record.error))
        return True


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == 'json':
        return jsonlogger.JsonFormatter(JSON_FORMAT)
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(config, console: bool = True) -> logging.Logger:
    """
    Configure the ``netmount`` logger.

    Attaches a rotating file handler on ``config.log_file`` and, optionally,
    a console handler. Safe to call more than once: previously attached
    handlers are replaced.

    Args:
        config: NetMountConfig instance
        console: Also log to stderr

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, str(config.log_level).upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = _build_formatter(config.log_format)
    masking = MaskingFilter()

    log_dir = os.path.dirname(config.log_file)
    if log_dir:
        os.makedirs(log_dir, mode=0o700, exist_ok=True)
    if not os.path.exists(config.log_file):
        with open(config.log_file, 'w') as f:
            f.write(LOG_HEADER)

    file_handler = RotatingFileHandler(
        config.log_file, maxBytes=5 * 1024 * 1024, backupCount=3
    )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(masking)
    logger.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler.addFilter(masking)
        logger.addHandler(stream_handler)

    return logger


def log_event(logger: logging.Logger, message: str, data: Optional[Any] = None,
              level: int = logging.INFO):
    """Emit ``{message, data}`` with ``data`` masked before it leaves the core"""
    if data is None:
        logger.log(level, mask_string(message))
    else:
        logger.log(level, mask_string(message), extra={'data': mask_sensitive_data(data)})


def log_error(logger: logging.Logger, context: str, error: BaseException):
    """Emit ``{context, error}`` with the error text masked"""
    masked = mask_string(str(error)) or error.__class__.__name__
    logger.error(f"ERROR in {context}: {masked}",
                 extra={'context': context, 'error': masked})


def read_log(config) -> str:
    """Return the debug log contents"""
    try:
        with open(config.log_file, 'r') as f:
            return f.read()
    except FileNotFoundError:
        return LOG_HEADER
    except OSError as e:
        LOG.error(f"Failed to read log file {config.log_file}: {e}")
        return f"Error reading log file: {e}"


def clear_log(config):
    """Truncate the debug log"""
    try:
        with open(config.log_file, 'w') as f:
            f.write(LOG_HEADER)
    except OSError as e:
        LOG.error(f"Failed to clear log file {config.log_file}: {e}")
