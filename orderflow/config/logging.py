# orderflow/config/logging.py
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Dict, Any

from .settings import get_settings

settings = get_settings()


class ColoredFormatter(logging.Formatter):
    """Color-coded level names for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the rotating file handlers."""

    EXTRA_FIELDS = ('user_id', 'request_id', 'duration', 'order_id', 'row_count', 'ip_address')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def _file_handler(filename: str, level: str, formatter: str, max_bytes: int = 10485760,
                  backup_count: int = 5) -> Dict[str, Any]:
    return {
        'level': level,
        'class': 'logging.handlers.RotatingFileHandler',
        'formatter': formatter,
        'filename': os.path.join(settings.LOG_DIR, filename),
        'maxBytes': max_bytes,
        'backupCount': backup_count,
        'encoding': 'utf8'
    }


def build_logging_config() -> Dict[str, Any]:
    """Build the dictConfig for the current settings."""
    handlers: Dict[str, Any] = {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'colored' if settings.DEBUG else 'standard',
            'stream': 'ext://sys.stdout'
        }
    }
    app_handlers = ['console']
    api_handlers = ['console']
    security_handlers = ['console']

    if settings.LOG_TO_FILE:
        handlers.update({
            'file': _file_handler('app.log', 'INFO', 'detailed'),
            'error_file': _file_handler('error.log', 'ERROR', 'detailed'),
            'security_file': _file_handler('security.log', 'WARNING',
                                           'detailed' if settings.DEBUG else 'json', backup_count=10),
            'api_file': _file_handler('api.log', 'INFO',
                                      'detailed' if settings.DEBUG else 'json', max_bytes=20971520, backup_count=7),
        })
        app_handlers = ['console', 'file', 'error_file']
        api_handlers = ['console', 'api_file']
        security_handlers = ['console', 'security_file']

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(funcName)s(): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'colored': {
                '()': ColoredFormatter,
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': handlers,
        'loggers': {
            '': {
                'handlers': app_handlers,
                'level': settings.LOG_LEVEL,
            },
            'uvicorn': {
                'handlers': api_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'uvicorn.access': {
                'handlers': api_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': app_handlers,
                'level': 'INFO' if settings.DB_ECHO else 'WARNING',
                'propagate': False
            },
            'api': {
                'handlers': api_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'security': {
                'handlers': security_handlers,
                'level': 'WARNING',
                'propagate': False
            },
            'orderflow': {
                'handlers': app_handlers,
                'level': 'DEBUG' if settings.DEBUG else settings.LOG_LEVEL,
                'propagate': False
            }
        }
    }


def setup_logging():
    """Setup logging configuration."""
    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
    logging.config.dictConfig(build_logging_config())

    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("openpyxl").setLevel(logging.WARNING)
    if not settings.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def log_api_request(request_id: str, method: str, path: str, user_id: str = None):
    """Log API request information."""
    logger = get_logger("api")
    extra = {'request_id': request_id}
    if user_id:
        extra['user_id'] = user_id
    logger.info(f"{method} {path}", extra=extra)


def log_api_response(request_id: str, status_code: int, duration: float):
    """Log API response information."""
    logger = get_logger("api")
    extra = {'request_id': request_id, 'duration': duration}
    logger.info(f"Response: {status_code} ({duration:.3f}s)", extra=extra)


def log_security_event(event_type: str, user_id: str = None, details: str = None, ip_address: str = None):
    """Log security-related events."""
    logger = get_logger("security")
    extra = {}
    if user_id:
        extra['user_id'] = user_id
    if ip_address:
        extra['ip_address'] = ip_address

    message = f"Security Event: {event_type}"
    if details:
        message += f" - {details}"

    logger.warning(message, extra=extra)


def log_database_operation(operation: str, table: str, duration: float = None, row_count: int = None):
    """Log database operations."""
    logger = get_logger("orderflow.database")
    extra = {}
    if duration:
        extra['duration'] = duration
    if row_count:
        extra['row_count'] = row_count

    message = f"DB Operation: {operation} - Table: {table}"
    if row_count:
        message += f" - Rows: {row_count}"

    logger.info(message, extra=extra)


def log_performance(logger_name: str = "orderflow.performance"):
    """Decorator to log function performance."""
    def decorator(func):
        import functools
        import time

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(logger_name)
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.info(f"{func.__name__} completed in {duration:.3f}s")
                return result
            except Exception as e:
                duration = time.time() - start_time
                logger.error(f"{func.__name__} failed after {duration:.3f}s: {str(e)}")
                raise
        return wrapper
    return decorator


__all__ = [
    "setup_logging",
    "get_logger",
    "log_api_request",
    "log_api_response",
    "log_security_event",
    "log_database_operation",
    "log_performance"
]
