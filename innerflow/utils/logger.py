import logging
import os
import sys
from typing import Optional, Union

from flask import Flask

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# The Supabase client logs every HTTP request at INFO through httpx
NOISY_LOGGERS = ('httpx', 'httpcore', 'hpack')


def _resolve_level(target: Union[str, Flask], log_level: Optional[str]) -> int:
    if log_level is None and isinstance(target, Flask):
        log_level = target.config.get('LOG_LEVEL')
    name = (log_level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    return getattr(logging, name, logging.INFO)


def configure_logging(target: Union[str, Flask] = "innerflow", log_level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stdout handler to the journal service logger.

    Args:
        target: Logger name, or the Flask app whose package logger should be
                configured (every ``innerflow.*`` module logger propagates to it)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to the
                   app's LOG_LEVEL setting, then the LOG_LEVEL variable, then INFO

    Returns:
        The configured logger
    """
    if isinstance(target, Flask):
        logger_name = target.import_name.split('.')[0]
    else:
        logger_name = str(target)

    level = _resolve_level(target, log_level)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger
