"""Logging setup for services that use the datastore."""

import logging
from typing import Optional, Union

from pythonjsonlogger import jsonlogger

from . import config


def setup_logger(level: Optional[Union[int, str]] = None,
                 json: Optional[bool] = None) -> logging.Logger:
    """Attach a stream handler to the ``identitybase`` logger."""
    if level is None:
        level = config.LOGLEVEL
    if json is None:
        json = config.LOGJSON

    handler = logging.StreamHandler()
    if json:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s',
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s'
        )
    handler.setFormatter(formatter)

    logger = logging.getLogger('identitybase')
    for existing in list(logger.handlers):
        if getattr(existing, '_identitybase', False):
            logger.removeHandler(existing)
    handler._identitybase = True  # type: ignore
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
