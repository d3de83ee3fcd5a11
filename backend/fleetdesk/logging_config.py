"""Logging setup shared by the API process and the CLI scripts."""

from __future__ import annotations

import logging
from logging.config import dictConfig

DEFAULT_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def configure_logging(level_name: str = 'INFO', fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': fmt,
                }
            },
            'handlers': {
                'default': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'default',
                    'level': level,
                }
            },
            'loggers': {
                'fleetdesk': {
                    'handlers': ['default'],
                    'level': level,
                    'propagate': False,
                }
            },
        }
    )
    return logging.getLogger('fleetdesk')
