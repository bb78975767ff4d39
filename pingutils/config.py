"""Defaults for pingutils, any of them can be overridden in ``privVars.py``"""

import logging

DEFAULT_PORT = 25565
DEFAULT_TIMEOUT = 2000  # ms
DEFAULT_CHARSET = "UTF-8"

DEBUG = False
LOG_LEVEL = logging.INFO
LOG_FILE = None
SENTRY_DSN = None

try:
    from privVars import *  # noqa: F401,F403
except ImportError:
    pass
