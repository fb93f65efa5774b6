"""
Web application configuration.

Bind address and debug flag, from WEB_HOST, WEB_PORT and WEB_DEBUG. The
library itself is located by BOOK_STORAGE_ROOT through infra.config.
"""

import os


class Config:
    """Web app configuration."""

    HOST = os.getenv("WEB_HOST", "127.0.0.1")
    PORT = int(os.getenv("WEB_PORT", "1337"))
    DEBUG = os.getenv("WEB_DEBUG", "false").lower() == "true"

    JSON_SORT_KEYS = False
