from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger("recipeweb.auth")
APP_VERSION = "0.1.0"

DEFAULT_API_BASE_URL = "http://localhost:8080/api/v1"
DEFAULT_REFRESH_URL = "http://auth-service.local/api/v1/auth/user-management/auth/refresh"
DEFAULT_LOGIN_URL = "/login"
DEFAULT_TIMEOUT = 10.0

# Any request path containing this marker is treated as the refresh endpoint.
REFRESH_PATH_MARKER = "/auth/refresh"
RETRIED_EXTENSION = "recipeweb_retried"
RETURN_URL_PARAM = "returnUrl"

ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
