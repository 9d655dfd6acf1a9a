from __future__ import annotations

import httpx

FALLBACK_ERROR_MESSAGE = "An unexpected error occurred"


class RefreshError(RuntimeError):
    """The refresh endpoint did not produce a usable token set."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MissingRefreshTokenError(RefreshError):
    def __init__(self, message: str = "No refresh token available.") -> None:
        super().__init__(message)


class SessionExpiredError(RuntimeError):
    """Raised to every caller of a refresh cycle that failed.

    The underlying ``RefreshError`` (or transport error) is kept on
    ``__cause__``. Credentials have already been cleared when this is raised.
    """

    def __init__(self, message: str = "Session expired. Please sign in again.") -> None:
        super().__init__(message)
        self.status_code = 401


class AuthApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        status: int | None = None,
        *,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.response = response


def _payload_message(payload: object) -> str | None:
    if not isinstance(payload, dict):
        return None
    for key in ("error_description", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def api_error_from_response(response: httpx.Response) -> AuthApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    message = _payload_message(payload) or response.reason_phrase or FALLBACK_ERROR_MESSAGE
    return AuthApiError(message, response.status_code, response=response)


def api_error_from_exception(error: httpx.HTTPError) -> AuthApiError:
    if isinstance(error, httpx.HTTPStatusError):
        return api_error_from_response(error.response)
    return AuthApiError(str(error) or FALLBACK_ERROR_MESSAGE)
